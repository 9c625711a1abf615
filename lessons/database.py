"""Database engine and helpers.

This module configures the SQLModel/SQLAlchemy engine from
`settings.DATABASE_URL` (a local SQLite file `lessons.db` at the
repository root by default) and provides the session dependency used by
the API.
"""

from sqlmodel import SQLModel, create_engine, Session

from .config import settings


def build_engine(url: str):
    """Create an engine, relaxing SQLite's same-thread check for FastAPI."""
    connect_args = {}
    if url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    return create_engine(url, echo=False, connect_args=connect_args)


engine = build_engine(settings.DATABASE_URL)


def create_db_and_tables(bind=None):
    """Create database tables using SQLModel metadata.

    Intended for local development and tests; deployments against a
    shared database should manage the schema with a migration tool.
    """
    # register the table models on the metadata
    from . import models  # noqa: F401

    SQLModel.metadata.create_all(bind if bind is not None else engine)


def get_session():
    """Yield a database `Session` for FastAPI dependency injection.

    The generator yields a session and ensures it is closed when the
    request scope finishes.
    """
    with Session(engine) as session:
        yield session
