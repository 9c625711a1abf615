import os
import tempfile
from pathlib import Path

# Point the app at a throwaway database before `lessons` is imported.
_TEST_DIR = Path(tempfile.mkdtemp(prefix="lessons-tests-"))
os.environ["DATABASE_URL"] = f"sqlite:///{_TEST_DIR / 'test.db'}"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["JWT_ALGORITHM"] = "HS256"
os.environ.setdefault("ENV", "dev")

import jwt
import pytest
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, create_engine

from lessons.database import create_db_and_tables
from lessons.dependencies import (
    get_activity_cache,
    get_identity_client,
    get_lesson_cache,
    get_lesson_plan_cache,
)
from lessons.errors import NotFoundError
from lessons.identity import Identity, Role
from lessons.main import app


class FakeDirectory:
    """In-memory stand-in for the users service."""

    def __init__(self, users):
        self.users = {u.username: u for u in users}
        self.lookups = []

    def resolve_user(self, name):
        self.lookups.append(name)
        if name not in self.users:
            raise NotFoundError(f"No user found for [{name}]")
        return self.users[name]


class DictCache:
    """Plain dict cache with the same interface as TTLEntityCache."""

    def __init__(self, name):
        self.name = name
        self.data = {}

    def get(self, key):
        return self.data.get(key)

    def put(self, key, value):
        self.data[key] = value

    def remove(self, key):
        self.data.pop(key, None)

    def clear(self):
        self.data.clear()


USERS = [
    Identity(id=1, username="alice", role=Role.ADMIN),
    Identity(id=2, username="ivan", role=Role.INSTRUCTOR),
    Identity(id=3, username="sam", role=Role.STUDENT),
    Identity(id=4, username="ghost", role=None),
]


@pytest.fixture
def directory():
    return FakeDirectory(USERS)


@pytest.fixture
def caches():
    return {
        "lessons": DictCache("lessons"),
        "lessonplans": DictCache("lessonplans"),
        "activities": DictCache("activities"),
    }


@pytest.fixture(autouse=True)
def app_overrides(directory, caches):
    """Swap the identity client and caches for in-memory versions."""
    app.dependency_overrides[get_identity_client] = lambda: directory
    app.dependency_overrides[get_lesson_cache] = lambda: caches["lessons"]
    app.dependency_overrides[get_lesson_plan_cache] = lambda: caches["lessonplans"]
    app.dependency_overrides[get_activity_cache] = lambda: caches["activities"]
    yield
    app.dependency_overrides.clear()


def make_token(name, secret="test-secret"):
    return jwt.encode({"sub": name}, secret, algorithm="HS256")


@pytest.fixture
def auth():
    """Return a helper building bearer headers for a user name."""
    def _headers(name):
        return {"Authorization": f"Bearer {make_token(name)}"}
    return _headers


@pytest.fixture
def session():
    """A session on a private in-memory database."""
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    create_db_and_tables(engine)
    with Session(engine) as s:
        yield s
    engine.dispose()
