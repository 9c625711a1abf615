"""Application settings and validation."""

import os
from pathlib import Path

BASE = Path(__file__).resolve().parent.parent
SUPPORTED_JWT_ALGORITHMS = ("HS256", "HS384", "HS512")


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name, str(default))
    try:
        return int(raw)
    except ValueError:
        raise RuntimeError(f"{name} must be an integer, got {raw!r}")


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name, str(default))
    try:
        return float(raw)
    except ValueError:
        raise RuntimeError(f"{name} must be a number, got {raw!r}")


class Settings:
    ENV: str
    JWT_SECRET: str
    JWT_ALGORITHM: str
    ALLOW_INSECURE_JWT: bool
    ALLOW_DEV_CORS: bool
    DATABASE_URL: str
    IDENTITY_SERVICE_URL: str
    IDENTITY_TIMEOUT_SECONDS: float
    CACHE_TTL_SECONDS: int
    CACHE_MAX_ENTRIES: int
    LOG_LEVEL: str

    def __init__(self):
        self.ENV = os.getenv("ENV", "dev").lower()
        self.JWT_SECRET = os.getenv("JWT_SECRET", "change_me_for_prod")
        self.JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256").upper()
        self.ALLOW_INSECURE_JWT = os.getenv("ALLOW_INSECURE_JWT", "false").lower() == "true"
        self.ALLOW_DEV_CORS = os.getenv("ALLOW_DEV_CORS", "true").lower() == "true"
        self.DATABASE_URL = os.getenv("DATABASE_URL", f"sqlite:///{BASE / 'lessons.db'}")
        self.IDENTITY_SERVICE_URL = os.getenv("IDENTITY_SERVICE_URL", "http://localhost:8081").rstrip("/")
        self.IDENTITY_TIMEOUT_SECONDS = _float_env("IDENTITY_TIMEOUT_SECONDS", 5.0)
        self.CACHE_TTL_SECONDS = _int_env("CACHE_TTL_SECONDS", 300)  # matches the 5 minute TTL/max-idle
        self.CACHE_MAX_ENTRIES = _int_env("CACHE_MAX_ENTRIES", 1000)
        self.LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
        self._validate()

    def _validate(self):
        if self.ENV != "dev" and not self.ALLOW_INSECURE_JWT and self.JWT_SECRET == "change_me_for_prod":
            raise RuntimeError("JWT_SECRET must be set to a non-default value in non-dev environments")
        if self.JWT_ALGORITHM not in SUPPORTED_JWT_ALGORITHMS:
            raise RuntimeError(f"JWT_ALGORITHM must be one of {', '.join(SUPPORTED_JWT_ALGORITHMS)}")
        if self.CACHE_TTL_SECONDS <= 0:
            raise RuntimeError("CACHE_TTL_SECONDS must be positive")
        if self.CACHE_MAX_ENTRIES <= 0:
            raise RuntimeError("CACHE_MAX_ENTRIES must be positive")
        if self.IDENTITY_TIMEOUT_SECONDS <= 0:
            raise RuntimeError("IDENTITY_TIMEOUT_SECONDS must be positive")


settings = Settings()
