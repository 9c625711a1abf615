"""FastAPI dependency providers.

Caches, the identity client and services are handed to controllers
through these functions so tests can replace any of them with
`app.dependency_overrides`.
"""

from functools import lru_cache

from fastapi import Depends
from sqlmodel import Session

from . import services
from .config import settings
from .database import get_session
from .identity import HttpIdentityClient, IdentityClient
from .utils.cache import EntityCache, TTLEntityCache
from .validation import AccessValidator


def _new_cache(name: str) -> TTLEntityCache:
    return TTLEntityCache(name, max_entries=settings.CACHE_MAX_ENTRIES, ttl_seconds=settings.CACHE_TTL_SECONDS)


lesson_cache = _new_cache("lessons")
lesson_plan_cache = _new_cache("lessonplans")
activity_cache = _new_cache("activities")


def get_lesson_cache() -> EntityCache:
    return lesson_cache


def get_lesson_plan_cache() -> EntityCache:
    return lesson_plan_cache


def get_activity_cache() -> EntityCache:
    return activity_cache


@lru_cache(maxsize=1)
def get_identity_client() -> IdentityClient:
    return HttpIdentityClient(settings.IDENTITY_SERVICE_URL, timeout=settings.IDENTITY_TIMEOUT_SECONDS)


def get_validator(identity_client: IdentityClient = Depends(get_identity_client)) -> AccessValidator:
    return AccessValidator(identity_client)


def get_lesson_service(db: Session = Depends(get_session)) -> services.LessonService:
    return services.LessonService(db)


def get_lesson_plan_service(db: Session = Depends(get_session)) -> services.LessonPlanService:
    return services.LessonPlanService(db)


def get_activity_service(db: Session = Depends(get_session)) -> services.ActivityService:
    return services.ActivityService(db)
