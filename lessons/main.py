"""FastAPI application entrypoint and HTTP controllers.

This module defines the HTTP endpoints of the lessons service.
Controllers are intentionally thin: they validate the payload and the
caller's role, delegate to services, and keep the per-entity caches in
step with what was written.

Endpoints implemented:
- POST/PUT /lessons, GET/DELETE /lessons/{id}, GET /lessons
- GET /lessons/all/{group}
- POST/PUT /lessonplans, GET/DELETE /lessonplans/{id}, GET /lessonplans
- POST/PUT /activities, GET/DELETE /activities/{id}, GET /activities
- GET /health
"""

import json
import logging
import time
import uuid
from typing import List, Optional

from fastapi import Body, Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response

from . import services
from .auth import get_principal
from .config import settings
from .database import create_db_and_tables
from .dependencies import (
    get_activity_cache,
    get_activity_service,
    get_lesson_cache,
    get_lesson_plan_cache,
    get_lesson_plan_service,
    get_lesson_service,
    get_validator,
)
from .errors import register_error_handlers
from .schemas import ActivityIn, ActivityOut, LessonIn, LessonOut, LessonPlanIn, LessonPlanOut
from .utils.cache import EntityCache, read_through
from .validation import AccessValidator, Operation

app = FastAPI(title="Lessons Service")
logger = logging.getLogger("lessons.api")
if not logging.getLogger().handlers:
    logging.basicConfig(level=settings.LOG_LEVEL)

register_error_handlers(app)

if settings.ALLOW_DEV_CORS:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

create_db_and_tables()


@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    req_id = request.headers.get("X-Request-ID", uuid.uuid4().hex)
    request.state.request_id = req_id
    started = time.perf_counter()
    record = {
        "request_id": req_id,
        "path": request.url.path,
        "method": request.method,
        "client": request.client.host if request.client else "unknown",
    }
    try:
        response = await call_next(request)
    except Exception:
        record["duration_ms"] = round((time.perf_counter() - started) * 1000.0, 2)
        logger.exception("request_failed %s", json.dumps(record, ensure_ascii=True))
        raise
    response.headers["X-Request-ID"] = req_id
    record["status_code"] = response.status_code
    record["duration_ms"] = round((time.perf_counter() - started) * 1000.0, 2)
    logger.info("request_done %s", json.dumps(record, ensure_ascii=True))
    return response


def _evict(cache: EntityCache, ids) -> None:
    for entity_id in ids:
        cache.remove(entity_id)


# --- lessons ---

@app.post('/lessons', response_model=LessonOut, status_code=201)
def create_lesson(
    payload: Optional[LessonIn] = Body(default=None),
    principal: Optional[str] = Depends(get_principal),
    validator: AccessValidator = Depends(get_validator),
    svc: services.LessonService = Depends(get_lesson_service),
    cache: EntityCache = Depends(get_lesson_cache),
):
    """Create a lesson (admin or instructor)."""
    validator.validate_payload(payload, 'lesson')
    validator.check(Operation.LESSON_CREATE, principal)
    lesson = LessonOut.model_validate(svc.create(payload))
    cache.put(lesson.id, lesson)
    return lesson


@app.get('/lessons/all/{group}', response_model=List[LessonOut])
def list_lessons_by_group(
    group: str,
    principal: Optional[str] = Depends(get_principal),
    validator: AccessValidator = Depends(get_validator),
    svc: services.LessonService = Depends(get_lesson_service),
):
    """Return every lesson of a course group such as `PVT` or `IFR`."""
    validator.check(Operation.LESSON_LIST_BY_GROUP, principal)
    return [LessonOut.model_validate(lesson) for lesson in svc.get_by_group(group)]


@app.get('/lessons/{lesson_id}', response_model=LessonOut)
def get_lesson(
    lesson_id: int,
    principal: Optional[str] = Depends(get_principal),
    validator: AccessValidator = Depends(get_validator),
    svc: services.LessonService = Depends(get_lesson_service),
    cache: EntityCache = Depends(get_lesson_cache),
):
    """Return one lesson to any authenticated user, served from cache when fresh."""
    validator.check(Operation.LESSON_READ, principal)
    return read_through(cache, lesson_id, lambda: LessonOut.model_validate(svc.get(lesson_id)))


@app.put('/lessons', response_model=LessonOut)
def update_lesson(
    payload: Optional[LessonIn] = Body(default=None),
    principal: Optional[str] = Depends(get_principal),
    validator: AccessValidator = Depends(get_validator),
    svc: services.LessonService = Depends(get_lesson_service),
    cache: EntityCache = Depends(get_lesson_cache),
):
    """Replace a lesson identified by the `id` in the body."""
    validator.validate_payload(payload, 'lesson')
    validator.check(Operation.LESSON_UPDATE, principal)
    lesson = LessonOut.model_validate(svc.update(payload))
    cache.put(lesson.id, lesson)
    return lesson


@app.delete('/lessons/{lesson_id}', status_code=204)
def delete_lesson(
    lesson_id: int,
    principal: Optional[str] = Depends(get_principal),
    validator: AccessValidator = Depends(get_validator),
    svc: services.LessonService = Depends(get_lesson_service),
    cache: EntityCache = Depends(get_lesson_cache),
    plan_cache: EntityCache = Depends(get_lesson_plan_cache),
):
    """Delete a lesson along with its lesson plan links."""
    validator.check(Operation.LESSON_DELETE, principal)
    affected_plans = svc.delete(lesson_id)
    cache.remove(lesson_id)
    _evict(plan_cache, affected_plans)
    return Response(status_code=204)


@app.get('/lessons', response_model=List[LessonOut])
def list_lessons(
    principal: Optional[str] = Depends(get_principal),
    validator: AccessValidator = Depends(get_validator),
    svc: services.LessonService = Depends(get_lesson_service),
):
    validator.check(Operation.LESSON_LIST, principal)
    return [LessonOut.model_validate(lesson) for lesson in svc.get_all()]


# --- lesson plans ---

@app.post('/lessonplans', response_model=LessonPlanOut, status_code=201)
def create_lesson_plan(
    payload: Optional[LessonPlanIn] = Body(default=None),
    principal: Optional[str] = Depends(get_principal),
    validator: AccessValidator = Depends(get_validator),
    svc: services.LessonPlanService = Depends(get_lesson_plan_service),
    cache: EntityCache = Depends(get_lesson_plan_cache),
):
    """Create a lesson plan. Links are only applied on update."""
    validator.validate_payload(payload, 'lesson plan')
    validator.check(Operation.LESSON_PLAN_CREATE, principal)
    plan = svc.to_schema(svc.create(payload))
    cache.put(plan.id, plan)
    return plan


@app.get('/lessonplans/{lesson_plan_id}', response_model=LessonPlanOut)
def get_lesson_plan(
    lesson_plan_id: int,
    principal: Optional[str] = Depends(get_principal),
    validator: AccessValidator = Depends(get_validator),
    svc: services.LessonPlanService = Depends(get_lesson_plan_service),
    cache: EntityCache = Depends(get_lesson_plan_cache),
):
    validator.check(Operation.LESSON_PLAN_READ, principal)
    return read_through(cache, lesson_plan_id, lambda: svc.to_schema(svc.get(lesson_plan_id)))


@app.put('/lessonplans', response_model=LessonPlanOut)
def update_lesson_plan(
    payload: Optional[LessonPlanIn] = Body(default=None),
    principal: Optional[str] = Depends(get_principal),
    validator: AccessValidator = Depends(get_validator),
    svc: services.LessonPlanService = Depends(get_lesson_plan_service),
    cache: EntityCache = Depends(get_lesson_plan_cache),
):
    """Replace a lesson plan and reconcile its lesson and activity links.

    The stored links end up matching `lesson_ids` and `activity_ids`
    exactly; links already present are left as they are.
    """
    validator.validate_payload(payload, 'lesson plan')
    validator.check(Operation.LESSON_PLAN_UPDATE, principal)
    plan = svc.to_schema(svc.update(payload))
    cache.put(plan.id, plan)
    return plan


@app.delete('/lessonplans/{lesson_plan_id}', status_code=204)
def delete_lesson_plan(
    lesson_plan_id: int,
    principal: Optional[str] = Depends(get_principal),
    validator: AccessValidator = Depends(get_validator),
    svc: services.LessonPlanService = Depends(get_lesson_plan_service),
    cache: EntityCache = Depends(get_lesson_plan_cache),
):
    validator.check(Operation.LESSON_PLAN_DELETE, principal)
    svc.delete(lesson_plan_id)
    cache.remove(lesson_plan_id)
    return Response(status_code=204)


@app.get('/lessonplans', response_model=List[LessonPlanOut])
def list_lesson_plans(
    principal: Optional[str] = Depends(get_principal),
    validator: AccessValidator = Depends(get_validator),
    svc: services.LessonPlanService = Depends(get_lesson_plan_service),
):
    validator.check(Operation.LESSON_PLAN_LIST, principal)
    return [svc.to_schema(plan) for plan in svc.get_all()]


# --- activities ---

@app.post('/activities', response_model=ActivityOut, status_code=201)
def create_activity(
    payload: Optional[ActivityIn] = Body(default=None),
    principal: Optional[str] = Depends(get_principal),
    validator: AccessValidator = Depends(get_validator),
    svc: services.ActivityService = Depends(get_activity_service),
    cache: EntityCache = Depends(get_activity_cache),
):
    validator.validate_payload(payload, 'activity')
    validator.check(Operation.ACTIVITY_CREATE, principal)
    activity = ActivityOut.model_validate(svc.create(payload))
    cache.put(activity.id, activity)
    return activity


@app.get('/activities/{activity_id}', response_model=ActivityOut)
def get_activity(
    activity_id: int,
    principal: Optional[str] = Depends(get_principal),
    validator: AccessValidator = Depends(get_validator),
    svc: services.ActivityService = Depends(get_activity_service),
    cache: EntityCache = Depends(get_activity_cache),
):
    validator.check(Operation.ACTIVITY_READ, principal)
    return read_through(cache, activity_id, lambda: ActivityOut.model_validate(svc.get(activity_id)))


@app.put('/activities', response_model=ActivityOut)
def update_activity(
    payload: Optional[ActivityIn] = Body(default=None),
    principal: Optional[str] = Depends(get_principal),
    validator: AccessValidator = Depends(get_validator),
    svc: services.ActivityService = Depends(get_activity_service),
    cache: EntityCache = Depends(get_activity_cache),
):
    validator.validate_payload(payload, 'activity')
    validator.check(Operation.ACTIVITY_UPDATE, principal)
    activity = ActivityOut.model_validate(svc.update(payload))
    cache.put(activity.id, activity)
    return activity


@app.delete('/activities/{activity_id}', status_code=204)
def delete_activity(
    activity_id: int,
    principal: Optional[str] = Depends(get_principal),
    validator: AccessValidator = Depends(get_validator),
    svc: services.ActivityService = Depends(get_activity_service),
    cache: EntityCache = Depends(get_activity_cache),
    plan_cache: EntityCache = Depends(get_lesson_plan_cache),
):
    """Delete an activity along with its lesson plan links."""
    validator.check(Operation.ACTIVITY_DELETE, principal)
    affected_plans = svc.delete(activity_id)
    cache.remove(activity_id)
    _evict(plan_cache, affected_plans)
    return Response(status_code=204)


@app.get('/activities', response_model=List[ActivityOut])
def list_activities(
    principal: Optional[str] = Depends(get_principal),
    validator: AccessValidator = Depends(get_validator),
    svc: services.ActivityService = Depends(get_activity_service),
):
    validator.check(Operation.ACTIVITY_LIST, principal)
    return [ActivityOut.model_validate(activity) for activity in svc.get_all()]


@app.get("/health")
def health():
    """Lightweight health check for uptime monitoring."""
    return {"status": "ok"}
