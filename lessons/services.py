"""Business logic services used by HTTP controllers.

Services are intentionally thin: they check existence, copy request
payloads onto table models and persist them via repositories. Deletes
clear dependent link rows before removing the entity. The lesson plan
service also keeps the plan's lesson/activity links in line with the
ids sent on update.
"""

import logging
from typing import Iterable, List, Optional

from sqlmodel import Session

from . import models, repositories, schemas
from .errors import InvalidPayloadError, NotFoundError
from .utils.links import LinkDelta, reconcile_links

logger = logging.getLogger("lessons.api")


def _apply(entity, values: dict) -> None:
    """Overwrite every given field of `entity` (full replace)."""
    for key, value in values.items():
        setattr(entity, key, value)


def _require_id(payload, kind: str) -> int:
    if payload.id is None:
        raise InvalidPayloadError(f"No {kind} ID was provided for update")
    return payload.id


class LessonService:
    """Create, read, update and delete lessons."""
    def __init__(self, session: Session):
        self.session = session
        self.lesson_repo = repositories.LessonRepository(session)
        self.link_repo = repositories.LessonPlanLessonRepository(session)

    def create(self, payload: schemas.LessonIn) -> models.Lesson:
        lesson = models.Lesson(**payload.model_dump(exclude={'id'}))
        return self.lesson_repo.save(lesson)

    def get(self, lesson_id: int) -> models.Lesson:
        lesson = self.lesson_repo.get(lesson_id)
        if lesson is None:
            raise NotFoundError(f"No lesson found for ID [{lesson_id}]")
        return lesson

    def update(self, payload: schemas.LessonIn) -> models.Lesson:
        lesson = self.get(_require_id(payload, 'lesson'))
        _apply(lesson, payload.model_dump(exclude={'id'}))
        return self.lesson_repo.save(lesson)

    def delete(self, lesson_id: int) -> List[int]:
        """Delete a lesson and its lesson plan links.

        Returns the ids of lesson plans that lost a link.
        """
        lesson = self.get(lesson_id)
        affected = self.link_repo.delete_for_related(lesson_id)
        self.lesson_repo.delete(lesson)
        return affected

    def get_all(self) -> List[models.Lesson]:
        return self.lesson_repo.list_all()

    def get_by_group(self, group: Optional[str]) -> List[models.Lesson]:
        """Return the lessons of a course group such as `PVT` or `IFR`."""
        if group is None or not group.strip():
            raise NotFoundError(f"No group found for [{group}]")
        return self.lesson_repo.list_by_course(group.strip())


class ActivityService:
    """Create, read, update and delete activities."""
    def __init__(self, session: Session):
        self.session = session
        self.activity_repo = repositories.ActivityRepository(session)
        self.link_repo = repositories.LessonPlanActivityRepository(session)

    def create(self, payload: schemas.ActivityIn) -> models.Activity:
        activity = models.Activity(**payload.model_dump(exclude={'id'}))
        return self.activity_repo.save(activity)

    def get(self, activity_id: int) -> models.Activity:
        activity = self.activity_repo.get(activity_id)
        if activity is None:
            raise NotFoundError(f"No activity found for ID [{activity_id}]")
        return activity

    def update(self, payload: schemas.ActivityIn) -> models.Activity:
        activity = self.get(_require_id(payload, 'activity'))
        _apply(activity, payload.model_dump(exclude={'id'}))
        return self.activity_repo.save(activity)

    def delete(self, activity_id: int) -> List[int]:
        """Delete an activity and its lesson plan links.

        Returns the ids of lesson plans that lost a link.
        """
        activity = self.get(activity_id)
        affected = self.link_repo.delete_for_related(activity_id)
        self.activity_repo.delete(activity)
        return affected

    def get_all(self) -> List[models.Activity]:
        return self.activity_repo.list_all()


class LessonPlanService:
    """Lesson plan CRUD plus maintenance of its lesson/activity links."""
    def __init__(self, session: Session):
        self.session = session
        self.plan_repo = repositories.LessonPlanRepository(session)
        self.lesson_link_repo = repositories.LessonPlanLessonRepository(session)
        self.activity_link_repo = repositories.LessonPlanActivityRepository(session)

    def create(self, payload: schemas.LessonPlanIn) -> models.LessonPlan:
        plan = models.LessonPlan(**payload.model_dump(exclude={'id', 'lesson_ids', 'activity_ids'}))
        return self.plan_repo.save(plan)

    def get(self, lesson_plan_id: int) -> models.LessonPlan:
        plan = self.plan_repo.get(lesson_plan_id)
        if plan is None:
            raise NotFoundError(f"No lesson plan found for ID [{lesson_plan_id}]")
        return plan

    def update(self, payload: schemas.LessonPlanIn) -> models.LessonPlan:
        """Replace a lesson plan and reconcile both of its link sets.

        An omitted `lesson_ids` or `activity_ids` list removes every link
        of that kind.
        """
        plan = self.get(_require_id(payload, 'lesson plan'))
        _apply(plan, payload.model_dump(exclude={'id', 'lesson_ids', 'activity_ids'}))
        plan = self.plan_repo.save(plan)
        self.link_lessons(plan.id, payload.lesson_ids or [])
        self.link_activities(plan.id, payload.activity_ids or [])
        return plan

    def delete(self, lesson_plan_id: int) -> None:
        plan = self.get(lesson_plan_id)
        self.lesson_link_repo.delete_for_lesson_plan(lesson_plan_id)
        self.activity_link_repo.delete_for_lesson_plan(lesson_plan_id)
        self.plan_repo.delete(plan)

    def get_all(self) -> List[models.LessonPlan]:
        return self.plan_repo.list_all()

    def get_lesson_ids(self, lesson_plan_id: int) -> List[int]:
        return self.lesson_link_repo.related_ids(lesson_plan_id)

    def get_activity_ids(self, lesson_plan_id: int) -> List[int]:
        return self.activity_link_repo.related_ids(lesson_plan_id)

    def link_lessons(self, lesson_plan_id: int, lesson_ids: Iterable[int]) -> LinkDelta:
        """Make the plan's linked lessons exactly `lesson_ids`."""
        return self._reconcile(self.lesson_link_repo, lesson_plan_id, lesson_ids)

    def link_activities(self, lesson_plan_id: int, activity_ids: Iterable[int]) -> LinkDelta:
        """Make the plan's linked activities exactly `activity_ids`."""
        return self._reconcile(self.activity_link_repo, lesson_plan_id, activity_ids)

    def to_schema(self, plan: models.LessonPlan) -> schemas.LessonPlanOut:
        """Build the API representation including the current link ids."""
        out = schemas.LessonPlanOut.model_validate(plan)
        out.lesson_ids = self.get_lesson_ids(plan.id)
        out.activity_ids = self.get_activity_ids(plan.id)
        return out

    def _reconcile(self, repo: repositories.LinkRepository, lesson_plan_id: int, desired: Iterable[int]) -> LinkDelta:
        delta = reconcile_links(
            repo.related_ids(lesson_plan_id),
            desired,
            exists=lambda related_id: repo.exists(lesson_plan_id, related_id),
            link=lambda related_id: repo.create(lesson_plan_id, related_id),
            unlink=lambda related_id: repo.remove(lesson_plan_id, related_id),
            on_error=self.session.rollback,
        )
        if delta.changed or delta.failed:
            logger.info(
                "links_reconciled lesson_plan_id=%s field=%s inserted=%s deleted=%s failed=%s",
                lesson_plan_id,
                repo.related_field,
                delta.inserted,
                delta.deleted,
                delta.failed,
            )
        return delta
