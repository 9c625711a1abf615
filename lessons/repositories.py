"""Repository classes encapsulating database operations.

Each repository is small and focused on a single table. Repositories
return SQLModel objects, stamp the `created_at`/`updated_at` columns and
perform commits/refreshes where appropriate.
"""

from typing import Generic, List, Optional, Type, TypeVar

from sqlmodel import Session, select

from . import models

T = TypeVar("T", bound=models.TimestampedModel)


def utcnow():
    return models.utcnow()


class EntityRepository(Generic[T]):
    """Key-based CRUD for one entity table."""
    model: Type[T]

    def __init__(self, session: Session):
        self.session = session

    def save(self, entity: T) -> T:
        """Insert or update `entity` and return the refreshed instance.

        A single clock reading stamps both timestamps on insert;
        `created_at` is never changed once set.
        """
        now = utcnow()
        if entity.created_at is None:
            entity.created_at = now
        entity.updated_at = now
        self.session.add(entity)
        self.session.commit()
        self.session.refresh(entity)
        return entity

    def get(self, entity_id: int) -> Optional[T]:
        """Fetch a row by primary key."""
        return self.session.get(self.model, entity_id)

    def list_all(self) -> List[T]:
        """Return every row ordered by id."""
        stmt = select(self.model).order_by(self.model.id)
        return list(self.session.exec(stmt).all())

    def delete(self, entity: T) -> None:
        self.session.delete(entity)
        self.session.commit()


class LessonRepository(EntityRepository[models.Lesson]):
    model = models.Lesson

    def list_by_course(self, course: str) -> List[models.Lesson]:
        """Return lessons of one course ordered by chapter."""
        stmt = (
            select(models.Lesson)
            .where(models.Lesson.course == course)
            .order_by(models.Lesson.chapter, models.Lesson.id)
        )
        return list(self.session.exec(stmt).all())


class LessonPlanRepository(EntityRepository[models.LessonPlan]):
    model = models.LessonPlan


class ActivityRepository(EntityRepository[models.Activity]):
    model = models.Activity


class LinkRepository:
    """Queries over one lesson plan join table.

    Subclasses name the join model and the column holding the related id
    (`lesson_id` or `activity_id`).
    """
    model: Type[models.TimestampedModel]
    related_field: str

    def __init__(self, session: Session):
        self.session = session

    @property
    def _related_column(self):
        return getattr(self.model, self.related_field)

    def list_for_lesson_plan(self, lesson_plan_id: int) -> list:
        stmt = (
            select(self.model)
            .where(self.model.lesson_plan_id == lesson_plan_id)
            .order_by(self.model.id)
        )
        return list(self.session.exec(stmt).all())

    def list_for_related(self, related_id: int) -> list:
        stmt = select(self.model).where(self._related_column == related_id).order_by(self.model.id)
        return list(self.session.exec(stmt).all())

    def related_ids(self, lesson_plan_id: int) -> List[int]:
        """Return the related ids linked to `lesson_plan_id` in link order."""
        return [getattr(link, self.related_field) for link in self.list_for_lesson_plan(lesson_plan_id)]

    def find(self, lesson_plan_id: int, related_id: int):
        """Return the link row for the pair or `None`."""
        stmt = select(self.model).where(
            self.model.lesson_plan_id == lesson_plan_id,
            self._related_column == related_id,
        )
        return self.session.exec(stmt).first()

    def exists(self, lesson_plan_id: int, related_id: int) -> bool:
        return self.find(lesson_plan_id, related_id) is not None

    def create(self, lesson_plan_id: int, related_id: int):
        """Persist a new link row with both timestamps stamped."""
        now = utcnow()
        link = self.model(lesson_plan_id=lesson_plan_id, created_at=now, updated_at=now,
                          **{self.related_field: related_id})
        self.session.add(link)
        self.session.commit()
        self.session.refresh(link)
        return link

    def remove(self, lesson_plan_id: int, related_id: int) -> bool:
        """Delete the link for the pair; return False when none exists."""
        link = self.find(lesson_plan_id, related_id)
        if link is None:
            return False
        self.session.delete(link)
        self.session.commit()
        return True

    def delete_for_lesson_plan(self, lesson_plan_id: int) -> int:
        """Delete every link of a lesson plan and return how many were removed."""
        links = self.list_for_lesson_plan(lesson_plan_id)
        for link in links:
            self.session.delete(link)
        self.session.commit()
        return len(links)

    def delete_for_related(self, related_id: int) -> List[int]:
        """Delete every link pointing at `related_id`.

        Returns the ids of the lesson plans that lost a link.
        """
        links = self.list_for_related(related_id)
        # read before commit; deleted rows are expired afterwards
        lesson_plan_ids = [link.lesson_plan_id for link in links]
        for link in links:
            self.session.delete(link)
        self.session.commit()
        return lesson_plan_ids


class LessonPlanLessonRepository(LinkRepository):
    model = models.LessonPlanLesson
    related_field = "lesson_id"


class LessonPlanActivityRepository(LinkRepository):
    model = models.LessonPlanActivity
    related_field = "activity_id"
