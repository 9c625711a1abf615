"""SQLModel data models.

This module defines the service's database tables using SQLModel. Every
table carries an integer primary key plus `created_at`/`updated_at`
timestamps, which repositories stamp on each write. The two join tables
hold the many-to-many links between lesson plans and lessons/activities.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import UniqueConstraint
from sqlmodel import SQLModel, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TimestampedModel(SQLModel):
    """Columns shared by every table.

    Timestamps default to `None` on new instances; `created_at` is set
    once on insert and `updated_at` on every save.
    """
    id: Optional[int] = Field(default=None, primary_key=True)
    created_at: Optional[datetime] = Field(default=None, nullable=False)
    updated_at: Optional[datetime] = Field(default=None, nullable=False)


class Lesson(TimestampedModel, table=True):
    """A lesson within a course.

    `course` doubles as the lesson group (e.g. `PVT` or `IFR`) and
    `chapter` is the unit number within that course.
    """
    course: str = Field(index=True, max_length=500)
    chapter: int
    title: Optional[str] = Field(default=None, max_length=500)
    text: Optional[str] = Field(default=None, max_length=4000)
    required: bool = False


class LessonPlan(TimestampedModel, table=True):
    """A lesson plan describing how a training session is run."""
    title: str = Field(max_length=255)
    summary: str = Field(max_length=2000)
    objective: Optional[str] = Field(default=None, max_length=2000)
    content: Optional[str] = Field(default=None, max_length=2000)
    schedule: Optional[str] = Field(default=None, max_length=2000)
    equipment: Optional[str] = Field(default=None, max_length=2000)
    instructor_actions: Optional[str] = Field(default=None, max_length=2000)
    student_actions: Optional[str] = Field(default=None, max_length=2000)
    completion_standards: Optional[str] = Field(default=None, max_length=2000)
    presentable: bool = False


class Activity(TimestampedModel, table=True):
    """A training activity; `duration` is in minutes."""
    title: str = Field(max_length=255)
    activity_type: Optional[str] = Field(default=None, max_length=100)
    duration: Optional[int] = None
    reference_id: Optional[int] = None


class LessonPlanLesson(TimestampedModel, table=True):
    """Link between a `LessonPlan` and a `Lesson`."""
    __table_args__ = (UniqueConstraint("lesson_plan_id", "lesson_id"),)

    lesson_plan_id: int = Field(foreign_key="lessonplan.id", index=True)
    lesson_id: int = Field(foreign_key="lesson.id", index=True)


class LessonPlanActivity(TimestampedModel, table=True):
    """Link between a `LessonPlan` and an `Activity`."""
    __table_args__ = (UniqueConstraint("lesson_plan_id", "activity_id"),)

    lesson_plan_id: int = Field(foreign_key="lessonplan.id", index=True)
    activity_id: int = Field(foreign_key="activity.id", index=True)
