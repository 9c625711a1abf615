"""Pydantic request/response schemas used by the API.

Schemas keep API input/output shapes stable and provide validation for
controller handlers and tests. Input schemas accept an optional `id`
because updates are sent as full replacements of the stored entity.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class LessonIn(BaseModel):
    """Request body for creating or replacing a lesson."""
    id: Optional[int] = None
    course: str = Field(min_length=1, max_length=500)
    chapter: int
    title: Optional[str] = Field(default=None, max_length=500)
    text: Optional[str] = Field(default=None, max_length=4000)
    required: bool = False


class LessonOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    course: str
    chapter: int
    title: Optional[str] = None
    text: Optional[str] = None
    required: bool = False
    created_at: datetime
    updated_at: datetime


class LessonPlanIn(BaseModel):
    """Request body for a lesson plan.

    `lesson_ids` and `activity_ids` are the desired link sets; they are
    applied on update only, where an omitted list means "no links".
    """
    id: Optional[int] = None
    title: str = Field(min_length=1, max_length=255)
    summary: str = Field(max_length=2000)
    objective: Optional[str] = Field(default=None, max_length=2000)
    content: Optional[str] = Field(default=None, max_length=2000)
    schedule: Optional[str] = Field(default=None, max_length=2000)
    equipment: Optional[str] = Field(default=None, max_length=2000)
    instructor_actions: Optional[str] = Field(default=None, max_length=2000)
    student_actions: Optional[str] = Field(default=None, max_length=2000)
    completion_standards: Optional[str] = Field(default=None, max_length=2000)
    presentable: bool = False
    lesson_ids: Optional[List[int]] = None
    activity_ids: Optional[List[int]] = None


class LessonPlanOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    summary: str
    objective: Optional[str] = None
    content: Optional[str] = None
    schedule: Optional[str] = None
    equipment: Optional[str] = None
    instructor_actions: Optional[str] = None
    student_actions: Optional[str] = None
    completion_standards: Optional[str] = None
    presentable: bool = False
    lesson_ids: List[int] = Field(default_factory=list)
    activity_ids: List[int] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime


class ActivityIn(BaseModel):
    """Request body for an activity; `duration` is in minutes."""
    id: Optional[int] = None
    title: str = Field(min_length=1, max_length=255)
    activity_type: Optional[str] = Field(default=None, max_length=100)
    duration: Optional[int] = Field(default=None, ge=0)
    reference_id: Optional[int] = None


class ActivityOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    activity_type: Optional[str] = None
    duration: Optional[int] = None
    reference_id: Optional[int] = None
    created_at: datetime
    updated_at: datetime
