"""Pydantic schemas for enrollments and progress tracking.

Request and response models for:
- Content progress updates
- Course enrollment
- Progress queries
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from src.catalog.models import Course
from src.catalog.schemas import CourseResponse
from src.core.repository import CQL_INT_MAX

from .models import ContentProgress, Enrollment, ProgressPatch


# ==============================================================================
# Content Progress Schemas
# ==============================================================================


class RecordProgressRequest(BaseModel):
    """Partial progress update; omitted fields are left unchanged."""

    progress: Decimal | None = Field(None, description="0-100 percentage")
    time_spent: int | None = Field(
        None, le=CQL_INT_MAX, description="Minutes to add to the total"
    )
    completed: bool | None = None

    def to_patch(self) -> ProgressPatch:
        return ProgressPatch(
            progress=self.progress,
            time_spent=self.time_spent,
            completed=self.completed,
        )


class ContentProgressResponse(BaseModel):
    """Content progress response."""

    model_config = ConfigDict(from_attributes=True)

    content_id: UUID
    progress_percent: Decimal = Field(description="0-100 percentage")
    time_spent: int = Field(description="Accumulated minutes")
    completed: bool
    completed_at: datetime | None = None
    last_accessed: datetime
    created_at: datetime

    @classmethod
    def from_entity(cls, entity: ContentProgress) -> "ContentProgressResponse":
        """Create response from entity."""
        return cls(
            content_id=entity.content_id,
            progress_percent=entity.progress_percent,
            time_spent=entity.time_spent,
            completed=entity.completed,
            completed_at=entity.completed_at,
            last_accessed=entity.last_accessed,
            created_at=entity.created_at,
        )


class ProgressListResponse(BaseModel):
    """User progress, most recently accessed first."""

    items: list[ContentProgressResponse]
    total: int


class CourseProgressResponse(BaseModel):
    """Course-level progress (mean over touched content)."""

    course_id: UUID
    progress_percent: Decimal


# ==============================================================================
# Enrollment Schemas
# ==============================================================================


class EnrollRequest(BaseModel):
    """Request to enroll in a course."""

    course_id: UUID = Field(..., description="Course UUID")


class EnrollmentResponse(BaseModel):
    """Enrollment response."""

    course_id: UUID
    user_id: UUID
    enrolled_at: datetime
    completed_at: datetime | None = None
    progress_percent: Decimal
    is_completed: bool
    course: CourseResponse | None = None

    @classmethod
    def from_entity(
        cls,
        entity: Enrollment,
        course: Course | None = None,
    ) -> "EnrollmentResponse":
        """Create response from entity."""
        return cls(
            course_id=entity.course_id,
            user_id=entity.user_id,
            enrolled_at=entity.enrolled_at,
            completed_at=entity.completed_at,
            progress_percent=entity.progress_percent,
            is_completed=entity.is_completed,
            course=CourseResponse.model_validate(course) if course else None,
        )


class EnrollmentListResponse(BaseModel):
    """User enrollments, newest first."""

    items: list[EnrollmentResponse]
    total: int
