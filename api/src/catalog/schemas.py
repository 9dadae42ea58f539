"""Pydantic schemas for the content catalog."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from src.core.repository import CQL_INT_MAX

from .models import ContentType


class RegisterContentRequest(BaseModel):
    """Request to register trackable content."""

    content_type: ContentType
    content_id: UUID | None = Field(
        None, description="Id assigned by the content subsystem"
    )


class CreateCourseRequest(BaseModel):
    """Request to create a course."""

    title: str = Field(..., min_length=1, max_length=255)
    course_id: UUID | None = None


class AddCourseContentRequest(BaseModel):
    """Request to link content to a course."""

    content_id: UUID
    position: int | None = Field(
        None, ge=0, le=CQL_INT_MAX, description="Appended when omitted"
    )


class ContentResponse(BaseModel):
    """Content response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    content_type: ContentType
    owner_id: UUID
    created_at: datetime


class CourseResponse(BaseModel):
    """Course response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title: str
    owner_id: UUID
    created_at: datetime


class CourseContentResponse(BaseModel):
    """Course membership entry."""

    model_config = ConfigDict(from_attributes=True)

    course_id: UUID
    content_id: UUID
    position: int
    added_at: datetime


class CourseContentListResponse(BaseModel):
    """Ordered course membership."""

    items: list[CourseContentResponse]
    total: int
