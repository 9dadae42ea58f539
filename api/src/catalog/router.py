"""Content catalog API endpoints (admin only)."""

from uuid import UUID

from fastapi import APIRouter, status

from src.auth.dependencies import AdminUser
from src.core.exceptions import LearningRecordError, to_http_exception

from .dependencies import CatalogServiceDep
from .schemas import (
    AddCourseContentRequest,
    ContentResponse,
    CourseContentListResponse,
    CourseContentResponse,
    CourseResponse,
    CreateCourseRequest,
    RegisterContentRequest,
)
from .service import CourseNotFoundError


router = APIRouter(prefix="/v1/catalog", tags=["catalog"])


@router.post(
    "/contents",
    response_model=ContentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register content",
)
async def register_content(
    data: RegisterContentRequest,
    catalog_service: CatalogServiceDep,
    admin: AdminUser,
) -> ContentResponse:
    """Register a book, video or course item so progress can be tracked."""
    try:
        content = await catalog_service.register_content(
            content_type=data.content_type,
            owner_id=admin.id,
            content_id=data.content_id,
        )
    except LearningRecordError as e:
        raise to_http_exception(e) from e
    return ContentResponse.model_validate(content)


@router.post(
    "/courses",
    response_model=CourseResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create course",
)
async def create_course(
    data: CreateCourseRequest,
    catalog_service: CatalogServiceDep,
    admin: AdminUser,
) -> CourseResponse:
    """Create an empty course."""
    try:
        course = await catalog_service.create_course(
            title=data.title,
            owner_id=admin.id,
            course_id=data.course_id,
        )
    except LearningRecordError as e:
        raise to_http_exception(e) from e
    return CourseResponse.model_validate(course)


@router.post(
    "/courses/{course_id}/contents",
    response_model=CourseContentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add content to course",
    responses={
        404: {"description": "Course or content not found"},
        409: {"description": "Content already in course"},
    },
)
async def add_course_content(
    course_id: UUID,
    data: AddCourseContentRequest,
    catalog_service: CatalogServiceDep,
    admin: AdminUser,
) -> CourseContentResponse:
    """Link content to a course at a position."""
    try:
        link = await catalog_service.add_content_to_course(
            course_id=course_id,
            content_id=data.content_id,
            position=data.position,
        )
    except LearningRecordError as e:
        raise to_http_exception(e) from e
    return CourseContentResponse.model_validate(link)


@router.get(
    "/courses/{course_id}/contents",
    response_model=CourseContentListResponse,
    summary="List course content",
)
async def list_course_contents(
    course_id: UUID,
    catalog_service: CatalogServiceDep,
    admin: AdminUser,
) -> CourseContentListResponse:
    """List course membership ordered by position."""
    try:
        if not await catalog_service.get_course(course_id):
            raise CourseNotFoundError
        links = await catalog_service.get_course_contents(course_id)
    except LearningRecordError as e:
        raise to_http_exception(e) from e
    items = [CourseContentResponse.model_validate(link) for link in links]
    return CourseContentListResponse(items=items, total=len(items))
