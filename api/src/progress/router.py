"""Progress tracking and enrollment API endpoints.

Provides routes for:
- Content progress updates
- Progress queries (per content and per course)
- Course enrollment and recomputation
"""

from uuid import UUID

from fastapi import APIRouter, Query, status

from src.auth.dependencies import CurrentUser
from src.core.exceptions import LearningRecordError, to_http_exception

from .dependencies import ProgressServiceDep
from .schemas import (
    ContentProgressResponse,
    CourseProgressResponse,
    EnrollmentListResponse,
    EnrollmentResponse,
    EnrollRequest,
    ProgressListResponse,
    RecordProgressRequest,
)


router = APIRouter(prefix="/v1/progress", tags=["progress"])
enrollments_router = APIRouter(prefix="/v1/enrollments", tags=["enrollments"])


# ==============================================================================
# Progress Endpoints
# ==============================================================================


@router.put(
    "/contents/{content_id}",
    response_model=ContentProgressResponse,
    summary="Record content progress",
    responses={
        404: {"description": "Content not found"},
        409: {"description": "Concurrent update, retry"},
        422: {"description": "Progress out of range"},
    },
)
async def record_progress(
    content_id: UUID,
    data: RecordProgressRequest,
    progress_service: ProgressServiceDep,
    user: CurrentUser,
) -> ContentProgressResponse:
    """Record progress on a content item.

    `progress` replaces the stored percentage, `time_spent` is added to the
    accumulated total, `completed` toggles the completion flag.
    """
    try:
        progress = await progress_service.record_progress(
            user_id=user.id,
            content_id=content_id,
            patch=data.to_patch(),
        )
    except LearningRecordError as e:
        raise to_http_exception(e) from e
    return ContentProgressResponse.from_entity(progress)


@router.get(
    "",
    response_model=ProgressListResponse,
    summary="List my progress",
)
async def list_progress(
    progress_service: ProgressServiceDep,
    user: CurrentUser,
    content_id: UUID | None = Query(None, description="Filter by content"),
) -> ProgressListResponse:
    """Get the caller's progress, most recently accessed first."""
    try:
        items = await progress_service.get_progress(user.id, content_id)
    except LearningRecordError as e:
        raise to_http_exception(e) from e
    return ProgressListResponse(
        items=[ContentProgressResponse.from_entity(p) for p in items],
        total=len(items),
    )


@router.get(
    "/courses/{course_id}",
    response_model=CourseProgressResponse,
    summary="Get course progress",
)
async def get_course_progress(
    course_id: UUID,
    progress_service: ProgressServiceDep,
    user: CurrentUser,
) -> CourseProgressResponse:
    """Get the caller's mean progress over a course's content."""
    try:
        percent = await progress_service.get_course_progress(user.id, course_id)
    except LearningRecordError as e:
        raise to_http_exception(e) from e
    return CourseProgressResponse(course_id=course_id, progress_percent=percent)


# ==============================================================================
# Enrollment Endpoints
# ==============================================================================


@enrollments_router.post(
    "",
    response_model=EnrollmentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Enroll in course",
    responses={404: {"description": "Course not found"}},
)
async def enroll(
    data: EnrollRequest,
    progress_service: ProgressServiceDep,
    user: CurrentUser,
) -> EnrollmentResponse:
    """Enroll the caller in a course. Enrolling twice returns the same enrollment."""
    try:
        enrollment = await progress_service.enroll(user.id, data.course_id)
    except LearningRecordError as e:
        raise to_http_exception(e) from e
    return EnrollmentResponse.from_entity(enrollment)


@enrollments_router.get(
    "",
    response_model=EnrollmentListResponse,
    summary="List my enrollments",
)
async def list_enrollments(
    progress_service: ProgressServiceDep,
    user: CurrentUser,
) -> EnrollmentListResponse:
    """Get the caller's enrollments, newest first."""
    try:
        pairs = await progress_service.list_enrollments(user.id)
    except LearningRecordError as e:
        raise to_http_exception(e) from e
    return EnrollmentListResponse(
        items=[EnrollmentResponse.from_entity(e, course) for e, course in pairs],
        total=len(pairs),
    )


@enrollments_router.post(
    "/{course_id}/recompute",
    response_model=EnrollmentResponse,
    summary="Recompute course progress",
    responses={404: {"description": "Not enrolled"}},
)
async def recompute_course_progress(
    course_id: UUID,
    progress_service: ProgressServiceDep,
    user: CurrentUser,
) -> EnrollmentResponse:
    """Recalculate the caller's enrollment progress from content progress."""
    try:
        enrollment = await progress_service.recompute_course_progress(
            user.id, course_id
        )
    except LearningRecordError as e:
        raise to_http_exception(e) from e
    return EnrollmentResponse.from_entity(enrollment)
