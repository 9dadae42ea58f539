"""Statistics API endpoints."""

from fastapi import APIRouter

from src.auth.dependencies import AdminUser, CurrentUser
from src.core.exceptions import LearningRecordError, to_http_exception

from .dependencies import StatsServiceDep
from .schemas import AdminStats, UserStats


router = APIRouter(prefix="/v1/stats", tags=["stats"])


@router.get("/me", response_model=UserStats, summary="My statistics")
async def get_my_stats(
    stats_service: StatsServiceDep,
    user: CurrentUser,
) -> UserStats:
    """Enrollments, completed courses, study time, quiz average and notes."""
    try:
        return await stats_service.get_user_stats(user.id)
    except LearningRecordError as e:
        raise to_http_exception(e) from e


@router.get(
    "/admin",
    response_model=AdminStats,
    summary="Platform statistics (admin only)",
    responses={403: {"description": "Permission denied"}},
)
async def get_admin_stats(
    stats_service: StatsServiceDep,
    admin: AdminUser,
) -> AdminStats:
    """Totals of students, content, courses and quizzes."""
    try:
        return await stats_service.get_admin_stats()
    except LearningRecordError as e:
        raise to_http_exception(e) from e
