"""Aggregation service.

Stateless: every call recomputes from the owning modules, nothing is cached.
"""

from uuid import UUID

import structlog

from src.auth.directory import UserDirectory
from src.auth.permissions import UserRole
from src.catalog.service import CatalogService
from src.core.percent import mean_percent
from src.notes.service import NotesReader
from src.progress.service import ProgressService
from src.quizzes.service import QuizService

from .schemas import AdminStats, UserStats


logger = structlog.get_logger(__name__)


class StatsService:
    """Derives user and platform statistics from the other modules."""

    def __init__(
        self,
        progress_service: ProgressService,
        quiz_service: QuizService,
        catalog_service: CatalogService,
        notes_reader: NotesReader,
        user_directory: UserDirectory,
    ):
        self.progress_service = progress_service
        self.quiz_service = quiz_service
        self.catalog_service = catalog_service
        self.notes_reader = notes_reader
        self.user_directory = user_directory

    async def get_user_stats(self, user_id: UUID) -> UserStats:
        """Summarize a user's enrollments, study time, quiz scores and notes.

        `average_quiz_score` covers submitted attempts only and is 0 when
        there are none.
        """
        enrollments = await self.progress_service.get_user_enrollments(user_id)
        progress = await self.progress_service.get_progress(user_id)
        attempts = await self.quiz_service.list_attempts(user_id)
        notes_count = await self.notes_reader.count_user_notes(user_id)

        scores = [
            a.percentage
            for a in attempts
            if a.is_completed and a.percentage is not None
        ]

        stats = UserStats(
            total_enrollments=len(enrollments),
            completed_courses=sum(1 for e in enrollments if e.is_completed),
            total_study_time=sum(p.time_spent for p in progress),
            average_quiz_score=mean_percent(scores),
            notes_count=notes_count,
        )
        logger.debug("user_stats_computed", user_id=str(user_id))
        return stats

    async def get_admin_stats(self) -> AdminStats:
        """Platform totals; all zero on an empty dataset."""
        return AdminStats(
            total_students=await self.user_directory.count_users(UserRole.STUDENT),
            total_content=await self.catalog_service.count_contents(),
            total_courses=await self.catalog_service.count_courses(),
            total_quizzes=await self.quiz_service.count_quizzes(),
        )
