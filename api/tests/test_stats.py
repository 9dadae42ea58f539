"""Tests for user and platform statistics."""

from datetime import UTC, datetime
from decimal import Decimal
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest

from src.auth.directory import UserDirectory
from src.auth.permissions import UserRole
from src.catalog.service import CatalogService
from src.notes.service import NotesReader
from src.progress.models import ContentProgress, Enrollment
from src.progress.service import ProgressService
from src.quizzes.models import QuizAttempt
from src.quizzes.service import QuizService
from src.stats.service import StatsService


@pytest.fixture
def progress_service() -> AsyncMock:
    service = AsyncMock(spec=ProgressService)
    service.get_user_enrollments.return_value = []
    service.get_progress.return_value = []
    return service


@pytest.fixture
def quiz_service() -> AsyncMock:
    service = AsyncMock(spec=QuizService)
    service.list_attempts.return_value = []
    service.count_quizzes.return_value = 0
    return service


@pytest.fixture
def catalog_service() -> AsyncMock:
    service = AsyncMock(spec=CatalogService)
    service.count_contents.return_value = 0
    service.count_courses.return_value = 0
    return service


@pytest.fixture
def notes_reader() -> AsyncMock:
    reader = AsyncMock(spec=NotesReader)
    reader.count_user_notes.return_value = 0
    return reader


@pytest.fixture
def user_directory() -> AsyncMock:
    directory = AsyncMock(spec=UserDirectory)
    directory.count_users.return_value = 0
    return directory


@pytest.fixture
def stats_service(
    progress_service, quiz_service, catalog_service, notes_reader, user_directory
) -> StatsService:
    return StatsService(
        progress_service=progress_service,
        quiz_service=quiz_service,
        catalog_service=catalog_service,
        notes_reader=notes_reader,
        user_directory=user_directory,
    )


def submitted(percentage: str) -> QuizAttempt:
    return QuizAttempt(
        id=uuid4(),
        user_id=uuid4(),
        quiz_id=uuid4(),
        completed_at=datetime.now(UTC),
        percentage=Decimal(percentage),
    )


class TestUserStats:
    @pytest.mark.asyncio
    async def test_new_user_is_all_zero(self, stats_service) -> None:
        stats = await stats_service.get_user_stats(uuid4())

        assert stats.total_enrollments == 0
        assert stats.completed_courses == 0
        assert stats.total_study_time == 0
        assert stats.average_quiz_score == Decimal(0)
        assert stats.notes_count == 0

    @pytest.mark.asyncio
    async def test_aggregates(
        self, stats_service, progress_service, quiz_service, notes_reader
    ) -> None:
        user_id = uuid4()
        progress_service.get_user_enrollments.return_value = [
            Enrollment(uuid4(), user_id, completed_at=datetime.now(UTC)),
            Enrollment(uuid4(), user_id),
        ]
        progress_service.get_progress.return_value = [
            ContentProgress(user_id, uuid4(), time_spent=30),
            ContentProgress(user_id, uuid4(), time_spent=45),
        ]
        open_attempt = QuizAttempt(id=uuid4(), user_id=user_id, quiz_id=uuid4())
        quiz_service.list_attempts.return_value = [
            submitted("100"),
            submitted("50"),
            open_attempt,
        ]
        notes_reader.count_user_notes.return_value = 4

        stats = await stats_service.get_user_stats(user_id)

        assert stats.total_enrollments == 2
        assert stats.completed_courses == 1
        assert stats.total_study_time == 75
        assert stats.average_quiz_score == Decimal("75.00")
        assert stats.notes_count == 4


class TestAdminStats:
    @pytest.mark.asyncio
    async def test_empty_platform(self, stats_service) -> None:
        stats = await stats_service.get_admin_stats()

        assert stats.model_dump() == {
            "total_students": 0,
            "total_content": 0,
            "total_courses": 0,
            "total_quizzes": 0,
        }

    @pytest.mark.asyncio
    async def test_counts_students_only(
        self, stats_service, user_directory, catalog_service, quiz_service
    ) -> None:
        user_directory.count_users.return_value = 12
        catalog_service.count_contents.return_value = 30
        catalog_service.count_courses.return_value = 5
        quiz_service.count_quizzes.return_value = 8

        stats = await stats_service.get_admin_stats()

        user_directory.count_users.assert_awaited_once_with(UserRole.STUDENT)
        assert stats.total_students == 12
        assert stats.total_content == 30
        assert stats.total_courses == 5
        assert stats.total_quizzes == 8
