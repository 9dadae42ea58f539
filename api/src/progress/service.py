"""Enrollment ledger and progress tracking service layer.

Business logic for:
- Course enrollment (idempotent)
- Per-content progress upserts with optimistic compare-and-set
- Course progress aggregation and one-time completion
"""

from datetime import UTC, datetime
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from src.catalog.models import Course
from src.catalog.service import CatalogService, ContentNotFoundError, CourseNotFoundError
from src.core.exceptions import ConflictError, NotFoundError, ValidationError
from src.core.percent import is_valid_percent, mean_percent, quantize_percent
from src.core.repository import CQL_INT_MAX, CassandraRepository

from .models import ContentProgress, Enrollment, ProgressPatch


if TYPE_CHECKING:
    from cassandra.cluster import Session

logger = structlog.get_logger(__name__)

DEFAULT_CAS_ATTEMPTS = 5


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class NotEnrolledError(NotFoundError):
    """User not enrolled in course."""

    default_code = "not_enrolled"

    def __init__(self, message: str = "Usuario nao inscrito no curso"):
        super().__init__(message)


class InvalidProgressError(ValidationError):
    """Progress patch violates a range rule."""

    default_code = "invalid_progress"


class ProgressContentionError(ConflictError):
    """Concurrent writers kept winning the compare-and-set."""

    default_code = "progress_contention"

    def __init__(self, message: str = "Progresso alterado concorrentemente, tente novamente"):
        super().__init__(message)


# ==============================================================================
# Progress Service
# ==============================================================================


class ProgressService(CassandraRepository):
    """Service for enrollments and content progress."""

    def __init__(
        self,
        session: "Session",
        keyspace: str,
        catalog_service: CatalogService,
        max_cas_attempts: int = DEFAULT_CAS_ATTEMPTS,
    ):
        """Initialize with Cassandra session and the catalog reference."""
        self.catalog_service = catalog_service
        self.max_cas_attempts = max_cas_attempts
        super().__init__(session, keyspace)

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient execution."""
        # Content progress
        self._get_content_progress = self._prepare("""
            SELECT * FROM {keyspace}.content_progress
            WHERE user_id = ? AND content_id = ?
        """)

        self._get_user_progress = self._prepare("""
            SELECT * FROM {keyspace}.content_progress WHERE user_id = ?
        """)

        self._get_progress_for_contents = self._prepare("""
            SELECT * FROM {keyspace}.content_progress
            WHERE user_id = ? AND content_id IN ?
        """)

        self._insert_content_progress = self._prepare("""
            INSERT INTO {keyspace}.content_progress
            (user_id, content_id, progress_percent, time_spent, completed,
             completed_at, last_accessed, created_at, version)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            IF NOT EXISTS
        """)

        self._update_content_progress = self._prepare("""
            UPDATE {keyspace}.content_progress
            SET progress_percent = ?, time_spent = ?, completed = ?,
                completed_at = ?, last_accessed = ?, version = ?
            WHERE user_id = ? AND content_id = ?
            IF version = ?
        """)

        # Enrollments
        self._get_enrollment = self._prepare("""
            SELECT * FROM {keyspace}.enrollments
            WHERE course_id = ? AND user_id = ?
        """)

        self._insert_enrollment = self._prepare("""
            INSERT INTO {keyspace}.enrollments
            (course_id, user_id, enrolled_at, completed_at, progress_percent, version)
            VALUES (?, ?, ?, ?, ?, ?)
            IF NOT EXISTS
        """)

        self._update_enrollment_progress = self._prepare("""
            UPDATE {keyspace}.enrollments
            SET progress_percent = ?, completed_at = ?, version = ?
            WHERE course_id = ? AND user_id = ?
            IF version = ?
        """)

        # Enrollments by user (lookup)
        self._get_user_enrollments = self._prepare("""
            SELECT * FROM {keyspace}.enrollments_by_user WHERE user_id = ?
        """)

        self._insert_enrollment_by_user = self._prepare("""
            INSERT INTO {keyspace}.enrollments_by_user
            (user_id, enrolled_at, course_id, completed_at, progress_percent, version)
            VALUES (?, ?, ?, ?, ?, ?)
        """)

        self._update_enrollment_by_user = self._prepare("""
            UPDATE {keyspace}.enrollments_by_user
            SET progress_percent = ?, completed_at = ?, version = ?
            WHERE user_id = ? AND enrolled_at = ? AND course_id = ?
            IF version < ?
        """)

    # ==========================================================================
    # Enrollment Operations
    # ==========================================================================

    async def enroll(self, user_id: UUID, course_id: UUID) -> Enrollment:
        """Enroll user in a course.

        Idempotent: enrolling twice returns the existing enrollment unchanged.

        Raises:
            CourseNotFoundError: If the course is not in the catalog
        """
        if not await self.catalog_service.get_course(course_id):
            raise CourseNotFoundError

        enrollment = Enrollment(
            course_id=course_id,
            user_id=user_id,
            enrolled_at=datetime.now(UTC),
        )

        applied = await self._execute_conditional(
            self._insert_enrollment,
            [
                enrollment.course_id,
                enrollment.user_id,
                enrollment.enrolled_at,
                enrollment.completed_at,
                enrollment.progress_percent,
                enrollment.version,
            ],
        )
        if not applied:
            existing = await self.get_enrollment(user_id, course_id)
            logger.info(
                "enrollment_already_exists",
                user_id=str(user_id),
                course_id=str(course_id),
            )
            return existing or enrollment

        # Dual write: lookup row only for the insert that won
        await self._execute(
            self._insert_enrollment_by_user,
            [
                enrollment.user_id,
                enrollment.enrolled_at,
                enrollment.course_id,
                enrollment.completed_at,
                enrollment.progress_percent,
                enrollment.version,
            ],
        )

        logger.info(
            "user_enrolled",
            user_id=str(user_id),
            course_id=str(course_id),
        )

        return enrollment

    async def get_enrollment(self, user_id: UUID, course_id: UUID) -> Enrollment | None:
        """Get enrollment by user and course."""
        row = await self._fetch_one(self._get_enrollment, [course_id, user_id])
        return Enrollment.from_row(row) if row else None

    async def get_user_enrollments(self, user_id: UUID) -> list[Enrollment]:
        """Get a user's enrollments from the lookup table, newest first."""
        rows = await self._fetch_all(self._get_user_enrollments, [user_id])
        return [Enrollment.from_row(row) for row in rows]

    async def list_enrollments(
        self, user_id: UUID
    ) -> list[tuple[Enrollment, Course | None]]:
        """Get a user's enrollments, newest first, each with its course."""
        result = []
        for enrollment in await self.get_user_enrollments(user_id):
            course = await self.catalog_service.get_course(enrollment.course_id)
            result.append((enrollment, course))
        return result

    async def recompute_course_progress(
        self, user_id: UUID, course_id: UUID
    ) -> Enrollment:
        """Recalculate and persist an enrollment's course progress.

        Raises:
            NotEnrolledError: If the user is not enrolled in the course
        """
        enrollment = await self.get_enrollment(user_id, course_id)
        if not enrollment:
            raise NotEnrolledError
        return await self._refresh_enrollment(enrollment)

    async def _refresh_enrollment(self, enrollment: Enrollment) -> Enrollment:
        """Write the current course mean to both enrollment tables.

        The enrollment row is a compare-and-set on `version`: on contention
        the row is re-read and the mean recomputed. The lookup row only
        accepts newer versions, so a late writer never rolls it back.

        Raises:
            NotEnrolledError: If the enrollment disappeared between retries
            ProgressContentionError: If every compare-and-set attempt lost
        """
        user_id, course_id = enrollment.user_id, enrollment.course_id
        current = enrollment

        for attempt in range(1, self.max_cas_attempts + 1):
            percent = await self.get_course_progress(user_id, course_id)
            updated = current.with_progress(percent, datetime.now(UTC))

            applied = await self._execute_conditional(
                self._update_enrollment_progress,
                [
                    updated.progress_percent,
                    updated.completed_at,
                    updated.version,
                    course_id,
                    user_id,
                    current.version,
                ],
            )
            if applied:
                break

            logger.debug(
                "enrollment_write_contended",
                user_id=str(user_id),
                course_id=str(course_id),
                attempt=attempt,
            )
            current = await self.get_enrollment(user_id, course_id)
            if current is None:
                raise NotEnrolledError
        else:
            logger.warning(
                "enrollment_write_gave_up",
                user_id=str(user_id),
                course_id=str(course_id),
                attempts=self.max_cas_attempts,
            )
            raise ProgressContentionError

        if updated.is_completed and not current.is_completed:
            logger.info(
                "course_completed",
                user_id=str(user_id),
                course_id=str(course_id),
            )

        lookup_applied = await self._execute_conditional(
            self._update_enrollment_by_user,
            [
                updated.progress_percent,
                updated.completed_at,
                updated.version,
                user_id,
                updated.enrolled_at,
                course_id,
                updated.version,
            ],
        )
        if not lookup_applied:
            logger.debug(
                "enrollment_lookup_superseded",
                user_id=str(user_id),
                course_id=str(course_id),
                version=updated.version,
            )

        return updated

    # ==========================================================================
    # Content Progress Operations
    # ==========================================================================

    async def record_progress(
        self,
        user_id: UUID,
        content_id: UUID,
        patch: ProgressPatch,
    ) -> ContentProgress:
        """Apply a progress patch for a user and content item.

        Validation runs before any write. The upsert is a compare-and-set on
        the row version; on contention the row is re-read and the patch
        re-applied. Every enrolled course containing the content is then
        recomputed.

        Raises:
            InvalidProgressError: If the patch is empty, out of range, or
                would overflow the accumulated time
            ContentNotFoundError: If the content is not in the catalog
            ProgressContentionError: If every compare-and-set attempt lost
        """
        self._validate_patch(patch)

        if not await self.catalog_service.get_content(content_id):
            raise ContentNotFoundError

        progress = await self._write_progress(user_id, content_id, patch)

        logger.info(
            "progress_recorded",
            user_id=str(user_id),
            content_id=str(content_id),
            progress=str(progress.progress_percent),
            completed=progress.completed,
            version=progress.version,
        )

        await self._propagate_progress(user_id, content_id)

        return progress

    def _validate_patch(self, patch: ProgressPatch) -> None:
        if patch.is_empty:
            msg = "Informe progress, time_spent ou completed"
            raise InvalidProgressError(msg, code="empty_patch")

        if patch.progress is not None and not is_valid_percent(patch.progress):
            msg = "Progresso deve estar entre 0 e 100"
            raise InvalidProgressError(msg)

        if patch.time_spent is not None and patch.time_spent < 0:
            msg = "Tempo de estudo nao pode ser negativo"
            raise InvalidProgressError(msg, code="invalid_time_spent")

        if patch.time_spent is not None and patch.time_spent > CQL_INT_MAX:
            msg = f"Tempo de estudo deve ser no maximo {CQL_INT_MAX}"
            raise InvalidProgressError(msg, code="invalid_time_spent")

    async def _write_progress(
        self,
        user_id: UUID,
        content_id: UUID,
        patch: ProgressPatch,
    ) -> ContentProgress:
        for attempt in range(1, self.max_cas_attempts + 1):
            now = datetime.now(UTC)
            current = await self.get_content_progress(user_id, content_id)

            if current is None:
                blank = ContentProgress(
                    user_id=user_id,
                    content_id=content_id,
                    last_accessed=now,
                    created_at=now,
                )
                updated = patch.apply(blank, now)
                applied = await self._execute_conditional(
                    self._insert_content_progress,
                    [
                        updated.user_id,
                        updated.content_id,
                        updated.progress_percent,
                        updated.time_spent,
                        updated.completed,
                        updated.completed_at,
                        updated.last_accessed,
                        updated.created_at,
                        updated.version,
                    ],
                )
            else:
                updated = patch.apply(current, now)
                if updated.time_spent > CQL_INT_MAX:
                    msg = "Tempo de estudo acumulado excede o limite"
                    raise InvalidProgressError(msg, code="time_spent_overflow")
                applied = await self._execute_conditional(
                    self._update_content_progress,
                    [
                        updated.progress_percent,
                        updated.time_spent,
                        updated.completed,
                        updated.completed_at,
                        updated.last_accessed,
                        updated.version,
                        user_id,
                        content_id,
                        current.version,
                    ],
                )

            if applied:
                return updated

            logger.debug(
                "progress_write_contended",
                user_id=str(user_id),
                content_id=str(content_id),
                attempt=attempt,
            )

        logger.warning(
            "progress_write_gave_up",
            user_id=str(user_id),
            content_id=str(content_id),
            attempts=self.max_cas_attempts,
        )
        raise ProgressContentionError

    async def _propagate_progress(self, user_id: UUID, content_id: UUID) -> None:
        """Recompute every enrolled course that contains the content."""
        course_ids = await self.catalog_service.get_course_ids_for_content(content_id)
        for course_id in course_ids:
            enrollment = await self.get_enrollment(user_id, course_id)
            if enrollment:
                await self._refresh_enrollment(enrollment)

    async def get_content_progress(
        self, user_id: UUID, content_id: UUID
    ) -> ContentProgress | None:
        """Get progress row for a user and content item."""
        row = await self._fetch_one(self._get_content_progress, [user_id, content_id])
        return ContentProgress.from_row(row) if row else None

    async def get_progress(
        self, user_id: UUID, content_id: UUID | None = None
    ) -> list[ContentProgress]:
        """Get a user's progress rows, most recently accessed first."""
        if content_id is not None:
            progress = await self.get_content_progress(user_id, content_id)
            return [progress] if progress else []

        rows = await self._fetch_all(self._get_user_progress, [user_id])
        items = [ContentProgress.from_row(row) for row in rows]
        items.sort(key=lambda p: p.last_accessed, reverse=True)
        return items

    async def get_course_progress(self, user_id: UUID, course_id: UUID) -> Decimal:
        """Mean progress over the course content the user has touched.

        Content without a progress row is ignored rather than counted as 0.
        Returns 0 when the course has no content or the user has no rows.
        """
        content_ids = await self.catalog_service.get_course_content_ids(course_id)
        if not content_ids:
            return quantize_percent(0)

        rows = await self._fetch_all(
            self._get_progress_for_contents, [user_id, content_ids]
        )
        return mean_percent(row.progress_percent or Decimal(0) for row in rows)
