"""Database models for enrollments and content progress.

Cassandra table definitions for:
- Content progress: Per user and content, versioned for compare-and-set
- Enrollments: Course enrollment with overall progress
- Lookup table: Enrollments by user, newest first

Architecture: Dual-write pattern for efficient queries by both
course_id and user_id perspectives.
"""

from datetime import UTC, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from src.core.percent import PERCENT_MAX, quantize_percent
from src.core.timestamps import ensure_utc_aware


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

# Progresso por conteudo - particionado por user_id
# version: contador para compare-and-set (UPDATE ... IF version = ?)
CONTENT_PROGRESS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.content_progress (
    user_id UUID,
    content_id UUID,
    progress_percent DECIMAL,
    time_spent INT,
    completed BOOLEAN,
    completed_at TIMESTAMP,
    last_accessed TIMESTAMP,
    created_at TIMESTAMP,
    version INT,
    PRIMARY KEY (user_id, content_id)
)
"""

# Inscricoes em cursos - particionado por course_id
# version: contador para compare-and-set do recalculo do curso
ENROLLMENTS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.enrollments (
    course_id UUID,
    user_id UUID,
    enrolled_at TIMESTAMP,
    completed_at TIMESTAMP,
    progress_percent DECIMAL,
    version INT,
    PRIMARY KEY (course_id, user_id)
)
"""

# Lookup: cursos por usuario - enrolled_at nunca muda, a chave e estavel
# version: so aceita escritas de versoes mais novas (IF version < ?)
ENROLLMENTS_BY_USER_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.enrollments_by_user (
    user_id UUID,
    enrolled_at TIMESTAMP,
    course_id UUID,
    completed_at TIMESTAMP,
    progress_percent DECIMAL,
    version INT,
    PRIMARY KEY (user_id, enrolled_at, course_id)
) WITH CLUSTERING ORDER BY (enrolled_at DESC, course_id ASC)
"""

PROGRESS_TABLES_CQL = [
    CONTENT_PROGRESS_TABLE_CQL,
    ENROLLMENTS_TABLE_CQL,
    ENROLLMENTS_BY_USER_TABLE_CQL,
]


# ==============================================================================
# Entity Classes
# ==============================================================================


class ContentProgress:
    """Progress of a user on a single content item.

    Attributes:
        user_id: User UUID
        content_id: Content UUID
        progress_percent: Percentage consumed (0-100)
        time_spent: Accumulated minutes, never decreases
        completed: Completion flag
        completed_at: First completion timestamp, never cleared
        last_accessed: Last write timestamp
        created_at: First write timestamp
        version: Compare-and-set counter
    """

    def __init__(
        self,
        user_id: UUID,
        content_id: UUID,
        progress_percent: Decimal = Decimal(0),
        time_spent: int = 0,
        completed: bool = False,
        completed_at: datetime | None = None,
        last_accessed: datetime | None = None,
        created_at: datetime | None = None,
        version: int = 0,
    ):
        self.user_id = user_id
        self.content_id = content_id
        self.progress_percent = quantize_percent(progress_percent)
        self.time_spent = time_spent
        self.completed = completed
        self.completed_at = ensure_utc_aware(completed_at)
        self.last_accessed = ensure_utc_aware(last_accessed) or datetime.now(UTC)
        self.created_at = ensure_utc_aware(created_at) or self.last_accessed
        self.version = version

    @classmethod
    def from_row(cls, row: Any) -> "ContentProgress":
        """Create ContentProgress instance from Cassandra row."""
        return cls(
            user_id=row.user_id,
            content_id=row.content_id,
            progress_percent=row.progress_percent or Decimal(0),
            time_spent=row.time_spent or 0,
            completed=bool(row.completed),
            completed_at=row.completed_at,
            last_accessed=row.last_accessed,
            created_at=row.created_at,
            version=row.version or 0,
        )

    def __repr__(self) -> str:
        return (
            f"<ContentProgress user={self.user_id} content={self.content_id} "
            f"{self.progress_percent}% v{self.version}>"
        )


class ProgressPatch:
    """Partial progress update; unset fields leave the stored value alone.

    Attributes:
        progress: New percentage (0-100), replaces the stored value
        time_spent: Minutes to add to the stored total
        completed: New completion flag
    """

    def __init__(
        self,
        progress: Decimal | None = None,
        time_spent: int | None = None,
        completed: bool | None = None,
    ):
        self.progress = progress
        self.time_spent = time_spent
        self.completed = completed

    @property
    def is_empty(self) -> bool:
        return self.progress is None and self.time_spent is None and self.completed is None

    def apply(self, current: ContentProgress, now: datetime) -> ContentProgress:
        """Return the progress row that results from applying this patch."""
        completed = current.completed if self.completed is None else self.completed
        completed_at = current.completed_at
        if completed and completed_at is None:
            completed_at = now

        return ContentProgress(
            user_id=current.user_id,
            content_id=current.content_id,
            progress_percent=(
                current.progress_percent if self.progress is None else self.progress
            ),
            time_spent=current.time_spent + (self.time_spent or 0),
            completed=completed,
            completed_at=completed_at,
            last_accessed=now,
            created_at=current.created_at,
            version=current.version + 1,
        )

    def __repr__(self) -> str:
        return (
            f"<ProgressPatch progress={self.progress} "
            f"time_spent={self.time_spent} completed={self.completed}>"
        )


class Enrollment:
    """Course enrollment entity.

    Attributes:
        course_id: Course UUID
        user_id: User UUID
        enrolled_at: Enrollment timestamp (immutable)
        completed_at: Set once when progress first reaches 100
        progress_percent: Mean progress over the course content (0-100)
        version: Compare-and-set counter
    """

    def __init__(
        self,
        course_id: UUID,
        user_id: UUID,
        enrolled_at: datetime | None = None,
        completed_at: datetime | None = None,
        progress_percent: Decimal = Decimal(0),
        version: int = 0,
    ):
        self.course_id = course_id
        self.user_id = user_id
        self.enrolled_at = ensure_utc_aware(enrolled_at) or datetime.now(UTC)
        self.completed_at = ensure_utc_aware(completed_at)
        self.progress_percent = quantize_percent(progress_percent)
        self.version = version

    @property
    def is_completed(self) -> bool:
        """Check if course is completed."""
        return self.completed_at is not None

    def with_progress(self, percent: Decimal, now: datetime) -> "Enrollment":
        """Return the next version carrying a new course mean.

        An existing `completed_at` is kept; otherwise it is set to `now`
        when the mean reaches 100.
        """
        completed_at = self.completed_at
        if completed_at is None and percent >= PERCENT_MAX:
            completed_at = now
        return Enrollment(
            course_id=self.course_id,
            user_id=self.user_id,
            enrolled_at=self.enrolled_at,
            completed_at=completed_at,
            progress_percent=percent,
            version=self.version + 1,
        )

    @classmethod
    def from_row(cls, row: Any) -> "Enrollment":
        """Create Enrollment instance from Cassandra row."""
        return cls(
            course_id=row.course_id,
            user_id=row.user_id,
            enrolled_at=row.enrolled_at,
            completed_at=row.completed_at,
            progress_percent=row.progress_percent or Decimal(0),
            version=row.version or 0,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "course_id": self.course_id,
            "user_id": self.user_id,
            "enrolled_at": self.enrolled_at,
            "completed_at": self.completed_at,
            "progress_percent": self.progress_percent,
        }

    def __repr__(self) -> str:
        return (
            f"<Enrollment user={self.user_id} course={self.course_id} "
            f"{self.progress_percent}% v{self.version}>"
        )
