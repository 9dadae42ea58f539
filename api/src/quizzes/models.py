"""Database models for quizzes.

Cassandra table definitions for:
- Quizzes: Quiz metadata and publication state
- Quiz questions: Ordered by 1-based position inside the quiz partition
- Quiz attempts: One row per attempt, submitted exactly once
- Lookup table: Attempts by user, newest first
"""

from collections.abc import Mapping
from datetime import UTC, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, NamedTuple
from uuid import UUID

from src.core.percent import quantize_percent
from src.core.timestamps import ensure_utc_aware


class QuizStatus(str, Enum):
    """Quiz publication status (draft -> published, one way)."""

    DRAFT = "draft"
    PUBLISHED = "published"


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

QUIZ_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.quizzes (
    id UUID PRIMARY KEY,
    title TEXT,
    description TEXT,
    content_id UUID,
    course_id UUID,
    time_limit INT,
    passing_score INT,
    status TEXT,
    created_by UUID,
    created_at TIMESTAMP,
    updated_at TIMESTAMP,
    published_at TIMESTAMP
)
"""

# Questoes por quiz - position e a ordem (1..n), unica por quiz
QUIZ_QUESTIONS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.quiz_questions (
    quiz_id UUID,
    position INT,
    id UUID,
    question TEXT,
    options LIST<TEXT>,
    correct_answer INT,
    points INT,
    created_at TIMESTAMP,
    PRIMARY KEY (quiz_id, position)
) WITH CLUSTERING ORDER BY (position ASC)
"""

QUIZ_ATTEMPTS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.quiz_attempts (
    id UUID PRIMARY KEY,
    user_id UUID,
    quiz_id UUID,
    started_at TIMESTAMP,
    completed_at TIMESTAMP,
    answers MAP<INT, INT>,
    score INT,
    max_score INT,
    percentage DECIMAL,
    time_spent_seconds INT
)
"""

# Lookup: tentativas por usuario - started_at nunca muda
QUIZ_ATTEMPTS_BY_USER_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.quiz_attempts_by_user (
    user_id UUID,
    started_at TIMESTAMP,
    attempt_id UUID,
    quiz_id UUID,
    completed_at TIMESTAMP,
    score INT,
    max_score INT,
    percentage DECIMAL,
    time_spent_seconds INT,
    PRIMARY KEY (user_id, started_at, attempt_id)
) WITH CLUSTERING ORDER BY (started_at DESC, attempt_id ASC)
"""

QUIZ_TABLES_CQL = [
    QUIZ_TABLE_CQL,
    QUIZ_QUESTIONS_TABLE_CQL,
    QUIZ_ATTEMPTS_TABLE_CQL,
    QUIZ_ATTEMPTS_BY_USER_TABLE_CQL,
]


# ==============================================================================
# Entity Classes
# ==============================================================================


class QuestionDraft(NamedTuple):
    """Question fields supplied by an author before an order is assigned."""

    question: str
    options: list[str]
    correct_answer: int
    points: int = 1


class Quiz:
    """Quiz entity.

    Attributes:
        id: Quiz UUID
        title: Display title
        description: Optional description
        content_id: Content the quiz belongs to (optional)
        course_id: Course the quiz belongs to (optional)
        time_limit: Time limit in minutes (optional)
        passing_score: Minimum percentage to pass (0-100)
        status: draft or published
        created_by: Author UUID
        published_at: Publication timestamp
    """

    def __init__(
        self,
        id: UUID,
        title: str,
        created_by: UUID,
        description: str | None = None,
        content_id: UUID | None = None,
        course_id: UUID | None = None,
        time_limit: int | None = None,
        passing_score: int = 70,
        status: str = QuizStatus.DRAFT.value,
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
        published_at: datetime | None = None,
    ):
        self.id = id
        self.title = title
        self.created_by = created_by
        self.description = description
        self.content_id = content_id
        self.course_id = course_id
        self.time_limit = time_limit
        self.passing_score = passing_score
        self.status = status
        self.created_at = ensure_utc_aware(created_at) or datetime.now(UTC)
        self.updated_at = ensure_utc_aware(updated_at) or self.created_at
        self.published_at = ensure_utc_aware(published_at)

    @property
    def is_published(self) -> bool:
        return self.status == QuizStatus.PUBLISHED.value

    @classmethod
    def from_row(cls, row: Any) -> "Quiz":
        """Create Quiz instance from Cassandra row."""
        return cls(
            id=row.id,
            title=row.title or "",
            created_by=row.created_by,
            description=row.description,
            content_id=row.content_id,
            course_id=row.course_id,
            time_limit=row.time_limit,
            passing_score=row.passing_score if row.passing_score is not None else 70,
            status=row.status or QuizStatus.DRAFT.value,
            created_at=row.created_at,
            updated_at=row.updated_at,
            published_at=row.published_at,
        )

    def __repr__(self) -> str:
        return f"<Quiz {self.id} {self.title!r} {self.status}>"


class QuizQuestion:
    """Multiple choice question; `position` is its 1-based order."""

    def __init__(
        self,
        quiz_id: UUID,
        position: int,
        id: UUID,
        question: str,
        options: list[str],
        correct_answer: int,
        points: int = 1,
        created_at: datetime | None = None,
    ):
        self.quiz_id = quiz_id
        self.position = position
        self.id = id
        self.question = question
        self.options = options
        self.correct_answer = correct_answer
        self.points = points
        self.created_at = ensure_utc_aware(created_at) or datetime.now(UTC)

    @classmethod
    def from_row(cls, row: Any) -> "QuizQuestion":
        """Create QuizQuestion instance from Cassandra row."""
        return cls(
            quiz_id=row.quiz_id,
            position=row.position,
            id=row.id,
            question=row.question or "",
            options=list(row.options or []),
            correct_answer=row.correct_answer,
            points=row.points or 0,
            created_at=row.created_at,
        )

    def __repr__(self) -> str:
        return f"<QuizQuestion quiz={self.quiz_id} #{self.position}>"


class QuizAttempt:
    """A user's attempt at a quiz.

    `answers` maps question order to the chosen option index and is None
    until submission. `completed_at` is None while the attempt is open.
    """

    def __init__(
        self,
        id: UUID,
        user_id: UUID,
        quiz_id: UUID,
        started_at: datetime | None = None,
        completed_at: datetime | None = None,
        answers: Mapping[int, int] | None = None,
        score: int | None = None,
        max_score: int | None = None,
        percentage: Decimal | None = None,
        time_spent_seconds: int | None = None,
    ):
        self.id = id
        self.user_id = user_id
        self.quiz_id = quiz_id
        self.started_at = ensure_utc_aware(started_at) or datetime.now(UTC)
        self.completed_at = ensure_utc_aware(completed_at)
        self.answers = dict(answers) if answers is not None else None
        self.score = score
        self.max_score = max_score
        self.percentage = quantize_percent(percentage) if percentage is not None else None
        self.time_spent_seconds = time_spent_seconds

    @property
    def is_completed(self) -> bool:
        return self.completed_at is not None

    def passed(self, passing_score: int) -> bool:
        """Whether a submitted attempt reached the passing percentage."""
        return self.percentage is not None and self.percentage >= passing_score

    @classmethod
    def from_row(cls, row: Any) -> "QuizAttempt":
        """Create QuizAttempt instance from a `quiz_attempts` row."""
        return cls(
            id=row.id,
            user_id=row.user_id,
            quiz_id=row.quiz_id,
            started_at=row.started_at,
            completed_at=row.completed_at,
            answers=row.answers,
            score=row.score,
            max_score=row.max_score,
            percentage=row.percentage,
            time_spent_seconds=row.time_spent_seconds,
        )

    @classmethod
    def from_lookup_row(cls, row: Any) -> "QuizAttempt":
        """Create QuizAttempt instance from a `quiz_attempts_by_user` row."""
        return cls(
            id=row.attempt_id,
            user_id=row.user_id,
            quiz_id=row.quiz_id,
            started_at=row.started_at,
            completed_at=row.completed_at,
            score=row.score,
            max_score=row.max_score,
            percentage=row.percentage,
            time_spent_seconds=row.time_spent_seconds,
        )

    def __repr__(self) -> str:
        state = f"{self.score}/{self.max_score}" if self.is_completed else "open"
        return f"<QuizAttempt {self.id} quiz={self.quiz_id} {state}>"
