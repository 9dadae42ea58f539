"""Pydantic schemas for quizzes.

Request and response models for:
- Quiz and question authoring
- Quiz retrieval (answer key only for admins)
- Attempts and submissions
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field

from src.core.repository import CQL_INT_MAX

from .models import QuestionDraft, Quiz, QuizAttempt, QuizQuestion, QuizStatus


# ==============================================================================
# Authoring Schemas
# ==============================================================================


class QuestionInput(BaseModel):
    """Multiple choice question."""

    question: str
    options: list[str]
    correct_answer: int = Field(..., description="Index of the correct option")
    points: int = Field(1, le=CQL_INT_MAX)

    def to_draft(self) -> QuestionDraft:
        return QuestionDraft(
            question=self.question,
            options=list(self.options),
            correct_answer=self.correct_answer,
            points=self.points,
        )


class CreateQuizRequest(BaseModel):
    """Request to create a draft quiz."""

    title: str
    description: str | None = None
    content_id: UUID | None = None
    course_id: UUID | None = None
    time_limit: int | None = Field(None, le=CQL_INT_MAX, description="Minutes")
    passing_score: int | None = Field(None, description="Minimum percentage to pass")
    questions: list[QuestionInput] = Field(default_factory=list)


class AddQuestionRequest(QuestionInput):
    """Request to append a question; `order` is the next 1-based slot."""

    order: int = Field(..., le=CQL_INT_MAX)


class QuizResponse(BaseModel):
    """Quiz metadata."""

    id: UUID
    title: str
    description: str | None = None
    content_id: UUID | None = None
    course_id: UUID | None = None
    time_limit: int | None = None
    passing_score: int
    status: QuizStatus
    created_by: UUID
    created_at: datetime
    updated_at: datetime
    published_at: datetime | None = None

    @classmethod
    def from_entity(cls, entity: Quiz) -> "QuizResponse":
        """Create response from entity."""
        return cls(
            id=entity.id,
            title=entity.title,
            description=entity.description,
            content_id=entity.content_id,
            course_id=entity.course_id,
            time_limit=entity.time_limit,
            passing_score=entity.passing_score,
            status=QuizStatus(entity.status),
            created_by=entity.created_by,
            created_at=entity.created_at,
            updated_at=entity.updated_at,
            published_at=entity.published_at,
        )


class QuizListResponse(BaseModel):
    """Quizzes, newest first."""

    items: list[QuizResponse]
    total: int


class QuestionResponse(BaseModel):
    """Question; `correct_answer` is omitted for non-admin callers."""

    id: UUID
    order: int
    question: str
    options: list[str]
    points: int
    correct_answer: int | None = None

    @classmethod
    def from_entity(
        cls, entity: QuizQuestion, include_answer: bool = False
    ) -> "QuestionResponse":
        """Create response from entity."""
        return cls(
            id=entity.id,
            order=entity.position,
            question=entity.question,
            options=entity.options,
            points=entity.points,
            correct_answer=entity.correct_answer if include_answer else None,
        )


class QuizDetailResponse(QuizResponse):
    """Quiz with ordered questions."""

    questions: list[QuestionResponse]

    @classmethod
    def from_quiz(
        cls,
        quiz: Quiz,
        questions: list[QuizQuestion],
        include_answers: bool = False,
    ) -> "QuizDetailResponse":
        return cls(
            **QuizResponse.from_entity(quiz).model_dump(),
            questions=[
                QuestionResponse.from_entity(q, include_answers) for q in questions
            ],
        )


# ==============================================================================
# Attempt Schemas
# ==============================================================================


class SubmitAttemptRequest(BaseModel):
    """Answers keyed by question order, or a list where index i answers order i+1."""

    answers: dict[int, int | None] | list[int | None]


class AttemptResponse(BaseModel):
    """Quiz attempt."""

    id: UUID
    quiz_id: UUID
    user_id: UUID
    started_at: datetime
    completed_at: datetime | None = None
    answers: dict[int, int] | None = None
    score: int | None = None
    max_score: int | None = None
    percentage: Decimal | None = None
    time_spent_seconds: int | None = None
    passed: bool | None = None

    @classmethod
    def from_entity(
        cls,
        entity: QuizAttempt,
        passing_score: int | None = None,
    ) -> "AttemptResponse":
        """Create response from entity."""
        passed = None
        if entity.is_completed and passing_score is not None:
            passed = entity.passed(passing_score)
        return cls(
            id=entity.id,
            quiz_id=entity.quiz_id,
            user_id=entity.user_id,
            started_at=entity.started_at,
            completed_at=entity.completed_at,
            answers=entity.answers,
            score=entity.score,
            max_score=entity.max_score,
            percentage=entity.percentage,
            time_spent_seconds=entity.time_spent_seconds,
            passed=passed,
        )


class AttemptListResponse(BaseModel):
    """Attempts, newest first."""

    items: list[AttemptResponse]
    total: int
