"""Pydantic schemas for statistics."""

from decimal import Decimal

from pydantic import BaseModel, Field


class UserStats(BaseModel):
    """Learning summary for one user."""

    total_enrollments: int = 0
    completed_courses: int = 0
    total_study_time: int = Field(0, description="Accumulated minutes")
    average_quiz_score: Decimal = Field(
        Decimal(0), description="Mean percentage over submitted attempts"
    )
    notes_count: int = 0


class AdminStats(BaseModel):
    """Platform-wide totals."""

    total_students: int = 0
    total_content: int = 0
    total_courses: int = 0
    total_quizzes: int = 0
