"""Quiz engine module.

Provides:
- Draft quiz authoring with densely ordered questions
- One-way publication
- Attempts scored from the stored answer key, submitted exactly once
"""

from .models import (
    QUIZ_TABLES_CQL,
    QuestionDraft,
    Quiz,
    QuizAttempt,
    QuizQuestion,
    QuizStatus,
)


__all__ = [
    "QUIZ_TABLES_CQL",
    "QuestionDraft",
    "Quiz",
    "QuizAttempt",
    "QuizQuestion",
    "QuizStatus",
]
