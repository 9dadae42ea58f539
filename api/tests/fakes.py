"""Cassandra result doubles and row factories for service tests."""

from datetime import UTC, datetime
from decimal import Decimal
from types import SimpleNamespace
from typing import Any
from uuid import UUID, uuid4


STAMP = datetime(2024, 1, 1, tzinfo=UTC)


class FakeResultSet:
    """Minimal stand-in for a driver ResultSet."""

    def __init__(self, rows: list[Any] | None = None, was_applied: bool = True):
        self._rows = list(rows or [])
        self.was_applied = was_applied

    def one(self) -> Any:
        return self._rows[0] if self._rows else None

    def __iter__(self):
        return iter(self._rows)


class StatementResponder:
    """Answers `aexecute` calls per prepared statement and records them.

    Results registered with `on` are consumed in order; the last one repeats.
    Unregistered statements get an empty, applied result.
    """

    def __init__(self) -> None:
        self.calls: list[tuple[Any, list[Any] | None]] = []
        self._results: dict[int, list[FakeResultSet]] = {}

    def on(self, statement: Any, *results: FakeResultSet) -> None:
        self._results[id(statement)] = list(results)

    def __call__(self, statement: Any, params: list[Any] | None = None) -> FakeResultSet:
        self.calls.append((statement, params))
        queue = self._results.get(id(statement))
        if not queue:
            return FakeResultSet()
        if len(queue) > 1:
            return queue.pop(0)
        return queue[0]

    def calls_to(self, statement: Any) -> list[list[Any] | None]:
        return [params for stmt, params in self.calls if stmt is statement]


def rows(*items: Any) -> FakeResultSet:
    return FakeResultSet(list(items))


def not_applied() -> FakeResultSet:
    return FakeResultSet(was_applied=False)


def count_row(value: int) -> FakeResultSet:
    return FakeResultSet([SimpleNamespace(count=value)])


# ==============================================================================
# Row factories
# ==============================================================================


def content_row(content_id: UUID | None = None) -> SimpleNamespace:
    return SimpleNamespace(
        id=content_id or uuid4(),
        content_type="video",
        owner_id=uuid4(),
        created_at=STAMP,
    )


def course_row(course_id: UUID | None = None, title: str = "Farmacologia") -> SimpleNamespace:
    return SimpleNamespace(
        id=course_id or uuid4(),
        title=title,
        owner_id=uuid4(),
        created_at=STAMP,
    )


def course_content_row(course_id: UUID, content_id: UUID, position: int) -> SimpleNamespace:
    return SimpleNamespace(
        course_id=course_id,
        content_id=content_id,
        position=position,
        added_at=STAMP,
    )


def progress_row(
    user_id: UUID,
    content_id: UUID,
    progress_percent: Decimal = Decimal(0),
    time_spent: int = 0,
    completed: bool = False,
    completed_at: datetime | None = None,
    version: int = 1,
) -> SimpleNamespace:
    return SimpleNamespace(
        user_id=user_id,
        content_id=content_id,
        progress_percent=progress_percent,
        time_spent=time_spent,
        completed=completed,
        completed_at=completed_at,
        last_accessed=STAMP,
        created_at=STAMP,
        version=version,
    )


def enrollment_row(
    user_id: UUID,
    course_id: UUID,
    completed_at: datetime | None = None,
    progress_percent: Decimal = Decimal(0),
    version: int = 0,
) -> SimpleNamespace:
    return SimpleNamespace(
        course_id=course_id,
        user_id=user_id,
        enrolled_at=STAMP,
        completed_at=completed_at,
        progress_percent=progress_percent,
        version=version,
    )


def quiz_row(
    quiz_id: UUID,
    created_by: UUID,
    status: str = "draft",
    passing_score: int = 70,
) -> SimpleNamespace:
    return SimpleNamespace(
        id=quiz_id,
        title="Interacoes medicamentosas",
        created_by=created_by,
        description=None,
        content_id=None,
        course_id=None,
        time_limit=None,
        passing_score=passing_score,
        status=status,
        created_at=STAMP,
        updated_at=STAMP,
        published_at=STAMP if status == "published" else None,
    )


def question_row(
    quiz_id: UUID,
    position: int,
    correct_answer: int = 0,
    points: int = 1,
    options: list[str] | None = None,
) -> SimpleNamespace:
    return SimpleNamespace(
        quiz_id=quiz_id,
        position=position,
        id=uuid4(),
        question=f"Questao {position}",
        options=options or ["A", "B", "C"],
        correct_answer=correct_answer,
        points=points,
        created_at=STAMP,
    )


def attempt_row(
    attempt_id: UUID,
    user_id: UUID,
    quiz_id: UUID,
    started_at: datetime | None = None,
    completed_at: datetime | None = None,
    percentage: Decimal | None = None,
) -> SimpleNamespace:
    return SimpleNamespace(
        id=attempt_id,
        attempt_id=attempt_id,
        user_id=user_id,
        quiz_id=quiz_id,
        started_at=started_at or datetime.now(UTC),
        completed_at=completed_at,
        answers=None,
        score=None,
        max_score=None,
        percentage=percentage,
        time_spent_seconds=None,
    )
