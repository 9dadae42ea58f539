"""Tests for quiz authoring, publication and attempts."""

from datetime import UTC, datetime, timedelta
from decimal import Decimal
from unittest.mock import AsyncMock
from uuid import UUID, uuid4

import pytest

from src.auth.permissions import UserRole
from src.catalog.service import CatalogService, ContentNotFoundError
from src.quizzes.models import QuestionDraft
from src.quizzes.scoring import InvalidAnswersError
from src.quizzes.service import (
    AttemptAlreadySubmittedError,
    AttemptNotFoundError,
    InvalidQuestionError,
    InvalidQuizError,
    NotQuizOwnerError,
    QuizNotFoundError,
    QuizNotPublishedError,
    QuizPublishedError,
    QuizService,
)
from tests.fakes import attempt_row, count_row, not_applied, question_row, quiz_row, rows


@pytest.fixture
def catalog_service() -> AsyncMock:
    return AsyncMock(spec=CatalogService)


@pytest.fixture
def quiz_service(mock_session, catalog_service) -> QuizService:
    return QuizService(
        session=mock_session,
        keyspace="test_keyspace",
        catalog_service=catalog_service,
    )


@pytest.fixture
def author_id() -> UUID:
    return uuid4()


@pytest.fixture
def quiz_id() -> UUID:
    return uuid4()


def draft(correct_answer: int = 0, options: list[str] | None = None) -> QuestionDraft:
    return QuestionDraft(
        question="Qual a dose maxima diaria?",
        options=options or ["1 g", "4 g", "8 g"],
        correct_answer=correct_answer,
    )


# ==============================================================================
# Authoring
# ==============================================================================


class TestCreateQuiz:
    @pytest.mark.asyncio
    async def test_create_with_questions(self, quiz_service, responder, author_id) -> None:
        quiz = await quiz_service.create_quiz(
            title="Analgesicos",
            created_by=author_id,
            questions=[draft(0), draft(1)],
        )

        assert quiz.status == "draft"
        assert quiz.passing_score == 70
        stored = responder.calls_to(quiz_service._insert_question)
        assert [params[1] for params in stored] == [1, 2]

    @pytest.mark.asyncio
    async def test_default_passing_score_from_service(
        self, mock_session, catalog_service, author_id
    ) -> None:
        service = QuizService(
            session=mock_session,
            keyspace="test_keyspace",
            catalog_service=catalog_service,
            default_passing_score=60,
        )
        quiz = await service.create_quiz(title="Antibioticos", created_by=author_id)
        assert quiz.passing_score == 60

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("title", "passing_score", "time_limit"),
        [
            ("", 70, None),
            ("Quiz", 101, None),
            ("Quiz", -1, None),
            ("Quiz", 70, 0),
            ("Quiz", 70, 2**31),
        ],
    )
    async def test_invalid_quiz_fields(
        self, quiz_service, mock_session, author_id, title, passing_score, time_limit
    ) -> None:
        with pytest.raises(InvalidQuizError):
            await quiz_service.create_quiz(
                title=title,
                created_by=author_id,
                passing_score=passing_score,
                time_limit=time_limit,
            )
        mock_session.aexecute.assert_not_called()

    @pytest.mark.asyncio
    async def test_invalid_question_blocks_whole_quiz(
        self, quiz_service, mock_session, author_id
    ) -> None:
        with pytest.raises(InvalidQuestionError) as exc_info:
            await quiz_service.create_quiz(
                title="Quiz",
                created_by=author_id,
                questions=[draft(0), draft(5)],
            )
        assert exc_info.value.code == "invalid_correct_answer"
        mock_session.aexecute.assert_not_called()

    @pytest.mark.asyncio
    async def test_points_beyond_int_column_rejected(
        self, quiz_service, mock_session, author_id
    ) -> None:
        huge = QuestionDraft("Q", ["A", "B"], 0, points=2**31)

        with pytest.raises(InvalidQuestionError) as exc_info:
            await quiz_service.create_quiz(title="Quiz", created_by=author_id, questions=[huge])

        assert exc_info.value.code == "invalid_points"
        assert exc_info.value.status_code == 422
        mock_session.aexecute.assert_not_called()

    @pytest.mark.asyncio
    async def test_total_points_must_fit_max_score(
        self, quiz_service, mock_session, author_id
    ) -> None:
        half = QuestionDraft("Q", ["A", "B"], 0, points=2**30)

        with pytest.raises(InvalidQuestionError) as exc_info:
            await quiz_service.create_quiz(
                title="Quiz", created_by=author_id, questions=[half, half]
            )

        assert exc_info.value.code == "invalid_points"
        mock_session.aexecute.assert_not_called()

    @pytest.mark.asyncio
    async def test_unknown_content_reference(
        self, quiz_service, catalog_service, author_id
    ) -> None:
        catalog_service.get_content.return_value = None
        with pytest.raises(ContentNotFoundError):
            await quiz_service.create_quiz(
                title="Quiz", created_by=author_id, content_id=uuid4()
            )


class TestAddQuestion:
    @pytest.mark.asyncio
    async def test_next_order_appends(
        self, quiz_service, responder, author_id, quiz_id
    ) -> None:
        responder.on(quiz_service._get_quiz, rows(quiz_row(quiz_id, author_id)))
        responder.on(
            quiz_service._get_questions,
            rows(question_row(quiz_id, 1), question_row(quiz_id, 2)),
        )

        question = await quiz_service.add_question(
            quiz_id, author_id, UserRole.ADMIN, "Nova questao", ["Sim", "Nao"], 1, order=3
        )

        assert question.position == 3
        assert len(responder.calls_to(quiz_service._touch_quiz)) == 1

    @pytest.mark.asyncio
    async def test_duplicate_order(self, quiz_service, responder, author_id, quiz_id) -> None:
        responder.on(quiz_service._get_quiz, rows(quiz_row(quiz_id, author_id)))
        responder.on(
            quiz_service._get_questions,
            rows(question_row(quiz_id, 1), question_row(quiz_id, 2)),
        )

        with pytest.raises(InvalidQuestionError) as exc_info:
            await quiz_service.add_question(
                quiz_id, author_id, UserRole.ADMIN, "Q", ["A", "B"], 0, order=2
            )
        assert exc_info.value.code == "duplicate_order"

    @pytest.mark.asyncio
    async def test_gap_in_order(self, quiz_service, responder, author_id, quiz_id) -> None:
        responder.on(quiz_service._get_quiz, rows(quiz_row(quiz_id, author_id)))
        responder.on(quiz_service._get_questions, rows(question_row(quiz_id, 1)))

        with pytest.raises(InvalidQuestionError) as exc_info:
            await quiz_service.add_question(
                quiz_id, author_id, UserRole.ADMIN, "Q", ["A", "B"], 0, order=4
            )
        assert exc_info.value.code == "invalid_order"

    @pytest.mark.asyncio
    async def test_concurrent_insert_reports_duplicate(
        self, quiz_service, responder, author_id, quiz_id
    ) -> None:
        responder.on(quiz_service._get_quiz, rows(quiz_row(quiz_id, author_id)))
        responder.on(quiz_service._insert_question, not_applied())

        with pytest.raises(InvalidQuestionError) as exc_info:
            await quiz_service.add_question(
                quiz_id, author_id, UserRole.ADMIN, "Q", ["A", "B"], 0, order=1
            )
        assert exc_info.value.code == "duplicate_order"

    @pytest.mark.asyncio
    async def test_added_points_must_fit_max_score(
        self, quiz_service, responder, author_id, quiz_id
    ) -> None:
        responder.on(quiz_service._get_quiz, rows(quiz_row(quiz_id, author_id)))
        responder.on(
            quiz_service._get_questions, rows(question_row(quiz_id, 1, points=2**31 - 1))
        )

        with pytest.raises(InvalidQuestionError) as exc_info:
            await quiz_service.add_question(
                quiz_id, author_id, UserRole.ADMIN, "Q", ["A", "B"], 0, order=2
            )

        assert exc_info.value.code == "invalid_points"
        assert responder.calls_to(quiz_service._insert_question) == []

    @pytest.mark.asyncio
    async def test_single_option_rejected(
        self, quiz_service, responder, author_id, quiz_id
    ) -> None:
        responder.on(quiz_service._get_quiz, rows(quiz_row(quiz_id, author_id)))

        with pytest.raises(InvalidQuestionError):
            await quiz_service.add_question(
                quiz_id, author_id, UserRole.ADMIN, "Q", ["A"], 0, order=1
            )

    @pytest.mark.asyncio
    async def test_non_owner_student_forbidden(
        self, quiz_service, responder, author_id, quiz_id
    ) -> None:
        responder.on(quiz_service._get_quiz, rows(quiz_row(quiz_id, author_id)))

        with pytest.raises(NotQuizOwnerError):
            await quiz_service.add_question(
                quiz_id, uuid4(), UserRole.STUDENT, "Q", ["A", "B"], 0, order=1
            )

    @pytest.mark.asyncio
    async def test_other_admin_allowed(
        self, quiz_service, responder, author_id, quiz_id
    ) -> None:
        responder.on(quiz_service._get_quiz, rows(quiz_row(quiz_id, author_id)))

        question = await quiz_service.add_question(
            quiz_id, uuid4(), "admin", "Q", ["A", "B"], 0, order=1
        )
        assert question.position == 1

    @pytest.mark.asyncio
    async def test_published_quiz_is_frozen(
        self, quiz_service, responder, author_id, quiz_id
    ) -> None:
        responder.on(
            quiz_service._get_quiz, rows(quiz_row(quiz_id, author_id, status="published"))
        )

        with pytest.raises(QuizPublishedError):
            await quiz_service.add_question(
                quiz_id, author_id, UserRole.ADMIN, "Q", ["A", "B"], 0, order=2
            )

    @pytest.mark.asyncio
    async def test_unknown_quiz(self, quiz_service, author_id) -> None:
        with pytest.raises(QuizNotFoundError):
            await quiz_service.add_question(
                uuid4(), author_id, UserRole.ADMIN, "Q", ["A", "B"], 0, order=1
            )


class TestPublishQuiz:
    @pytest.mark.asyncio
    async def test_publish(self, quiz_service, responder, author_id, quiz_id) -> None:
        responder.on(quiz_service._get_quiz, rows(quiz_row(quiz_id, author_id)))
        responder.on(quiz_service._get_questions, rows(question_row(quiz_id, 1)))

        quiz = await quiz_service.publish_quiz(quiz_id, author_id, UserRole.ADMIN)

        assert quiz.is_published
        assert quiz.published_at is not None
        (params,) = responder.calls_to(quiz_service._publish_quiz)
        assert params[0] == "published"
        assert params[-1] == "draft"

    @pytest.mark.asyncio
    async def test_publish_twice_is_noop(
        self, quiz_service, responder, author_id, quiz_id
    ) -> None:
        responder.on(
            quiz_service._get_quiz, rows(quiz_row(quiz_id, author_id, status="published"))
        )

        quiz = await quiz_service.publish_quiz(quiz_id, author_id, UserRole.ADMIN)

        assert quiz.is_published
        assert responder.calls_to(quiz_service._publish_quiz) == []

    @pytest.mark.asyncio
    async def test_publish_without_questions(
        self, quiz_service, responder, author_id, quiz_id
    ) -> None:
        responder.on(quiz_service._get_quiz, rows(quiz_row(quiz_id, author_id)))

        with pytest.raises(InvalidQuizError) as exc_info:
            await quiz_service.publish_quiz(quiz_id, author_id, UserRole.ADMIN)
        assert exc_info.value.code == "quiz_without_questions"

    @pytest.mark.asyncio
    async def test_count_quizzes(self, quiz_service, responder) -> None:
        responder.on(quiz_service._count_quizzes, count_row(3))
        assert await quiz_service.count_quizzes() == 3


# ==============================================================================
# Attempts
# ==============================================================================


class TestStartAttempt:
    @pytest.mark.asyncio
    async def test_draft_quiz_rejected(self, quiz_service, responder, author_id, quiz_id) -> None:
        responder.on(quiz_service._get_quiz, rows(quiz_row(quiz_id, author_id)))

        with pytest.raises(QuizNotPublishedError):
            await quiz_service.start_attempt(uuid4(), quiz_id)
        assert responder.calls_to(quiz_service._insert_attempt) == []

    @pytest.mark.asyncio
    async def test_start_writes_both_tables(
        self, quiz_service, responder, author_id, quiz_id
    ) -> None:
        user_id = uuid4()
        responder.on(
            quiz_service._get_quiz, rows(quiz_row(quiz_id, author_id, status="published"))
        )

        attempt = await quiz_service.start_attempt(user_id, quiz_id)

        assert not attempt.is_completed
        assert responder.calls_to(quiz_service._insert_attempt)[0][:3] == [
            attempt.id,
            user_id,
            quiz_id,
        ]
        assert responder.calls_to(quiz_service._insert_attempt_by_user)[0][2] == attempt.id

    @pytest.mark.asyncio
    async def test_unknown_quiz(self, quiz_service) -> None:
        with pytest.raises(QuizNotFoundError):
            await quiz_service.start_attempt(uuid4(), uuid4())


class TestSubmitAttempt:
    @pytest.fixture
    def user_id(self) -> UUID:
        return uuid4()

    @pytest.fixture
    def attempt_id(self, quiz_service, responder, user_id, quiz_id) -> UUID:
        attempt_id = uuid4()
        started = datetime.now(UTC) - timedelta(seconds=90)
        responder.on(
            quiz_service._get_attempt,
            rows(attempt_row(attempt_id, user_id, quiz_id, started_at=started)),
        )
        responder.on(
            quiz_service._get_questions,
            rows(
                question_row(quiz_id, 1, correct_answer=0),
                question_row(quiz_id, 2, correct_answer=1),
                question_row(quiz_id, 3, correct_answer=2),
            ),
        )
        return attempt_id

    @pytest.mark.asyncio
    async def test_all_correct(self, quiz_service, responder, user_id, attempt_id) -> None:
        attempt = await quiz_service.submit_attempt(attempt_id, user_id, [0, 1, 2])

        assert attempt.score == 3
        assert attempt.max_score == 3
        assert attempt.percentage == Decimal("100.00")
        assert attempt.passed(70)
        assert attempt.time_spent_seconds >= 90
        assert len(responder.calls_to(quiz_service._update_attempt_by_user)) == 1

    @pytest.mark.asyncio
    async def test_two_of_three(self, quiz_service, user_id, attempt_id) -> None:
        attempt = await quiz_service.submit_attempt(attempt_id, user_id, {1: 0, 2: 1, 3: 0})

        assert attempt.score == 2
        assert attempt.percentage == Decimal("66.67")
        assert not attempt.passed(70)

    @pytest.mark.asyncio
    async def test_second_submit_conflicts(
        self, quiz_service, responder, user_id, attempt_id
    ) -> None:
        responder.on(quiz_service._submit_attempt, not_applied())

        with pytest.raises(AttemptAlreadySubmittedError):
            await quiz_service.submit_attempt(attempt_id, user_id, [0, 1, 2])
        assert responder.calls_to(quiz_service._update_attempt_by_user) == []

    @pytest.mark.asyncio
    async def test_completed_attempt_conflicts(
        self, quiz_service, responder, user_id, quiz_id
    ) -> None:
        attempt_id = uuid4()
        responder.on(
            quiz_service._get_attempt,
            rows(
                attempt_row(
                    attempt_id,
                    user_id,
                    quiz_id,
                    completed_at=datetime.now(UTC),
                    percentage=Decimal(50),
                )
            ),
        )

        with pytest.raises(AttemptAlreadySubmittedError):
            await quiz_service.submit_attempt(attempt_id, user_id, [0])
        assert responder.calls_to(quiz_service._submit_attempt) == []

    @pytest.mark.asyncio
    async def test_other_users_attempt_is_hidden(self, quiz_service, attempt_id) -> None:
        with pytest.raises(AttemptNotFoundError):
            await quiz_service.submit_attempt(attempt_id, uuid4(), [0, 1, 2])

    @pytest.mark.asyncio
    async def test_invalid_answers_do_not_close_attempt(
        self, quiz_service, responder, user_id, attempt_id
    ) -> None:
        with pytest.raises(InvalidAnswersError):
            await quiz_service.submit_attempt(attempt_id, user_id, {1: 7})
        assert responder.calls_to(quiz_service._submit_attempt) == []


class TestListAttempts:
    @pytest.mark.asyncio
    async def test_filter_by_quiz(self, quiz_service, responder, quiz_id) -> None:
        user_id = uuid4()
        responder.on(
            quiz_service._get_user_attempts,
            rows(
                attempt_row(uuid4(), user_id, quiz_id),
                attempt_row(uuid4(), user_id, uuid4()),
            ),
        )

        assert len(await quiz_service.list_attempts(user_id)) == 2
        filtered = await quiz_service.list_attempts(user_id, quiz_id)
        assert [a.quiz_id for a in filtered] == [quiz_id]

    @pytest.mark.asyncio
    async def test_passing_scores_per_quiz(self, quiz_service, responder, quiz_id) -> None:
        responder.on(
            quiz_service._get_quiz, rows(quiz_row(quiz_id, uuid4(), passing_score=60))
        )

        scores = await quiz_service.get_passing_scores([quiz_id, quiz_id])

        assert scores == {quiz_id: 60}
        assert len(responder.calls_to(quiz_service._get_quiz)) == 1


class TestListQuizzes:
    @pytest.mark.asyncio
    async def test_students_see_published_newest_first(
        self, quiz_service, responder, author_id
    ) -> None:
        older = quiz_row(uuid4(), author_id, status="published")
        newer = quiz_row(uuid4(), author_id, status="published")
        newer.created_at = datetime(2024, 6, 1, tzinfo=UTC)
        draft_quiz = quiz_row(uuid4(), author_id)
        responder.on(quiz_service._list_quizzes, rows(older, draft_quiz, newer))

        quizzes = await quiz_service.list_quizzes()

        assert [q.id for q in quizzes] == [newer.id, older.id]

    @pytest.mark.asyncio
    async def test_admins_see_drafts(self, quiz_service, responder, author_id) -> None:
        responder.on(quiz_service._list_quizzes, rows(quiz_row(uuid4(), author_id)))

        quizzes = await quiz_service.list_quizzes(include_drafts=True)

        assert [q.status for q in quizzes] == ["draft"]

    @pytest.mark.asyncio
    async def test_filter_by_content_and_course(
        self, quiz_service, responder, author_id
    ) -> None:
        content_id, course_id = uuid4(), uuid4()
        for_content = quiz_row(uuid4(), author_id, status="published")
        for_content.content_id = content_id
        for_course = quiz_row(uuid4(), author_id, status="published")
        for_course.course_id = course_id
        responder.on(quiz_service._list_quizzes, rows(for_content, for_course))

        by_content = await quiz_service.list_quizzes(content_id=content_id)
        by_course = await quiz_service.list_quizzes(course_id=course_id)

        assert [q.id for q in by_content] == [for_content.id]
        assert [q.id for q in by_course] == [for_course.id]
