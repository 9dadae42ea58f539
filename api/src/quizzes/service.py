"""Quiz engine service layer.

Business logic for:
- Quiz authoring (questions with dense 1-based order) and publication
- Attempt lifecycle: start, submit exactly once, score from the answer key
- Attempt history per user
"""

from collections.abc import Iterable, Mapping, Sequence
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any
from uuid import UUID, uuid4

import structlog

from src.auth.permissions import UserRole, is_admin
from src.catalog.service import CatalogService, ContentNotFoundError, CourseNotFoundError
from src.core.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from src.core.percent import is_valid_percent
from src.core.repository import CQL_INT_MAX, CassandraRepository

from .models import QuestionDraft, Quiz, QuizAttempt, QuizQuestion, QuizStatus
from .scoring import normalize_answers, score_answers


if TYPE_CHECKING:
    from cassandra.cluster import Session

logger = structlog.get_logger(__name__)

MIN_OPTIONS = 2
DEFAULT_PASSING_SCORE = 70


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class QuizNotFoundError(NotFoundError):
    """Quiz not found."""

    default_code = "quiz_not_found"

    def __init__(self, message: str = "Quiz nao encontrado"):
        super().__init__(message)


class AttemptNotFoundError(NotFoundError):
    """Attempt not found (or owned by someone else)."""

    default_code = "attempt_not_found"

    def __init__(self, message: str = "Tentativa nao encontrada"):
        super().__init__(message)


class NotQuizOwnerError(ForbiddenError):
    """Caller is neither the quiz author nor an admin."""

    default_code = "not_quiz_owner"

    def __init__(self, message: str = "Apenas o autor do quiz pode altera-lo"):
        super().__init__(message)


class QuizPublishedError(ConflictError):
    """Quiz is published and can no longer be authored."""

    default_code = "quiz_published"

    def __init__(self, message: str = "Quiz ja publicado nao pode ser alterado"):
        super().__init__(message)


class QuizNotPublishedError(ConflictError):
    """Quiz is still a draft."""

    default_code = "quiz_not_published"

    def __init__(self, message: str = "Quiz ainda nao publicado"):
        super().__init__(message)


class AttemptAlreadySubmittedError(ConflictError):
    """Attempt was already submitted."""

    default_code = "attempt_already_submitted"

    def __init__(self, message: str = "Tentativa ja enviada"):
        super().__init__(message)


class InvalidQuestionError(ValidationError):
    """Question fields violate an authoring rule."""

    default_code = "invalid_question"


class InvalidQuizError(ValidationError):
    """Quiz fields violate an authoring rule."""

    default_code = "invalid_quiz"


# ==============================================================================
# Quiz Service
# ==============================================================================


class QuizService(CassandraRepository):
    """Service for quiz authoring and attempts."""

    def __init__(
        self,
        session: "Session",
        keyspace: str,
        catalog_service: CatalogService,
        default_passing_score: int = DEFAULT_PASSING_SCORE,
    ):
        """Initialize with Cassandra session and the catalog reference."""
        self.catalog_service = catalog_service
        self.default_passing_score = default_passing_score
        super().__init__(session, keyspace)

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient execution."""
        # Quizzes
        self._insert_quiz = self._prepare("""
            INSERT INTO {keyspace}.quizzes
            (id, title, description, content_id, course_id, time_limit,
             passing_score, status, created_by, created_at, updated_at, published_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)

        self._get_quiz = self._prepare("""
            SELECT * FROM {keyspace}.quizzes WHERE id = ?
        """)

        self._touch_quiz = self._prepare("""
            UPDATE {keyspace}.quizzes SET updated_at = ? WHERE id = ?
        """)

        self._publish_quiz = self._prepare("""
            UPDATE {keyspace}.quizzes
            SET status = ?, published_at = ?, updated_at = ?
            WHERE id = ?
            IF status = ?
        """)

        self._count_quizzes = self._prepare("""
            SELECT COUNT(*) FROM {keyspace}.quizzes
        """)

        self._list_quizzes = self._prepare("""
            SELECT * FROM {keyspace}.quizzes
        """)

        # Questions
        self._insert_question = self._prepare("""
            INSERT INTO {keyspace}.quiz_questions
            (quiz_id, position, id, question, options, correct_answer, points, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            IF NOT EXISTS
        """)

        self._get_questions = self._prepare("""
            SELECT * FROM {keyspace}.quiz_questions WHERE quiz_id = ?
        """)

        # Attempts
        self._insert_attempt = self._prepare("""
            INSERT INTO {keyspace}.quiz_attempts (id, user_id, quiz_id, started_at)
            VALUES (?, ?, ?, ?)
        """)

        self._get_attempt = self._prepare("""
            SELECT * FROM {keyspace}.quiz_attempts WHERE id = ?
        """)

        self._submit_attempt = self._prepare("""
            UPDATE {keyspace}.quiz_attempts
            SET completed_at = ?, answers = ?, score = ?, max_score = ?,
                percentage = ?, time_spent_seconds = ?
            WHERE id = ?
            IF completed_at = null
        """)

        # Attempts by user (lookup)
        self._insert_attempt_by_user = self._prepare("""
            INSERT INTO {keyspace}.quiz_attempts_by_user
            (user_id, started_at, attempt_id, quiz_id)
            VALUES (?, ?, ?, ?)
        """)

        self._update_attempt_by_user = self._prepare("""
            UPDATE {keyspace}.quiz_attempts_by_user
            SET completed_at = ?, score = ?, max_score = ?, percentage = ?,
                time_spent_seconds = ?
            WHERE user_id = ? AND started_at = ? AND attempt_id = ?
        """)

        self._get_user_attempts = self._prepare("""
            SELECT * FROM {keyspace}.quiz_attempts_by_user WHERE user_id = ?
        """)

    # ==========================================================================
    # Authoring
    # ==========================================================================

    async def create_quiz(
        self,
        title: str,
        created_by: UUID,
        description: str | None = None,
        content_id: UUID | None = None,
        course_id: UUID | None = None,
        time_limit: int | None = None,
        passing_score: int | None = None,
        questions: Sequence[QuestionDraft] | None = None,
    ) -> Quiz:
        """Create a draft quiz, optionally with initial questions.

        Initial questions get orders 1..n in the given sequence. Everything
        is validated before the first write.

        Raises:
            InvalidQuizError: Blank title, passing score outside [0, 100],
                time limit outside [1, 2**31 - 1]
            InvalidQuestionError: An initial question is invalid
            ContentNotFoundError / CourseNotFoundError: Unknown reference
        """
        if passing_score is None:
            passing_score = self.default_passing_score

        if not title or not title.strip():
            msg = "Titulo do quiz e obrigatorio"
            raise InvalidQuizError(msg)
        if not is_valid_percent(passing_score):
            msg = "Nota minima deve estar entre 0 e 100"
            raise InvalidQuizError(msg)
        if time_limit is not None and not 0 < time_limit <= CQL_INT_MAX:
            msg = f"Tempo limite deve estar entre 1 e {CQL_INT_MAX}"
            raise InvalidQuizError(msg)

        drafts = list(questions or [])
        for draft in drafts:
            self._validate_question(draft)
        self._check_total_points(sum(draft.points for draft in drafts))

        if content_id and not await self.catalog_service.get_content(content_id):
            raise ContentNotFoundError
        if course_id and not await self.catalog_service.get_course(course_id):
            raise CourseNotFoundError

        quiz = Quiz(
            id=uuid4(),
            title=title.strip(),
            created_by=created_by,
            description=description,
            content_id=content_id,
            course_id=course_id,
            time_limit=time_limit,
            passing_score=passing_score,
        )
        await self._execute(
            self._insert_quiz,
            [
                quiz.id,
                quiz.title,
                quiz.description,
                quiz.content_id,
                quiz.course_id,
                quiz.time_limit,
                quiz.passing_score,
                quiz.status,
                quiz.created_by,
                quiz.created_at,
                quiz.updated_at,
                quiz.published_at,
            ],
        )

        for order, draft in enumerate(drafts, start=1):
            await self._store_question(quiz.id, order, draft)

        logger.info(
            "quiz_created",
            quiz_id=str(quiz.id),
            created_by=str(created_by),
            questions=len(drafts),
        )
        return quiz

    async def add_question(
        self,
        quiz_id: UUID,
        actor_id: UUID,
        actor_role: UserRole | str,
        question: str,
        options: list[str],
        correct_answer: int,
        order: int,
        points: int = 1,
    ) -> QuizQuestion:
        """Append a question to a draft quiz.

        `order` must be the next dense slot (current question count + 1).

        Raises:
            QuizNotFoundError: Quiz does not exist
            NotQuizOwnerError: Actor is neither the author nor an admin
            QuizPublishedError: Quiz is already published
            InvalidQuestionError: Invalid fields, gap in order or duplicate order
        """
        quiz = await self._get_editable_quiz(quiz_id, actor_id, actor_role)

        draft = QuestionDraft(
            question=question,
            options=list(options),
            correct_answer=correct_answer,
            points=points,
        )
        self._validate_question(draft)

        existing = await self.get_questions(quiz.id)
        self._check_total_points(sum(q.points for q in existing) + draft.points)
        if 1 <= order <= len(existing):
            msg = f"Ja existe uma questao na ordem {order}"
            raise InvalidQuestionError(msg, code="duplicate_order")
        if order != len(existing) + 1:
            msg = f"Ordem deve ser {len(existing) + 1}"
            raise InvalidQuestionError(msg, code="invalid_order")

        stored = await self._store_question(quiz.id, order, draft)
        await self._execute(self._touch_quiz, [datetime.now(UTC), quiz.id])

        logger.info(
            "quiz_question_added",
            quiz_id=str(quiz.id),
            order=order,
            points=points,
        )
        return stored

    async def publish_quiz(
        self,
        quiz_id: UUID,
        actor_id: UUID,
        actor_role: UserRole | str,
    ) -> Quiz:
        """Publish a draft quiz. Publishing twice returns the quiz unchanged.

        Raises:
            QuizNotFoundError: Quiz does not exist
            NotQuizOwnerError: Actor is neither the author nor an admin
            InvalidQuizError: Quiz has no questions
        """
        quiz = await self.get_quiz_metadata(quiz_id)
        if not quiz:
            raise QuizNotFoundError
        self._check_owner(quiz, actor_id, actor_role)

        if quiz.is_published:
            return quiz

        if not await self.get_questions(quiz.id):
            msg = "Quiz sem questoes nao pode ser publicado"
            raise InvalidQuizError(msg, code="quiz_without_questions")

        now = datetime.now(UTC)
        applied = await self._execute_conditional(
            self._publish_quiz,
            [
                QuizStatus.PUBLISHED.value,
                now,
                now,
                quiz.id,
                QuizStatus.DRAFT.value,
            ],
        )
        if not applied:
            # Published concurrently; return the stored state
            return await self.get_quiz_metadata(quiz.id) or quiz

        quiz.status = QuizStatus.PUBLISHED.value
        quiz.published_at = now
        quiz.updated_at = now

        logger.info("quiz_published", quiz_id=str(quiz.id))
        return quiz

    def _validate_question(self, draft: QuestionDraft) -> None:
        if not draft.question or not draft.question.strip():
            msg = "Enunciado da questao e obrigatorio"
            raise InvalidQuestionError(msg)
        if len(draft.options) < MIN_OPTIONS:
            msg = f"Questao precisa de pelo menos {MIN_OPTIONS} opcoes"
            raise InvalidQuestionError(msg)
        if any(not option or not option.strip() for option in draft.options):
            msg = "Opcoes nao podem ser vazias"
            raise InvalidQuestionError(msg)
        if not 0 <= draft.correct_answer < len(draft.options):
            msg = "Resposta correta fora do intervalo de opcoes"
            raise InvalidQuestionError(msg, code="invalid_correct_answer")
        if not 1 <= draft.points <= CQL_INT_MAX:
            msg = f"Pontuacao deve estar entre 1 e {CQL_INT_MAX}"
            raise InvalidQuestionError(msg, code="invalid_points")

    def _check_total_points(self, total: int) -> None:
        # max_score of an attempt is stored in an INT column
        if total > CQL_INT_MAX:
            msg = f"Pontuacao total do quiz deve ser no maximo {CQL_INT_MAX}"
            raise InvalidQuestionError(msg, code="invalid_points")

    async def _store_question(
        self, quiz_id: UUID, order: int, draft: QuestionDraft
    ) -> QuizQuestion:
        question = QuizQuestion(
            quiz_id=quiz_id,
            position=order,
            id=uuid4(),
            question=draft.question.strip(),
            options=list(draft.options),
            correct_answer=draft.correct_answer,
            points=draft.points,
        )
        applied = await self._execute_conditional(
            self._insert_question,
            [
                question.quiz_id,
                question.position,
                question.id,
                question.question,
                question.options,
                question.correct_answer,
                question.points,
                question.created_at,
            ],
        )
        if not applied:
            msg = f"Ja existe uma questao na ordem {order}"
            raise InvalidQuestionError(msg, code="duplicate_order")
        return question

    async def _get_editable_quiz(
        self,
        quiz_id: UUID,
        actor_id: UUID,
        actor_role: UserRole | str,
    ) -> Quiz:
        quiz = await self.get_quiz_metadata(quiz_id)
        if not quiz:
            raise QuizNotFoundError
        self._check_owner(quiz, actor_id, actor_role)
        if quiz.is_published:
            raise QuizPublishedError
        return quiz

    def _check_owner(
        self, quiz: Quiz, actor_id: UUID, actor_role: UserRole | str
    ) -> None:
        if quiz.created_by != actor_id and not is_admin(actor_role):
            raise NotQuizOwnerError

    # ==========================================================================
    # Queries
    # ==========================================================================

    async def get_quiz_metadata(self, quiz_id: UUID) -> Quiz | None:
        """Get quiz row without questions."""
        row = await self._fetch_one(self._get_quiz, [quiz_id])
        return Quiz.from_row(row) if row else None

    async def get_questions(self, quiz_id: UUID) -> list[QuizQuestion]:
        """Get questions ordered by position."""
        rows = await self._fetch_all(self._get_questions, [quiz_id])
        return [QuizQuestion.from_row(row) for row in rows]

    async def get_quiz(self, quiz_id: UUID) -> tuple[Quiz, list[QuizQuestion]]:
        """Get quiz with its ordered questions.

        Raises:
            QuizNotFoundError: Quiz does not exist
        """
        quiz = await self.get_quiz_metadata(quiz_id)
        if not quiz:
            raise QuizNotFoundError
        return quiz, await self.get_questions(quiz_id)

    async def count_quizzes(self) -> int:
        """Count quizzes (draft and published)."""
        return await self._count(self._count_quizzes)

    async def list_quizzes(
        self,
        content_id: UUID | None = None,
        course_id: UUID | None = None,
        include_drafts: bool = False,
    ) -> list[Quiz]:
        """List quizzes, newest first, optionally filtered by content or course.

        Note: Full table scan filtered in memory.
        """
        rows = await self._fetch_all(self._list_quizzes, [])

        quizzes = []
        for row in rows:
            quiz = Quiz.from_row(row)
            if not include_drafts and not quiz.is_published:
                continue
            if content_id and quiz.content_id != content_id:
                continue
            if course_id and quiz.course_id != course_id:
                continue
            quizzes.append(quiz)

        quizzes.sort(key=lambda q: q.created_at, reverse=True)
        return quizzes

    async def get_passing_scores(self, quiz_ids: Iterable[UUID]) -> dict[UUID, int]:
        """Map quiz id to passing score for the quizzes that still exist."""
        scores: dict[UUID, int] = {}
        for quiz_id in set(quiz_ids):
            quiz = await self.get_quiz_metadata(quiz_id)
            if quiz:
                scores[quiz_id] = quiz.passing_score
        return scores

    # ==========================================================================
    # Attempts
    # ==========================================================================

    async def start_attempt(self, user_id: UUID, quiz_id: UUID) -> QuizAttempt:
        """Open a new attempt. Multiple attempts per user and quiz are allowed.

        Raises:
            QuizNotFoundError: Quiz does not exist
            QuizNotPublishedError: Quiz is still a draft
        """
        quiz = await self.get_quiz_metadata(quiz_id)
        if not quiz:
            raise QuizNotFoundError
        if not quiz.is_published:
            raise QuizNotPublishedError

        attempt = QuizAttempt(
            id=uuid4(),
            user_id=user_id,
            quiz_id=quiz_id,
            started_at=datetime.now(UTC),
        )

        # Dual write: main table + lookup table
        await self._execute(
            self._insert_attempt,
            [attempt.id, attempt.user_id, attempt.quiz_id, attempt.started_at],
        )
        await self._execute(
            self._insert_attempt_by_user,
            [attempt.user_id, attempt.started_at, attempt.id, attempt.quiz_id],
        )

        logger.info(
            "quiz_attempt_started",
            attempt_id=str(attempt.id),
            quiz_id=str(quiz_id),
            user_id=str(user_id),
        )
        return attempt

    async def get_attempt(self, attempt_id: UUID) -> QuizAttempt | None:
        """Get attempt by ID."""
        row = await self._fetch_one(self._get_attempt, [attempt_id])
        return QuizAttempt.from_row(row) if row else None

    async def submit_attempt(
        self,
        attempt_id: UUID,
        user_id: UUID,
        answers: Mapping[Any, Any] | Sequence[Any],
    ) -> QuizAttempt:
        """Score and close an attempt.

        The write is conditional on the attempt still being open, so at most
        one submission ever succeeds.

        Raises:
            AttemptNotFoundError: Attempt absent or owned by another user
            AttemptAlreadySubmittedError: Attempt already submitted
            InvalidAnswersError: Answers do not match the quiz
        """
        attempt = await self.get_attempt(attempt_id)
        if not attempt or attempt.user_id != user_id:
            raise AttemptNotFoundError
        if attempt.is_completed:
            raise AttemptAlreadySubmittedError

        questions = await self.get_questions(attempt.quiz_id)
        normalized = normalize_answers(questions, answers)
        score, max_score, percentage = score_answers(questions, normalized)

        now = datetime.now(UTC)
        time_spent_seconds = max(0, int((now - attempt.started_at).total_seconds()))

        applied = await self._execute_conditional(
            self._submit_attempt,
            [
                now,
                normalized,
                score,
                max_score,
                percentage,
                time_spent_seconds,
                attempt.id,
            ],
        )
        if not applied:
            raise AttemptAlreadySubmittedError

        attempt.completed_at = now
        attempt.answers = normalized
        attempt.score = score
        attempt.max_score = max_score
        attempt.percentage = percentage
        attempt.time_spent_seconds = time_spent_seconds

        await self._execute(
            self._update_attempt_by_user,
            [
                now,
                score,
                max_score,
                percentage,
                time_spent_seconds,
                attempt.user_id,
                attempt.started_at,
                attempt.id,
            ],
        )

        logger.info(
            "quiz_attempt_submitted",
            attempt_id=str(attempt.id),
            quiz_id=str(attempt.quiz_id),
            user_id=str(user_id),
            score=score,
            max_score=max_score,
            percentage=str(percentage),
        )
        return attempt

    async def list_attempts(
        self, user_id: UUID, quiz_id: UUID | None = None
    ) -> list[QuizAttempt]:
        """Get a user's attempts, newest first, optionally for one quiz."""
        rows = await self._fetch_all(self._get_user_attempts, [user_id])
        attempts = [QuizAttempt.from_lookup_row(row) for row in rows]
        if quiz_id is not None:
            attempts = [a for a in attempts if a.quiz_id == quiz_id]
        return attempts
