"""Quiz API endpoints.

Provides routes for:
- Quiz authoring and publication (admin only)
- Quiz listing and retrieval
- Attempts: start, submit, history
"""

from uuid import UUID

from fastapi import APIRouter, HTTPException, Query, status

from src.auth.dependencies import AdminUser, CurrentUser
from src.core.exceptions import LearningRecordError, to_http_exception

from .dependencies import QuizServiceDep
from .schemas import (
    AddQuestionRequest,
    AttemptListResponse,
    AttemptResponse,
    CreateQuizRequest,
    QuestionResponse,
    QuizDetailResponse,
    QuizListResponse,
    QuizResponse,
    SubmitAttemptRequest,
)


router = APIRouter(prefix="/v1/quizzes", tags=["quizzes"])
attempts_router = APIRouter(prefix="/v1/quiz-attempts", tags=["quizzes"])


# ==============================================================================
# Authoring Endpoints
# ==============================================================================


@router.post(
    "",
    response_model=QuizResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create quiz",
)
async def create_quiz(
    data: CreateQuizRequest,
    quiz_service: QuizServiceDep,
    admin: AdminUser,
) -> QuizResponse:
    """Create a draft quiz, optionally with its initial questions."""
    try:
        quiz = await quiz_service.create_quiz(
            title=data.title,
            created_by=admin.id,
            description=data.description,
            content_id=data.content_id,
            course_id=data.course_id,
            time_limit=data.time_limit,
            passing_score=data.passing_score,
            questions=[q.to_draft() for q in data.questions],
        )
    except LearningRecordError as e:
        raise to_http_exception(e) from e
    return QuizResponse.from_entity(quiz)


@router.post(
    "/{quiz_id}/questions",
    response_model=QuestionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add question",
    responses={
        403: {"description": "Not the quiz author"},
        409: {"description": "Quiz already published"},
        422: {"description": "Invalid question or order"},
    },
)
async def add_question(
    quiz_id: UUID,
    data: AddQuestionRequest,
    quiz_service: QuizServiceDep,
    admin: AdminUser,
) -> QuestionResponse:
    """Append a question at the next order."""
    try:
        question = await quiz_service.add_question(
            quiz_id=quiz_id,
            actor_id=admin.id,
            actor_role=admin.role,
            question=data.question,
            options=data.options,
            correct_answer=data.correct_answer,
            order=data.order,
            points=data.points,
        )
    except LearningRecordError as e:
        raise to_http_exception(e) from e
    return QuestionResponse.from_entity(question, include_answer=True)


@router.post(
    "/{quiz_id}/publish",
    response_model=QuizResponse,
    summary="Publish quiz",
)
async def publish_quiz(
    quiz_id: UUID,
    quiz_service: QuizServiceDep,
    admin: AdminUser,
) -> QuizResponse:
    """Publish a quiz so students can attempt it."""
    try:
        quiz = await quiz_service.publish_quiz(quiz_id, admin.id, admin.role)
    except LearningRecordError as e:
        raise to_http_exception(e) from e
    return QuizResponse.from_entity(quiz)


# ==============================================================================
# Retrieval and Attempt Endpoints
# ==============================================================================


@router.get(
    "",
    response_model=QuizListResponse,
    summary="List quizzes",
)
async def list_quizzes(
    quiz_service: QuizServiceDep,
    user: CurrentUser,
    content_id: UUID | None = Query(None, description="Filter by content"),
    course_id: UUID | None = Query(None, description="Filter by course"),
) -> QuizListResponse:
    """List quizzes, newest first. Drafts are only listed for admins."""
    try:
        quizzes = await quiz_service.list_quizzes(
            content_id=content_id,
            course_id=course_id,
            include_drafts=user.is_admin,
        )
    except LearningRecordError as e:
        raise to_http_exception(e) from e
    return QuizListResponse(
        items=[QuizResponse.from_entity(q) for q in quizzes],
        total=len(quizzes),
    )


@router.get(
    "/{quiz_id}",
    response_model=QuizDetailResponse,
    summary="Get quiz",
)
async def get_quiz(
    quiz_id: UUID,
    quiz_service: QuizServiceDep,
    user: CurrentUser,
) -> QuizDetailResponse:
    """Get a quiz with its questions. The answer key is only shown to admins."""
    try:
        quiz, questions = await quiz_service.get_quiz(quiz_id)
    except LearningRecordError as e:
        raise to_http_exception(e) from e

    if not quiz.is_published and not user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Quiz nao encontrado",
        )

    return QuizDetailResponse.from_quiz(
        quiz, questions, include_answers=user.is_admin
    )


@router.post(
    "/{quiz_id}/attempts",
    response_model=AttemptResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Start attempt",
    responses={409: {"description": "Quiz not published"}},
)
async def start_attempt(
    quiz_id: UUID,
    quiz_service: QuizServiceDep,
    user: CurrentUser,
) -> AttemptResponse:
    """Open a new attempt on a published quiz."""
    try:
        attempt = await quiz_service.start_attempt(user.id, quiz_id)
    except LearningRecordError as e:
        raise to_http_exception(e) from e
    return AttemptResponse.from_entity(attempt)


@attempts_router.post(
    "/{attempt_id}/submit",
    response_model=AttemptResponse,
    summary="Submit attempt",
    responses={
        404: {"description": "Attempt not found"},
        409: {"description": "Attempt already submitted"},
        422: {"description": "Invalid answers"},
    },
)
async def submit_attempt(
    attempt_id: UUID,
    data: SubmitAttemptRequest,
    quiz_service: QuizServiceDep,
    user: CurrentUser,
) -> AttemptResponse:
    """Submit answers and get the score. An attempt can be submitted once."""
    try:
        attempt = await quiz_service.submit_attempt(attempt_id, user.id, data.answers)
        quiz = await quiz_service.get_quiz_metadata(attempt.quiz_id)
    except LearningRecordError as e:
        raise to_http_exception(e) from e
    return AttemptResponse.from_entity(
        attempt, passing_score=quiz.passing_score if quiz else None
    )


@attempts_router.get(
    "",
    response_model=AttemptListResponse,
    summary="List my attempts",
)
async def list_attempts(
    quiz_service: QuizServiceDep,
    user: CurrentUser,
    quiz_id: UUID | None = Query(None, description="Filter by quiz"),
) -> AttemptListResponse:
    """Get the caller's attempts, newest first."""
    try:
        attempts = await quiz_service.list_attempts(user.id, quiz_id)
        passing_scores = await quiz_service.get_passing_scores(
            a.quiz_id for a in attempts if a.is_completed
        )
    except LearningRecordError as e:
        raise to_http_exception(e) from e
    return AttemptListResponse(
        items=[
            AttemptResponse.from_entity(a, passing_score=passing_scores.get(a.quiz_id))
            for a in attempts
        ],
        total=len(attempts),
    )
