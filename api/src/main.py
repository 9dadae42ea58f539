"""LearnLedger API - Main Application."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.auth.directory import UserDirectory
from src.auth.router import router as users_router
from src.catalog.router import router as catalog_router
from src.catalog.service import CatalogService
from src.config import get_settings
from src.core.context import get_request_id
from src.core.database import init_async_cassandra, shutdown_async_cassandra
from src.core.exceptions import LearningRecordError
from src.core.logging import configure_structlog, get_logger
from src.core.middleware import RequestContextMiddleware
from src.health.router import router as health_router
from src.notes.service import NotesReader
from src.progress.router import enrollments_router
from src.progress.router import router as progress_router
from src.progress.service import ProgressService
from src.quizzes.router import attempts_router as quiz_attempts_router
from src.quizzes.router import router as quizzes_router
from src.quizzes.service import QuizService
from src.stats.router import router as stats_router
from src.stats.service import StatsService


# Configure logging early (before creating logger)
settings = get_settings()
configure_structlog(settings, log_dir=Path(settings.log_dir))

logger = get_logger(__name__)


# Application state for dependency injection
class AppState:
    """Application state container."""

    cassandra_session: Any = None
    user_directory: UserDirectory | None = None
    catalog_service: CatalogService | None = None
    notes_reader: NotesReader | None = None
    progress_service: ProgressService | None = None
    quiz_service: QuizService | None = None
    stats_service: StatsService | None = None


app_state = AppState()


def init_services(app: FastAPI, session: Any, keyspace: str) -> None:
    """Build every service on one session and expose them on `app.state`."""
    settings = get_settings()

    app_state.cassandra_session = session
    app_state.user_directory = UserDirectory(session=session, keyspace=keyspace)
    app_state.catalog_service = CatalogService(session=session, keyspace=keyspace)
    app_state.notes_reader = NotesReader(session=session, keyspace=keyspace)
    app_state.progress_service = ProgressService(
        session=session,
        keyspace=keyspace,
        catalog_service=app_state.catalog_service,
        max_cas_attempts=settings.progress_cas_max_attempts,
    )
    app_state.quiz_service = QuizService(
        session=session,
        keyspace=keyspace,
        catalog_service=app_state.catalog_service,
        default_passing_score=settings.quiz_default_passing_score,
    )
    app_state.stats_service = StatsService(
        progress_service=app_state.progress_service,
        quiz_service=app_state.quiz_service,
        catalog_service=app_state.catalog_service,
        notes_reader=app_state.notes_reader,
        user_directory=app_state.user_directory,
    )

    app.state.user_directory = app_state.user_directory
    app.state.catalog_service = app_state.catalog_service
    app.state.progress_service = app_state.progress_service
    app.state.quiz_service = app_state.quiz_service
    app.state.stats_service = app_state.stats_service


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    settings = get_settings()
    logger.info(
        "starting_application",
        app_name=settings.app_name,
        version=settings.app_version,
        environment=settings.environment,
    )

    try:
        session = await init_async_cassandra()
        logger.info("cassandra_initialized")

        init_services(app, session, settings.cassandra_keyspace)
        logger.info("services_initialized")
    except Exception as e:
        logger.warning(
            "database_init_skipped",
            error=str(e),
            message="Running without database connection",
        )

    yield

    # Shutdown
    logger.info("shutting_down_application")
    await shutdown_async_cassandra()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    # Never expose stack traces in responses; handlers below log details
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Learning record service - API",
        debug=False,
        lifespan=lifespan,
        default_response_class=ORJSONResponse,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        openapi_url="/openapi.json" if settings.is_development else None,
    )

    # Request context middleware (must be added first - outermost)
    app.add_middleware(
        RequestContextMiddleware,
        log_requests=settings.log_requests,
        exclude_paths=settings.log_exclude_paths,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
        max_age=settings.cors_max_age,
    )

    def _get_request_id_safe(request: Request) -> str | None:
        """Get request_id from request state or context."""
        if hasattr(request.state, "request_id"):
            return request.state.request_id
        return get_request_id()

    def _error_body(
        request: Request,
        status_code: int,
        message: str,
        code: str | None = None,
    ) -> dict[str, Any]:
        body: dict[str, Any] = {
            "error": True,
            "message": message,
            "status_code": status_code,
            "request_id": _get_request_id_safe(request),
        }
        if code:
            body["code"] = code
        return body

    @app.exception_handler(LearningRecordError)
    async def learning_record_exception_handler(
        request: Request, exc: LearningRecordError
    ) -> ORJSONResponse:
        """Handle domain errors that escaped a router."""
        logger.warning(
            "domain_error",
            code=exc.code,
            status_code=exc.status_code,
            detail=exc.message,
            path=request.url.path,
            method=request.method,
        )
        return ORJSONResponse(
            status_code=exc.status_code,
            content=_error_body(request, exc.status_code, exc.message, exc.code),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> ORJSONResponse:
        """Handle HTTP exceptions with safe error messages."""
        logger.warning(
            "http_exception",
            status_code=exc.status_code,
            detail=str(exc.detail),
            path=request.url.path,
            method=request.method,
        )

        message = (
            str(exc.detail)
            if exc.status_code < status.HTTP_500_INTERNAL_SERVER_ERROR
            else "Internal server error"
        )
        code = (exc.headers or {}).get("X-Error-Code")
        return ORJSONResponse(
            status_code=exc.status_code,
            content=_error_body(request, exc.status_code, message, code),
            headers=exc.headers,
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> ORJSONResponse:
        """Handle validation errors with safe error messages."""
        logger.warning(
            "validation_error",
            errors=exc.errors(),
            path=request.url.path,
            method=request.method,
        )

        body = _error_body(
            request,
            status.HTTP_422_UNPROCESSABLE_ENTITY,
            "Validation error",
            "validation_error",
        )
        body["details"] = [
            {
                "field": ".".join(str(loc) for loc in err.get("loc", [])),
                "message": err.get("msg", "Invalid value"),
            }
            for err in exc.errors()
        ]
        return ORJSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content=body,
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(
        request: Request, exc: Exception
    ) -> ORJSONResponse:
        """Catch-all handler for unhandled exceptions."""
        logger.exception(
            "unhandled_exception",
            error_type=type(exc).__name__,
            error_message=str(exc),
            path=request.url.path,
            method=request.method,
        )

        return ORJSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=_error_body(
                request,
                status.HTTP_500_INTERNAL_SERVER_ERROR,
                "An unexpected error occurred. Please try again later.",
            ),
        )

    # Include routers
    app.include_router(health_router)
    app.include_router(users_router)
    app.include_router(catalog_router)
    app.include_router(progress_router)
    app.include_router(enrollments_router)
    app.include_router(quizzes_router)
    app.include_router(quiz_attempts_router)
    app.include_router(stats_router)

    @app.get("/", include_in_schema=False)
    async def root(request: Request) -> dict[str, str]:
        """Root endpoint."""
        return {
            "message": "LearnLedger API",
            "version": settings.app_version,
            "docs": f"{request.url}docs",
        }

    return app


app = create_app()
