"""Core infrastructure: request context, errors, logging and middleware.

Database lifecycle lives in `src.core.database`, imported directly by the
application so that module models can depend on core helpers.
"""

from src.core.context import (
    RequestContext,
    clear_context,
    get_context,
    get_request_id,
    get_trace_id,
    get_user_id,
    set_request_id,
    set_trace_id,
    set_user_id,
)
from src.core.exceptions import (
    ConflictError,
    ForbiddenError,
    LearningRecordError,
    NotFoundError,
    PersistenceError,
    ValidationError,
    to_http_exception,
)
from src.core.logging import configure_structlog, get_logger
from src.core.middleware import RequestContextMiddleware


__all__ = [
    "ConflictError",
    "ForbiddenError",
    "LearningRecordError",
    "NotFoundError",
    "PersistenceError",
    "RequestContext",
    "RequestContextMiddleware",
    "ValidationError",
    "clear_context",
    "configure_structlog",
    "get_context",
    "get_logger",
    "get_request_id",
    "get_trace_id",
    "get_user_id",
    "set_request_id",
    "set_trace_id",
    "set_user_id",
    "to_http_exception",
]
