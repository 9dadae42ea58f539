"""Error kinds shared by the learning record modules.

Every failure surfaced to a caller is one of five kinds, each carrying a
stable machine code and a human-readable message:

- NotFoundError: referenced content, course, quiz or attempt is absent
- ForbiddenError: caller lacks the role or ownership for the operation
- ValidationError: input out of range, duplicate order, missing field
- ConflictError: state forbids the operation (double submit, published quiz)
- PersistenceError: storage unavailable, never retried internally

Modules subclass these kinds with their own codes. Routers convert them to
HTTP responses with `to_http_exception`.
"""

from fastapi import HTTPException, status


class LearningRecordError(Exception):
    """Base error for the learning record service."""

    default_code = "learning_record_error"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, code: str | None = None):
        self.message = message
        self.code = code or self.default_code
        super().__init__(message)


class NotFoundError(LearningRecordError):
    """Referenced record does not exist."""

    default_code = "not_found"
    status_code = status.HTTP_404_NOT_FOUND


class ForbiddenError(LearningRecordError):
    """Caller is not allowed to perform the operation."""

    default_code = "forbidden"
    status_code = status.HTTP_403_FORBIDDEN


class ValidationError(LearningRecordError):
    """Input violates a domain rule."""

    default_code = "validation_error"
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY


class ConflictError(LearningRecordError):
    """Current record state does not allow the operation."""

    default_code = "conflict"
    status_code = status.HTTP_409_CONFLICT


class PersistenceError(LearningRecordError):
    """Storage layer failed or is unavailable."""

    default_code = "persistence_error"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


def to_http_exception(error: LearningRecordError) -> HTTPException:
    """Convert a learning record error to an HTTP exception.

    Args:
        error: Domain error

    Returns:
        HTTPException with the kind's status code
    """
    return HTTPException(
        status_code=error.status_code,
        detail=error.message,
        headers={"X-Error-Code": error.code},
    )
