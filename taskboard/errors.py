"""Domain errors and their HTTP mapping."""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class TaskboardError(Exception):
    """Base class for errors surfaced to API clients.

    Attributes:
        message: Human-readable description shown to the user.
        status_code: HTTP status used when the error reaches a route.
        error: Stable machine-readable error code.
        retryable: Whether retrying the same action may succeed.
    """

    status_code = status.HTTP_400_BAD_REQUEST
    error = "error"
    retryable = False

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(TaskboardError):
    """Required input missing or malformed."""

    status_code = status.HTTP_400_BAD_REQUEST
    error = "validation_error"


class Unauthorized(TaskboardError):
    status_code = status.HTTP_401_UNAUTHORIZED
    error = "unauthorized"


class PermissionDenied(TaskboardError):
    status_code = status.HTTP_403_FORBIDDEN
    error = "permission_denied"


class NotFound(TaskboardError):
    status_code = status.HTTP_404_NOT_FOUND
    error = "not_found"


class Conflict(TaskboardError):
    status_code = status.HTTP_409_CONFLICT
    error = "conflict"


class Expired(TaskboardError):
    """Invitation is past its validity window."""

    status_code = status.HTTP_410_GONE
    error = "expired"


class AlreadyUsed(TaskboardError):
    """Invitation has already been accepted."""

    status_code = status.HTTP_409_CONFLICT
    error = "already_used"


class EmailMismatch(TaskboardError):
    """Invitation was sent to a different email than the acceptor's."""

    status_code = status.HTTP_403_FORBIDDEN
    error = "email_mismatch"

    def __init__(self, invited_email: str, user_email: str):
        super().__init__(
            f"This invitation is for {invited_email}. You are logged in as {user_email}"
        )
        self.invited_email = invited_email
        self.user_email = user_email


class UpstreamDeliveryFailure(TaskboardError):
    """Outbound email could not be delivered. Always converted to a warning."""

    status_code = status.HTTP_502_BAD_GATEWAY
    error = "delivery_failed"
    retryable = True


class PersistenceFailure(TaskboardError):
    """Storage error during a primary write."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    error = "persistence_failure"
    retryable = True


def error_payload(exc: TaskboardError) -> dict:
    """Build the JSON body for a domain error."""
    return {"error": exc.error, "detail": exc.message, "retryable": exc.retryable}


def register_exception_handlers(app: FastAPI) -> None:
    """Install the JSON handler for TaskboardError subclasses."""

    @app.exception_handler(TaskboardError)
    async def taskboard_error_handler(request: Request, exc: TaskboardError):
        level = logging.ERROR if exc.status_code >= 500 else logging.WARNING
        logger.log(
            level,
            "%s %s -> %s %s: %s",
            request.method,
            request.url.path,
            exc.status_code,
            exc.error,
            exc.message,
        )
        headers = None
        if isinstance(exc, Unauthorized):
            headers = {"WWW-Authenticate": "Bearer"}
        return JSONResponse(
            status_code=exc.status_code,
            content=error_payload(exc),
            headers=headers,
        )
