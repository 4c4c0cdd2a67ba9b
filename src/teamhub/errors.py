"""Application errors and their HTTP translation.

Learn: Services and auth components raise these exceptions; they never
build HTTP responses themselves. ``register_exception_handlers`` converts
them once, at the app boundary, into the documented ``{"message": ...}``
shape. Anything unexpected becomes an opaque 500 and is logged with its
traceback, so store schemas and stack traces never reach the client.
"""

from typing import Optional

import structlog
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = structlog.get_logger()


class AppError(Exception):
    """Base class for errors that map to a documented HTTP response."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_code: str = "INTERNAL_SERVER_ERROR"
    default_message: str = "Internal Server Error"

    def __init__(
        self,
        message: Optional[str] = None,
        headers: Optional[dict[str, str]] = None,
    ):
        self.message = message or self.default_message
        self.headers = headers
        super().__init__(self.message)


class InvalidCredentials(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    error_code = "AUTH_INVALID_CREDENTIALS"
    default_message = "Invalid email or password"


class Unauthenticated(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    error_code = "AUTH_UNAUTHORIZED_ACCESS"
    default_message = "Unauthorized. Please log in."


class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    error_code = "RESOURCE_NOT_FOUND"
    default_message = "Resource not found"


class ConflictError(AppError):
    status_code = status.HTTP_409_CONFLICT
    error_code = "AUTH_EMAIL_ALREADY_EXISTS"
    default_message = "Email already exists"


class UpstreamFailure(AppError):
    """The credential store or the identity provider is unavailable."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_code = "UPSTREAM_FAILURE"
    default_message = "Internal Server Error"


class OAuthIncomplete(AppError):
    """Federated login could not be completed.

    Not rendered as an error body: the OAuth callback turns it into a
    redirect to the frontend failure page.
    """

    status_code = status.HTTP_302_FOUND
    error_code = "AUTH_OAUTH_INCOMPLETE"
    default_message = "OAuth login could not be completed"


def _field_name(loc: tuple) -> str:
    # ("body", "email") -> "email"; keep nested paths dotted
    parts = [str(p) for p in loc if p not in ("body", "query", "path")]
    return ".".join(parts) or "body"


def register_exception_handlers(app: FastAPI) -> None:
    """Install the error-to-response translation on ``app``."""

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        if exc.status_code >= 500:
            logger.error(
                "app.upstream_failure",
                path=request.url.path,
                error_code=exc.error_code,
                cause=repr(exc.__cause__) if exc.__cause__ else None,
            )
        return JSONResponse(
            status_code=exc.status_code,
            content={"message": exc.message, "errorCode": exc.error_code},
            headers=exc.headers,
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        errors = [
            {"field": _field_name(tuple(err.get("loc", ()))), "message": err.get("msg", "")}
            for err in exc.errors()
        ]
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={
                "message": "Validation failed",
                "errorCode": "VALIDATION_ERROR",
                "errors": errors,
            },
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.error(
            "app.unhandled_exception",
            path=request.url.path,
            method=request.method,
            exc_info=exc,
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"message": "Internal Server Error", "errorCode": "INTERNAL_SERVER_ERROR"},
        )
