# timely/errors.py
import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from timely.utils.cookies import clear_session_cookie

logger = logging.getLogger("timely.errors")


class TimelyError(Exception):
    """Base for errors that map onto a fixed, user-facing response."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    detail = "Internal server error"
    clears_session = False

    def __init__(self, detail: str | None = None):
        if detail is not None:
            self.detail = detail
        super().__init__(self.detail)


class MalformedInputError(TimelyError):
    status_code = status.HTTP_400_BAD_REQUEST
    detail = "Invalid token format. Token must be 128 hexadecimal characters."


class ConflictError(TimelyError):
    status_code = status.HTTP_409_CONFLICT
    detail = "Conflict. Please try again."


class InvalidCredentialError(TimelyError):
    status_code = status.HTTP_401_UNAUTHORIZED
    detail = "Invalid token. Please check and try again."


class NotFoundError(TimelyError):
    status_code = status.HTTP_404_NOT_FOUND
    detail = "Not found"


class RateLimitedError(TimelyError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    detail = "Too many requests. Please try again later."

    def __init__(self, detail: str | None = None, retry_after: int = 60):
        super().__init__(detail)
        self.retry_after = retry_after


# ---------------- SESSION FAILURES (cookie gets cleared) ----------------

class SessionError(TimelyError):
    status_code = status.HTTP_401_UNAUTHORIZED
    detail = "Authentication required. Please log in."
    clears_session = True


class MissingSessionError(SessionError):
    pass


class ExpiredSessionError(SessionError):
    detail = "Session expired. Please log in again."


class InvalidSignatureError(SessionError):
    detail = "Invalid session. Please log in again."


class UserGoneError(SessionError):
    detail = "User not found. Please log in again."


# ---------------- HANDLERS ----------------

def install_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(TimelyError)
    async def timely_error_handler(request: Request, exc: TimelyError):
        headers = {}
        if isinstance(exc, RateLimitedError):
            headers["Retry-After"] = str(exc.retry_after)
        response = JSONResponse({"detail": exc.detail}, status_code=exc.status_code, headers=headers)
        if exc.clears_session:
            clear_session_cookie(response, request.app.state.settings)
            logger.info(f"{type(exc).__name__} on {request.url.path}; session cookie cleared.")
        return response

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        errors = [
            {"field": ".".join(str(p) for p in err.get("loc", ())[1:]), "message": err.get("msg", "")}
            for err in exc.errors()
        ]
        return JSONResponse(
            {"detail": "Validation failed", "errors": errors},
            status_code=status.HTTP_400_BAD_REQUEST,
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        return JSONResponse(
            {"detail": "Internal server error"},
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )
