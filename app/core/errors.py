"""Error taxonomy and the request-boundary handlers that turn errors into JSON.

Services raise these; routes let them propagate. Every error leaves the app as
``{"detail": ...}`` (plus ``field`` for validation errors), never as a raw
traceback.
"""
import logging
from typing import Any, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class AppError(HTTPException):
    """Base application error; carries its HTTP status."""

    status_code_default = 500
    detail_default = "Internal server error"

    def __init__(
        self,
        detail: Optional[str] = None,
        *,
        field: Optional[str] = None,
        headers: Optional[dict[str, str]] = None,
    ) -> None:
        super().__init__(
            status_code=self.status_code_default,
            detail=detail or self.detail_default,
            headers=headers,
        )
        self.field = field


class UnauthorizedError(AppError):
    """No session, a bad session, or a session that does not own the target.

    Ownership failures use this same class so callers cannot tell an existing
    row owned by someone else from a missing session.
    """

    status_code_default = 401
    detail_default = "Unauthorized"


class InvalidCredentialsError(UnauthorizedError):
    detail_default = "Invalid credentials"


class NotFoundError(AppError):
    status_code_default = 404
    detail_default = "Not found"


class ValidationError(AppError):
    status_code_default = 400
    detail_default = "Invalid request"


class ConflictError(AppError):
    status_code_default = 409
    detail_default = "Already exists"


class ServiceUnavailableError(AppError):
    status_code_default = 503
    detail_default = "Service temporarily unavailable"


def _error_body(detail: Any, field: Optional[str] = None) -> dict[str, Any]:
    body: dict[str, Any] = {"detail": detail}
    if field:
        body["field"] = field
    return body


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(exc.detail, exc.field),
        headers=exc.headers,
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Schema failures: name the first offending field in ``detail``."""
    errors = exc.errors()
    field = None
    message = "Invalid request"
    if errors:
        first = errors[0]
        loc = [str(p) for p in first.get("loc", ()) if p not in ("body", "query", "path", "form")]
        field = ".".join(loc) or None
        message = f"{field}: {first.get('msg')}" if field else str(first.get("msg"))
    body = _error_body(message, field)
    body["errors"] = [
        {"loc": list(e.get("loc", ())), "msg": e.get("msg"), "type": e.get("type")}
        for e in errors
    ]
    return JSONResponse(status_code=422, content=body)


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content=_error_body("Internal server error"))


def register_exception_handlers(app: FastAPI) -> None:
    """Install the JSON error handlers on the app."""
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
