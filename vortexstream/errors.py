"""Error taxonomy and the uniform response envelope."""

import logging
from typing import Any

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class ApiError(HTTPException):
    """Base class for errors surfaced to API callers as an error envelope."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Something went wrong"

    def __init__(self, message: str | None = None, errors: list[Any] | None = None):
        self.message = message or self.default_message
        self.errors = errors or []
        super().__init__(status_code=type(self).status_code, detail=self.message)


class InvalidArgument(ApiError):
    """Missing or malformed required field or id."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid argument"


class Unauthorized(ApiError):
    """Bad credentials, ownership mismatch, or missing/invalid/expired token."""

    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Not authorized"


class NotFound(ApiError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class Conflict(ApiError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Conflict"


class InternalError(ApiError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "An error occurred processing your request"


def envelope(status_code: int, message: str, data: Any = None) -> dict[str, Any]:
    """Build the uniform response body.

    ``success`` is derived from the status code rather than passed in, so a
    body can never claim success with an error status.
    """
    return {
        "statusCode": status_code,
        "success": status_code < 400,
        "message": message,
        "data": jsonable_encoder(data),
    }


def respond(status_code: int, message: str, data: Any = None) -> JSONResponse:
    """Return a JSONResponse wrapping ``data`` in the envelope."""
    return JSONResponse(status_code=status_code, content=envelope(status_code, message, data))


def _error_response(status_code: int, message: str, errors: list[Any]) -> JSONResponse:
    body = envelope(status_code, message)
    body["errors"] = jsonable_encoder(errors)
    return JSONResponse(status_code=status_code, content=body)


async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return _error_response(exc.status_code, exc.message, exc.errors)


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    errors = [] if isinstance(exc.detail, str) else [exc.detail]
    return _error_response(exc.status_code, message, errors)


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg", "")}
        for err in exc.errors()
    ]
    return _error_response(status.HTTP_400_BAD_REQUEST, "Invalid request", errors)


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        f"Unhandled error on {request.method} {request.url.path}", exc_info=exc
    )
    return _error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR, InternalError.default_message, []
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Install the envelope-producing handlers on ``app``."""
    app.add_exception_handler(ApiError, api_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, unhandled_exception_handler)
