"""
Exception handlers producing the uniform error body ``{error, message}``.

Domain errors are passed through with their own status and message. Anything
unexpected is logged in full and reported as a generic 500. Stack traces are
attached to the body only in development.
"""

import logging
import traceback
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.config import Settings
from app.core.errors import AppError, ValidationError
from app.schemas.auth import violations_from_errors

logger = logging.getLogger(__name__)


def _error_body(message: str, exc: Exception, settings: Settings) -> Dict[str, Any]:
    body: Dict[str, Any] = {"error": True, "message": message}
    if settings.is_development:
        body["stack"] = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    return body


def _error_response(
    status_code: int,
    body: Dict[str, Any],
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=body, headers=headers)


def register_exception_handlers(app: FastAPI, settings: Settings) -> None:
    @app.exception_handler(AppError)
    async def handle_app_error(request: Request, exc: AppError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}", exc_info=exc)
        body = _error_body(exc.message, exc, settings)
        if isinstance(exc, ValidationError):
            body["errors"] = exc.violations
        return _error_response(exc.status_code, body, exc.headers)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        # Report every violation in one response
        error = ValidationError(violations_from_errors(exc.errors()))
        body = _error_body(error.message, exc, settings)
        body["errors"] = error.violations
        return _error_response(error.status_code, body)

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        if exc.status_code == status.HTTP_404_NOT_FOUND and exc.detail == "Not Found":
            message = f"Route {request.method} {request.url.path} not found"
        else:
            message = str(exc.detail)
        return _error_response(
            exc.status_code,
            _error_body(message, exc, settings),
            getattr(exc, "headers", None),
        )


def unexpected_error_response(request: Request, exc: Exception, settings: Settings) -> JSONResponse:
    """
    Generic 500 for exceptions no handler claimed.

    Called from inside the app's middleware stack so the response still
    passes through CORS, security headers and request logging.
    """
    # Full detail stays server-side
    logger.error(f"Unhandled error on {request.method} {request.url.path}", exc_info=exc)
    return _error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        _error_body("Internal Server Error", exc, settings),
    )
