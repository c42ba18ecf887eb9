"""
App-level HTTP middleware: CORS, security headers, request logging and
the generic 500 for unhandled exceptions.
"""

import logging
import time

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from app.api.errors import unexpected_error_response
from app.core.config import Settings

logger = logging.getLogger("app.requests")

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "X-XSS-Protection": "1; mode=block",
}


def register_middleware(app: FastAPI, settings: Settings) -> None:
    """Attach app-level middleware. The last one added is the outermost."""

    @app.middleware("http")
    async def unhandled_errors(request: Request, call_next):
        # Innermost: turns stray exceptions into a JSON 500 before the
        # headers, logging and CORS layers see the response
        try:
            return await call_next(request)
        except Exception as exc:
            return unexpected_error_response(request, exc, settings)

    @app.middleware("http")
    async def security_headers(request: Request, call_next):
        response = await call_next(request)
        for header, value in SECURITY_HEADERS.items():
            response.headers.setdefault(header, value)
        return response

    @app.middleware("http")
    async def request_logger(request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - start) * 1000
        level = logging.INFO
        if response.status_code >= 500:
            level = logging.ERROR
        elif response.status_code >= 400:
            level = logging.WARNING
        logger.log(
            level,
            f"{request.method:<6} | {response.status_code} | {elapsed_ms:.0f}ms | {request.url.path}",
        )
        return response

    # CORS middleware - allows the dashboard to call the API from the browser
    # Added last so it wraps everything, including the generic 500
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.get_cors_origins(),
        allow_credentials=True,  # Allow cookies/auth headers
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
        expose_headers=["Content-Range", "X-Content-Range"],
        max_age=600,  # Cache preflight requests for 10 minutes
    )
