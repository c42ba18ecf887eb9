"""
Domain error taxonomy.

Every error a client is allowed to see derives from ``AppError`` and carries
its own HTTP status code and message. Anything else that escapes a handler is
treated as an internal error and reduced to a generic message.
"""

from typing import Dict, List, Optional

from fastapi import status

INVALID_CREDENTIALS_MESSAGE = "Invalid email or password"


class AppError(Exception):
    """Base class for errors that are surfaced verbatim to the client"""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    message: str = "Internal Server Error"

    def __init__(
        self,
        message: Optional[str] = None,
        status_code: Optional[int] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        self.message = message or self.message
        if status_code is not None:
            self.status_code = status_code
        self.headers = headers
        super().__init__(self.message)


class ValidationError(AppError):
    """Request payload failed validation; carries every field violation at once"""

    status_code = status.HTTP_400_BAD_REQUEST
    message = "Validation failed"

    def __init__(self, violations: List[Dict[str, str]]):
        self.violations = violations
        summary = ", ".join(v["message"] for v in violations)
        super().__init__(f"Validation failed: {summary}" if summary else None)


class ConflictError(AppError):
    status_code = status.HTTP_409_CONFLICT
    message = "User with this email already exists"


class InvalidCredentialsError(AppError):
    # Same message for unknown email and wrong password - prevents account enumeration
    status_code = status.HTTP_401_UNAUTHORIZED
    message = INVALID_CREDENTIALS_MESSAGE


class AccountDisabledError(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    message = "Account is deactivated. Please contact support."


class UnauthorizedError(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    message = "Not authenticated"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message, headers={"WWW-Authenticate": "Bearer"})


class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    message = "Not found"


class DatabaseUnavailableError(AppError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    message = "Database unavailable"
