"""
Request and response schemas for the auth API.

Request models double as the input validator: FastAPI runs them before any
handler code, so a malformed payload never reaches the service layer. All
field violations are collected in a single pass and reported together.
"""

import re
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from email_validator import EmailNotValidError, validate_email
from pydantic import BaseModel, ConfigDict, field_serializer, field_validator
from pydantic_core import PydanticCustomError

EMAIL_MIN_LENGTH = 5
# RFC 5321 caps a full address at 254 characters; email-validator enforces it
EMAIL_MAX_LENGTH = 254
PASSWORD_MIN_LENGTH = 8
PASSWORD_MAX_LENGTH = 100
NAME_MIN_LENGTH = 2
NAME_MAX_LENGTH = 100

_PASSWORD_RULES = (
    (re.compile(r"[A-Z]"), "Password must contain at least one uppercase letter"),
    (re.compile(r"[a-z]"), "Password must contain at least one lowercase letter"),
    (re.compile(r"[0-9]"), "Password must contain at least one number"),
)


def normalize_email(value: str) -> str:
    """Lowercase and trim an email address"""
    return value.strip().lower()


def _check_email(value: str) -> str:
    value = value.strip()
    if len(value) < EMAIL_MIN_LENGTH:
        raise PydanticCustomError("email_length", f"Email must be at least {EMAIL_MIN_LENGTH} characters")
    if len(value) > EMAIL_MAX_LENGTH:
        raise PydanticCustomError("email_length", f"Email must be at most {EMAIL_MAX_LENGTH} characters")
    try:
        validate_email(value, check_deliverability=False)
    except EmailNotValidError:
        raise PydanticCustomError("email_format", "Invalid email format")
    return normalize_email(value)


class RegisterRequest(BaseModel):
    email: str
    password: str
    name: Optional[str] = None

    @field_validator("email")
    @classmethod
    def validate_email_field(cls, value: str) -> str:
        return _check_email(value)

    @field_validator("password")
    @classmethod
    def validate_password_strength(cls, value: str) -> str:
        problems = []
        if len(value) < PASSWORD_MIN_LENGTH:
            problems.append(f"Password must be at least {PASSWORD_MIN_LENGTH} characters")
        if len(value) > PASSWORD_MAX_LENGTH:
            problems.append(f"Password must be less than {PASSWORD_MAX_LENGTH} characters")
        problems.extend(message for pattern, message in _PASSWORD_RULES if not pattern.search(value))
        if problems:
            raise PydanticCustomError("password_strength", ", ".join(problems))
        return value

    @field_validator("name")
    @classmethod
    def validate_name(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        if len(value) < NAME_MIN_LENGTH:
            raise PydanticCustomError("name_length", f"Name must be at least {NAME_MIN_LENGTH} characters")
        if len(value) > NAME_MAX_LENGTH:
            raise PydanticCustomError("name_length", f"Name must be less than {NAME_MAX_LENGTH} characters")
        return value


class LoginRequest(BaseModel):
    email: str
    # Strength is not re-checked on login; any non-empty string is compared
    password: str

    @field_validator("email")
    @classmethod
    def validate_email_field(cls, value: str) -> str:
        return _check_email(value)

    @field_validator("password")
    @classmethod
    def validate_password_present(cls, value: str) -> str:
        if not value:
            raise PydanticCustomError("password_required", "Password is required")
        return value


def violations_from_errors(errors: Iterable[Dict[str, Any]]) -> List[Dict[str, str]]:
    """Turn pydantic error dicts into ``{field, message}`` pairs"""
    violations = []
    for error in errors:
        loc = list(error.get("loc", ()))
        # FastAPI prefixes body fields with "body"
        if loc and loc[0] == "body":
            loc = loc[1:]
        # Non-string parts (e.g. the offset of a JSON syntax error) are not fields
        field = ".".join(part for part in loc if isinstance(part, str)) or "body"
        if error.get("type") == "missing":
            message = f"{field.capitalize()} is required"
        else:
            message = error.get("msg", "Invalid value")
        violations.append({"field": field, "message": message})
    return violations


class UserResponse(BaseModel):
    """Public view of a user - password_hash and updated_at are never exposed"""

    id: str
    email: str
    name: Optional[str]
    created_at: datetime
    is_active: bool

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("created_at")
    def serialize_created_at(self, value: datetime, _info):
        return value.isoformat() if value else None


class AuthData(BaseModel):
    user: UserResponse
    token: str


class AuthResponse(BaseModel):
    success: bool = True
    message: str
    data: AuthData


class ProfileResponse(BaseModel):
    success: bool = True
    data: UserResponse
