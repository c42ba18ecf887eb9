import pytest
from pydantic import ValidationError as PydanticValidationError
from app.schemas.auth import LoginRequest, RegisterRequest, violations_from_errors


def _violations(model, payload):
    with pytest.raises(PydanticValidationError) as exc_info:
        model.model_validate(payload)
    return violations_from_errors(exc_info.value.errors())


def _by_field(violations):
    return {v["field"]: v["message"] for v in violations}


def test_register_normalizes_email():
    request = RegisterRequest.model_validate(
        {"email": "  Alice@Example.com ", "password": "Abcdef12", "name": "Alice"}
    )
    assert request.email == "alice@example.com"
    assert request.name == "Alice"


def test_name_is_optional():
    request = RegisterRequest.model_validate({"email": "bob@example.com", "password": "Abcdef12"})
    assert request.name is None


def test_short_password_rejected():
    messages = _by_field(_violations(RegisterRequest, {"email": "bob@example.com", "password": "short"}))
    assert "Password must be at least 8 characters" in messages["password"]


def test_password_without_uppercase_rejected():
    messages = _by_field(_violations(RegisterRequest, {"email": "bob@example.com", "password": "alllowercase1"}))
    assert messages["password"] == "Password must contain at least one uppercase letter"


def test_password_without_digit_or_lowercase_rejected():
    messages = _by_field(_violations(RegisterRequest, {"email": "bob@example.com", "password": "ABCDEFGHI"}))
    assert "at least one lowercase letter" in messages["password"]
    assert "at least one number" in messages["password"]


def test_password_too_long_rejected():
    messages = _by_field(_violations(RegisterRequest, {"email": "bob@example.com", "password": "Ab1" * 34}))
    assert "Password must be less than 100 characters" in messages["password"]


def test_invalid_email_rejected():
    messages = _by_field(_violations(RegisterRequest, {"email": "not-an-email", "password": "Abcdef12"}))
    assert messages == {"email": "Invalid email format"}


def test_too_short_email_rejected():
    messages = _by_field(_violations(LoginRequest, {"email": "a@b", "password": "x"}))
    assert messages["email"] == "Email must be at least 5 characters"


def test_short_name_rejected():
    messages = _by_field(
        _violations(RegisterRequest, {"email": "bob@example.com", "password": "Abcdef12", "name": "A"})
    )
    assert messages == {"name": "Name must be at least 2 characters"}


def test_all_violations_reported_together():
    violations = _violations(RegisterRequest, {"email": "not-an-email", "password": "short", "name": "A"})
    assert {v["field"] for v in violations} == {"email", "password", "name"}


def test_missing_fields_reported_by_name():
    messages = _by_field(_violations(RegisterRequest, {}))
    assert messages == {"email": "Email is required", "password": "Password is required"}


def test_login_does_not_check_password_strength():
    request = LoginRequest.model_validate({"email": "Bob@Example.com", "password": "weak"})
    assert request.email == "bob@example.com"
    assert request.password == "weak"


def test_login_requires_non_empty_password():
    messages = _by_field(_violations(LoginRequest, {"email": "bob@example.com", "password": ""}))
    assert messages == {"password": "Password is required"}


def test_body_prefix_is_stripped_from_field_path():
    violations = violations_from_errors(
        [{"loc": ("body", "email"), "msg": "Invalid email format", "type": "email_format"}]
    )
    assert violations == [{"field": "email", "message": "Invalid email format"}]


def _address_of_length(total):
    # 64-char local part, then a domain padded out in its last label
    local = "a" * 64
    fixed = "b" * 63 + "." + "c" * 63 + "."
    last_label = "d" * (total - len(local) - 1 - len(fixed) - len(".com"))
    return f"{local}@{fixed}{last_label}.com"


def test_longest_allowed_email_accepted():
    address = _address_of_length(254)
    request = LoginRequest.model_validate({"email": address, "password": "x"})
    assert request.email == address


def test_overlong_email_gets_length_message():
    messages = _by_field(_violations(LoginRequest, {"email": _address_of_length(255), "password": "x"}))
    assert messages == {"email": "Email must be at most 254 characters"}


def test_json_syntax_error_reported_on_body():
    violations = violations_from_errors(
        [{"loc": ("body", 12), "msg": "JSON decode error", "type": "json_invalid"}]
    )
    assert violations == [{"field": "body", "message": "JSON decode error"}]
