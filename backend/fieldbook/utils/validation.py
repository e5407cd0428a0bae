"""
Form validation for registration, login and profile edits.

Every validator returns a ValidationResult instead of raising, and the
composite form validators stop at the first failing field so the caller can
show a single inline message without a backend round-trip.
"""
import re
from dataclasses import dataclass
from typing import Optional

from email_validator import EmailNotValidError
from email_validator import validate_email as email_validate

# Argentine numbers, e.g. +54 11 1234-5678, 011 1234 5678, 3514567890
PHONE_PATTERN = re.compile(r"^(\+54|0)?[\s\-]?(\d{2,4})[\s\-]?\d{3,4}[\s\-]?\d{3,4}$")

MIN_PASSWORD_LENGTH = 8
MIN_NAME_LENGTH = 2
MAX_NAME_LENGTH = 50


@dataclass(frozen=True)
class ValidationResult:
    is_valid: bool
    error: Optional[str] = None


VALID = ValidationResult(is_valid=True)


def _invalid(message: str) -> ValidationResult:
    return ValidationResult(is_valid=False, error=message)


def validate_email(email: str) -> ValidationResult:
    if not email or not email.strip():
        return _invalid("Email is required")
    try:
        email_validate(email.strip(), check_deliverability=False)
    except EmailNotValidError:
        return _invalid("Email format is not valid")
    return VALID


def validate_password(password: str) -> ValidationResult:
    if not password or not password.strip():
        return _invalid("Password is required")
    if len(password) < MIN_PASSWORD_LENGTH:
        return _invalid(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")
    if not re.search(r"[a-z]", password):
        return _invalid("Password must contain at least one lowercase letter")
    if not re.search(r"[A-Z]", password):
        return _invalid("Password must contain at least one uppercase letter")
    if not re.search(r"\d", password):
        return _invalid("Password must contain at least one number")
    return VALID


def validate_password_confirmation(password: str, confirm_password: str) -> ValidationResult:
    if password != confirm_password:
        return _invalid("Passwords do not match")
    return VALID


def validate_name(name: str, field_name: str = "name") -> ValidationResult:
    stripped = (name or "").strip()
    if not stripped:
        return _invalid(f"The {field_name} is required")
    if len(stripped) < MIN_NAME_LENGTH:
        return _invalid(f"The {field_name} must be at least {MIN_NAME_LENGTH} characters long")
    if len(stripped) > MAX_NAME_LENGTH:
        return _invalid(f"The {field_name} cannot be longer than {MAX_NAME_LENGTH} characters")
    return VALID


def validate_phone(phone: Optional[str]) -> ValidationResult:
    # Optional field
    if not phone or not phone.strip():
        return VALID
    if not PHONE_PATTERN.match(phone):
        return _invalid("Phone format is not valid (e.g. +54 11 1234-5678)")
    return VALID


def validate_login_form(email: str, password: str) -> ValidationResult:
    email_result = validate_email(email)
    if not email_result.is_valid:
        return email_result
    if not password or not password.strip():
        return _invalid("Password is required")
    return VALID


def validate_register_form(
    first_name: str,
    last_name: str,
    email: str,
    password: str,
    confirm_password: str,
    phone: Optional[str] = None,
) -> ValidationResult:
    checks = (
        lambda: validate_name(first_name, "first name"),
        lambda: validate_name(last_name, "last name"),
        lambda: validate_email(email),
        lambda: validate_password(password),
        lambda: validate_password_confirmation(password, confirm_password),
        lambda: validate_phone(phone),
    )
    for check in checks:
        result = check()
        if not result.is_valid:
            return result
    return VALID
