"""
Input validation for signup.

The HTTP layer validates requests before they reach the domain, but the
domain re-checks every field so that no caller can bypass the rules.
"""

import re

from .exceptions import ValidationError

DEFAULT_INSTITUTION_DOMAIN = "inha.ac.kr"

_EMAIL_PATTERN = re.compile(r"^[A-Za-z0-9._%+-]+@[A-Za-z0-9-]+(\.[A-Za-z0-9-]+)+$")
_STUDENT_ID_PATTERN = re.compile(r"^[0-9]{8}$")

# Column widths in migrations/001_create_members.sql
EMAIL_MAX_LENGTH = 254
DEPARTMENT_MAX_LENGTH = 100

PASSWORD_MIN_LENGTH = 8
NICKNAME_MIN_LENGTH = 2
NICKNAME_MAX_LENGTH = 10


def normalize_email(email: str) -> str:
    """
    Normalize email address for consistent storage and lookup.

    Applies: strip whitespace + lowercase
    """
    return email.strip().lower()


def _require(field: str, value: str | None) -> str:
    if value is None or not value.strip():
        raise ValidationError(field, "must not be blank")
    return value


def validate_email(email: str, institution_domain: str = DEFAULT_INSTITUTION_DOMAIN) -> str:
    """Return the normalized email or raise ValidationError."""
    normalized = normalize_email(_require("email", email))
    if len(normalized) > EMAIL_MAX_LENGTH:
        raise ValidationError("email", f"must be at most {EMAIL_MAX_LENGTH} characters")
    if not _EMAIL_PATTERN.match(normalized):
        raise ValidationError("email", "is not a valid email address")
    if not normalized.endswith("@" + institution_domain.lower()):
        raise ValidationError("email", f"must be an @{institution_domain} address")
    return normalized


def validate_student_id(student_id: str) -> str:
    student_id = _require("student_id", student_id).strip()
    if not _STUDENT_ID_PATTERN.match(student_id):
        raise ValidationError("student_id", "must be exactly 8 digits")
    return student_id


def validate_password(password: str) -> str:
    # Not stripped: whitespace is part of the credential.
    _require("password", password)
    if len(password) < PASSWORD_MIN_LENGTH:
        raise ValidationError(
            "password", f"must be at least {PASSWORD_MIN_LENGTH} characters"
        )
    return password


def validate_nickname(nickname: str) -> str:
    nickname = _require("nickname", nickname).strip()
    if not NICKNAME_MIN_LENGTH <= len(nickname) <= NICKNAME_MAX_LENGTH:
        raise ValidationError(
            "nickname",
            f"must be {NICKNAME_MIN_LENGTH}-{NICKNAME_MAX_LENGTH} characters",
        )
    return nickname


def validate_department(department: str) -> str:
    department = _require("department", department).strip()
    if len(department) > DEPARTMENT_MAX_LENGTH:
        raise ValidationError(
            "department", f"must be at most {DEPARTMENT_MAX_LENGTH} characters"
        )
    return department
