"""
API request and response models.

Pydantic models for FastAPI endpoint validation and OpenAPI schema generation.
Field names use camelCase aliases on the wire (``studentId``).
"""

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from src.config.settings import get_settings
from src.domain.validation import DEPARTMENT_MAX_LENGTH, EMAIL_MAX_LENGTH


class SignupRequest(BaseModel):
    """Request model for member signup."""

    model_config = ConfigDict(populate_by_name=True)

    email: EmailStr = Field(..., description="Institutional email address")
    student_id: str = Field(
        ...,
        alias="studentId",
        pattern=r"^[0-9]{8}$",
        description="8-digit student number",
    )
    password: str = Field(..., min_length=8, description="Password (min 8 characters)")
    department: str = Field(
        ..., min_length=1, max_length=DEPARTMENT_MAX_LENGTH, description="Department name"
    )
    nickname: str = Field(..., min_length=2, max_length=10, description="Nickname (2-10 characters)")

    @field_validator("email")
    @classmethod
    def email_in_institution_domain(cls, value: str) -> str:
        if len(value) > EMAIL_MAX_LENGTH:
            raise ValueError(f"must be at most {EMAIL_MAX_LENGTH} characters")
        domain = get_settings().institution_domain.lower()
        if not value.lower().endswith("@" + domain):
            raise ValueError(f"only @{domain} addresses may sign up")
        return value

    @field_validator("password", "department", "nickname")
    @classmethod
    def not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be blank")
        return value


class SignupResponse(BaseModel):
    """Response model for successful signup."""

    email: str
    nickname: str
    message: str


class VerifyResponse(BaseModel):
    """Response model for successful email verification."""

    message: str


class ResendRequest(BaseModel):
    """Request model for resending the verification email."""

    email: EmailStr


class ResendResponse(BaseModel):
    """Response model for a resent verification email."""

    message: str
    email: str


class AvailabilityResponse(BaseModel):
    """Response model for email / student id availability checks."""

    taken: bool


class ErrorResponse(BaseModel):
    """Standard error response model."""

    detail: str
