"""
Domain exceptions - Semantic error types for membership signup and verification.

This module defines domain-specific exceptions that communicate
business rule violations without leaking infrastructure details.
"""


class MembershipError(Exception):
    """Base class for membership domain errors."""

    pass


class RegistrationError(MembershipError):
    """Base class for signup and resend failures."""

    pass


class DuplicateEmail(RegistrationError):
    """Email already belongs to a member (active or deactivated)."""

    pass


class DuplicateStudentId(RegistrationError):
    """Student id already belongs to a member (active or deactivated)."""

    pass


class MemberNotFound(RegistrationError):
    """No member is registered under the given email."""

    pass


class AlreadyVerified(RegistrationError):
    """Member has already confirmed their email address."""

    pass


class ResendTooSoon(RegistrationError):
    """A verification token was issued for this email too recently."""

    def __init__(self, email: str, retry_after_seconds: int) -> None:
        super().__init__(email)
        self.email = email
        self.retry_after_seconds = retry_after_seconds


class ValidationError(MembershipError, ValueError):
    """Input field failed a format check."""

    def __init__(self, field: str, message: str) -> None:
        super().__init__(f"{field}: {message}")
        self.field = field
        self.message = message


class VerificationError(MembershipError):
    """Base class for token verification failures."""

    pass


class TokenNotFound(VerificationError):
    """No verification token matches the given value."""

    pass


class TokenExpired(VerificationError):
    """Token validity window has passed."""

    pass


class TokenAlreadyUsed(VerificationError):
    """Token was already consumed by an earlier verification."""

    pass


class SendFailure(MembershipError):
    """Verification message could not be delivered."""

    pass
