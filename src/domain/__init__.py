"""
Domain layer - Pure business logic with zero framework imports.

This package contains the core business logic for institutional member
signup and email verification. It defines its own port interfaces for
infrastructure abstraction, ensuring true hexagonal architecture decoupling.
"""

from .exceptions import (
    AlreadyVerified,
    DuplicateEmail,
    DuplicateStudentId,
    MemberNotFound,
    MembershipError,
    RegistrationError,
    ResendTooSoon,
    SendFailure,
    TokenAlreadyUsed,
    TokenExpired,
    TokenNotFound,
    ValidationError,
    VerificationError,
)
from .ledger import VerificationLedger
from .models import TOKEN_TTL, TOKEN_TTL_MINUTES, Member, Role, VerificationToken
from .ports import (
    ConsumeResult,
    MembershipStore,
    NotificationDispatcher,
    PasswordHasher,
    UniqueViolation,
)
from .registry import MembershipRegistry, SignupResult
from .tokens import TokenIssuer

__all__ = [
    "AlreadyVerified",
    "ConsumeResult",
    "DuplicateEmail",
    "DuplicateStudentId",
    "Member",
    "MemberNotFound",
    "MembershipError",
    "MembershipRegistry",
    "MembershipStore",
    "NotificationDispatcher",
    "PasswordHasher",
    "RegistrationError",
    "ResendTooSoon",
    "Role",
    "SendFailure",
    "SignupResult",
    "TOKEN_TTL",
    "TOKEN_TTL_MINUTES",
    "TokenAlreadyUsed",
    "TokenExpired",
    "TokenIssuer",
    "TokenNotFound",
    "UniqueViolation",
    "ValidationError",
    "VerificationError",
    "VerificationLedger",
    "VerificationToken",
]
