"""
Port interfaces - Protocol definitions for infrastructure abstraction.

This module defines the interfaces (ports) that the domain requires
from infrastructure. Adapters implement these protocols.
"""

from datetime import datetime
from enum import Enum
from typing import Protocol

from .models import Member, VerificationToken


class ConsumeResult(Enum):
    """
    Outcome of an atomic token consumption attempt.

    Used by consume_token() to report whether this call flipped the
    token or, if not, why. When several conditions hold the first in
    this order wins: NOT_FOUND, ALREADY_USED, EXPIRED.
    """

    CONSUMED = "consumed"
    NOT_FOUND = "not_found"
    ALREADY_USED = "already_used"
    EXPIRED = "expired"


class UniqueViolation(Exception):
    """
    Raised by a store when an insert hits a unique constraint.

    ``field`` names the violated key: "email", "student_id" or "token".
    Never leaves the domain layer; services translate it.
    """

    def __init__(self, field: str) -> None:
        super().__init__(field)
        self.field = field


class PasswordHasher(Protocol):
    """Port interface for one-way credential hashing."""

    def hash(self, plaintext: str) -> str:
        """Return a salted digest of ``plaintext``."""
        ...

    def verify(self, digest: str, plaintext: str) -> bool:
        """Check ``plaintext`` against a digest produced by hash()."""
        ...


class NotificationDispatcher(Protocol):
    """Port interface for verification message delivery."""

    def send(self, to_email: str, token: str) -> None:
        """
        Deliver a verification link for ``token`` to ``to_email``.

        Raises:
            SendFailure: If the message could not be handed off
        """
        ...


class MembershipStore(Protocol):
    """Port interface for member and verification token persistence."""

    def email_exists(self, email: str) -> bool:
        """True if any member, active or not, holds this email."""
        ...

    def student_id_exists(self, student_id: str) -> bool:
        """True if any member, active or not, holds this student id."""
        ...

    def get_member_by_email(self, email: str) -> Member | None:
        ...

    def add_member_with_token(
        self, member: Member, token: VerificationToken
    ) -> tuple[Member, VerificationToken]:
        """
        Insert a member and its first verification token in one transaction.

        Either both rows are committed or neither is.

        Returns:
            The persisted member and token, with ids assigned

        Raises:
            UniqueViolation: On email, student_id or token conflicts
        """
        ...

    def add_token(self, token: VerificationToken) -> VerificationToken:
        """
        Insert a verification token.

        Raises:
            UniqueViolation: If the token value already exists
        """
        ...

    def get_token(self, token: str) -> VerificationToken | None:
        ...

    def latest_token_for(self, email: str) -> VerificationToken | None:
        """Most recently created token for ``email``, in any state."""
        ...

    def consume_token(self, token: str, now: datetime) -> ConsumeResult:
        """
        Atomically mark a token used and verify its member.

        The flip is a compare-and-set on is_used (False -> True) that
        also requires expires_at >= now. Only the winning call sets
        the member's is_verified flag, in the same transaction.

        Args:
            token: Token value from the verification link
            now: Current time, used for the expiry guard

        Returns:
            ConsumeResult describing the outcome
        """
        ...
