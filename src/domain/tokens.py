"""
Verification token issuance.

Token values come from the secrets module (256 bits, URL-safe) so they
can be placed in a link and cannot be guessed or enumerated. The store's
unique constraint on the token value is the final guard; on a collision
the issuer mints a fresh value and tries again.
"""

import logging
import secrets
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TypeVar, overload

from .models import VerificationToken
from .ports import MembershipStore, UniqueViolation

logger = logging.getLogger(__name__)

TOKEN_BYTES = 32
MAX_ISSUE_ATTEMPTS = 5

T = TypeVar("T")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class TokenIssuer:
    """Mints verification tokens and persists them with collision retry."""

    store: MembershipStore
    clock: Callable[[], datetime] = field(default=utcnow)

    def mint(self, email: str) -> VerificationToken:
        """Build an unpersisted token for ``email`` starting now."""
        return VerificationToken.issue(email, secrets.token_urlsafe(TOKEN_BYTES), self.clock())

    @overload
    def issue(self, email: str) -> VerificationToken: ...

    @overload
    def issue(self, email: str, persist: Callable[[VerificationToken], T]) -> T: ...

    def issue(
        self,
        email: str,
        persist: Callable[[VerificationToken], T] | None = None,
    ) -> T | VerificationToken:
        """
        Mint and persist a verification token for ``email``.

        Args:
            email: Normalized email address the token proves
            persist: Callable that stores a freshly minted token. Its
                return value is passed through. Defaults to
                store.add_token, which returns the stored token.

        Returns:
            Whatever ``persist`` returned for the winning token

        Raises:
            UniqueViolation: For conflicts on any key other than the token
                value, or if every attempt collided
        """
        persist = persist or self.store.add_token
        attempt = 0
        while True:
            attempt += 1
            try:
                return persist(self.mint(email))
            except UniqueViolation as exc:
                if exc.field != "token" or attempt >= MAX_ISSUE_ATTEMPTS:
                    raise
                logger.warning("Token value collision on attempt %d, regenerating", attempt)
