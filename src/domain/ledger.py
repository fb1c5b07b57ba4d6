"""
Verification ledger - single-use token state machine.

Per-token states (forward-only):
    issued -> consumed   (successful verify, terminal)
    issued -> expired    (now > expires_at, terminal, evaluated lazily)

Nothing sweeps expired tokens; they are rejected when presented and
otherwise kept. Several tokens may be live for one email at a time and
each is judged only on its own flags.

The consumed transition is a compare-and-set performed by the store,
so two concurrent verifications of one token cannot both succeed.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime

from .exceptions import TokenAlreadyUsed, TokenExpired, TokenNotFound
from .models import VerificationToken
from .ports import ConsumeResult, MembershipStore
from .tokens import TokenIssuer, utcnow

logger = logging.getLogger(__name__)

_FAILURES = {
    ConsumeResult.NOT_FOUND: TokenNotFound,
    ConsumeResult.ALREADY_USED: TokenAlreadyUsed,
    ConsumeResult.EXPIRED: TokenExpired,
}


@dataclass
class VerificationLedger:
    """Tracks issued tokens and redeems them against member records."""

    store: MembershipStore
    token_issuer: TokenIssuer
    clock: Callable[[], datetime] = field(default=utcnow)

    def issue(self, email: str) -> VerificationToken:
        """Issue and record a stand-alone token for an existing email."""
        token = self.token_issuer.issue(email, self.store.add_token)
        logger.info("Verification token issued for %s", email)
        return token

    def verify(self, token: str) -> None:
        """
        Redeem a verification token.

        On success the token is marked used and the member owning its
        email is marked verified. The member flag is idempotent; the
        token flag is strictly single-shot.

        Raises:
            TokenNotFound: No token has this value
            TokenAlreadyUsed: Token was consumed earlier (or concurrently)
            TokenExpired: Token validity window has passed
        """
        if not token:
            raise TokenNotFound(token or "")

        result = self.store.consume_token(token, self.clock())
        if result is not ConsumeResult.CONSUMED:
            raise _FAILURES[result](token)

        record = self.store.get_token(token)
        if record is None or self.store.get_member_by_email(record.email) is None:
            # Weak reference: the token is spent even without a member.
            logger.warning("Consumed verification token has no matching member")
            return
        logger.info("Email verified for %s", record.email)

    def most_recent_token_for(self, email: str) -> VerificationToken | None:
        """Latest-issued token for ``email`` regardless of used/expired state."""
        return self.store.latest_token_for(email)
