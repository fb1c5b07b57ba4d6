"""
Domain entities - Member and VerificationToken.

Entities are immutable values. All defaults are assigned by explicit
factory classmethods at construction time; persistence never stamps
fields on its own. State changes go through the designated transition
methods, which only ever move a flag in its allowed direction.

One-way flags:
    Member.is_verified        False -> True
    Member.is_active          True  -> False   (soft delete)
    VerificationToken.is_used False -> True
"""

from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from enum import Enum

# Validity window of a verification token. Also quoted in the
# verification message, so both must come from here.
TOKEN_TTL_MINUTES = 30
TOKEN_TTL = timedelta(minutes=TOKEN_TTL_MINUTES)


class Role(str, Enum):
    """Member role, stored and serialized as its canonical string."""

    USER = "USER"
    ADMIN = "ADMIN"


@dataclass(frozen=True)
class Member:
    """A registered account."""

    email: str
    password_hash: str
    nickname: str
    department: str
    student_id: str
    created_at: datetime
    role: Role = Role.USER
    is_active: bool = True
    points: int = 0
    is_verified: bool = False
    id: int | None = None

    @classmethod
    def register(
        cls,
        *,
        email: str,
        password_hash: str,
        nickname: str,
        department: str,
        student_id: str,
        now: datetime,
    ) -> "Member":
        """Build a brand-new member with every signup default applied."""
        return cls(
            email=email,
            password_hash=password_hash,
            nickname=nickname,
            department=department,
            student_id=student_id,
            created_at=now,
            role=Role.USER,
            is_active=True,
            points=0,
            is_verified=False,
        )

    def mark_verified(self) -> "Member":
        if self.is_verified:
            return self
        return replace(self, is_verified=True)

    def deactivate(self) -> "Member":
        if not self.is_active:
            return self
        return replace(self, is_active=False)


@dataclass(frozen=True)
class VerificationToken:
    """A single-use, time-limited proof of email ownership."""

    email: str
    token: str
    created_at: datetime
    expires_at: datetime
    is_used: bool = False
    id: int | None = None

    @classmethod
    def issue(cls, email: str, token: str, now: datetime) -> "VerificationToken":
        """Build an unused token whose window starts at ``now``."""
        return cls(
            email=email,
            token=token,
            created_at=now,
            expires_at=now + TOKEN_TTL,
            is_used=False,
        )

    def is_expired(self, now: datetime) -> bool:
        return now > self.expires_at

    def is_redeemable(self, now: datetime) -> bool:
        return not self.is_used and not self.is_expired(now)

    def consume(self) -> "VerificationToken":
        if self.is_used:
            return self
        return replace(self, is_used=True)
