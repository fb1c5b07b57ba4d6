"""
In-memory repository adapter - Implements MembershipStore protocol.

Keeps members and tokens in process memory for development and tests.
A single lock stands in for the database's transaction isolation: every
operation runs as one critical section, which gives the same unique-key
and compare-and-set guarantees as the PostgreSQL adapter within a single
process. Not suitable for multi-instance deployments.
"""

import itertools
import threading
from dataclasses import replace
from datetime import datetime

from src.domain.models import Member, VerificationToken
from src.domain.ports import ConsumeResult, UniqueViolation


class InMemoryMembershipStore:
    """
    Implements MembershipStore protocol with dictionaries.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._members: dict[str, Member] = {}
        self._student_ids: set[str] = set()
        self._tokens: dict[str, VerificationToken] = {}
        self._member_ids = itertools.count(1)
        self._token_ids = itertools.count(1)

    def email_exists(self, email: str) -> bool:
        with self._lock:
            return email in self._members

    def student_id_exists(self, student_id: str) -> bool:
        with self._lock:
            return student_id in self._student_ids

    def get_member_by_email(self, email: str) -> Member | None:
        with self._lock:
            return self._members.get(email)

    def add_member_with_token(
        self, member: Member, token: VerificationToken
    ) -> tuple[Member, VerificationToken]:
        with self._lock:
            # All keys are checked before anything is written.
            if member.email in self._members:
                raise UniqueViolation("email")
            if member.student_id in self._student_ids:
                raise UniqueViolation("student_id")
            if token.token in self._tokens:
                raise UniqueViolation("token")

            stored_member = replace(member, id=next(self._member_ids))
            self._members[stored_member.email] = stored_member
            self._student_ids.add(stored_member.student_id)
            return stored_member, self._store_token(token)

    def add_token(self, token: VerificationToken) -> VerificationToken:
        with self._lock:
            if token.token in self._tokens:
                raise UniqueViolation("token")
            return self._store_token(token)

    def get_token(self, token: str) -> VerificationToken | None:
        with self._lock:
            return self._tokens.get(token)

    def latest_token_for(self, email: str) -> VerificationToken | None:
        with self._lock:
            candidates = [t for t in self._tokens.values() if t.email == email]
        if not candidates:
            return None
        return max(candidates, key=lambda t: (t.created_at, t.id))

    def consume_token(self, token: str, now: datetime) -> ConsumeResult:
        with self._lock:
            record = self._tokens.get(token)
            if record is None:
                return ConsumeResult.NOT_FOUND
            if not record.is_redeemable(now):
                return ConsumeResult.ALREADY_USED if record.is_used else ConsumeResult.EXPIRED

            self._tokens[token] = record.consume()
            member = self._members.get(record.email)
            if member is not None:
                self._members[member.email] = member.mark_verified()
            return ConsumeResult.CONSUMED

    def _store_token(self, token: VerificationToken) -> VerificationToken:
        stored = replace(token, id=next(self._token_ids))
        self._tokens[stored.token] = stored
        return stored
