"""
Membership registry - signup orchestration.

Signup flow:
    1. Normalize and validate every field
    2. Reject duplicate email, then duplicate student id
    3. Hash the password
    4. Build the member with all defaults applied
    5. Insert member + first verification token in ONE store transaction
    6. Dispatch the verification email

Uniqueness
==========
Steps 2 and 5 are not atomic: a concurrent signup can slip in between the
existence checks and the insert. The store's unique constraints are the
authoritative guard. A UniqueViolation raised by the insert is translated
into the same DuplicateEmail / DuplicateStudentId the pre-check raises,
so the loser of a race sees exactly what a later caller would.

Dispatch
========
Dispatch is decoupled from persistence. Once step 5 commits the account
exists; a SendFailure in step 6 is logged and reported through
SignupResult.verification_sent, and the registrant recovers via resend().
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from functools import partial

from .exceptions import (
    AlreadyVerified,
    DuplicateEmail,
    DuplicateStudentId,
    MemberNotFound,
    ResendTooSoon,
    SendFailure,
)
from .ledger import VerificationLedger
from .models import Member, VerificationToken
from .ports import MembershipStore, NotificationDispatcher, PasswordHasher, UniqueViolation
from .tokens import TokenIssuer, utcnow
from .validation import (
    DEFAULT_INSTITUTION_DOMAIN,
    normalize_email,
    validate_department,
    validate_email,
    validate_nickname,
    validate_password,
    validate_student_id,
)

logger = logging.getLogger(__name__)

DEFAULT_RESEND_COOLDOWN_SECONDS = 60


@dataclass(frozen=True)
class SignupResult:
    """Outcome of a successful signup."""

    member: Member
    token: VerificationToken
    verification_sent: bool


@dataclass
class MembershipRegistry:
    """
    Domain service for member signup.

    Enforces account uniqueness, provisions new members and drives the
    first verification round through the issuer, ledger and dispatcher.
    """

    store: MembershipStore
    password_hasher: PasswordHasher
    dispatcher: NotificationDispatcher
    token_issuer: TokenIssuer
    ledger: VerificationLedger
    institution_domain: str = DEFAULT_INSTITUTION_DOMAIN
    resend_cooldown_seconds: int = DEFAULT_RESEND_COOLDOWN_SECONDS
    clock: Callable[[], datetime] = field(default=utcnow)

    def signup(
        self,
        email: str,
        student_id: str,
        password: str,
        department: str,
        nickname: str,
    ) -> SignupResult:
        """
        Register a new member and send their first verification link.

        Args:
            email: Institutional email address (will be normalized)
            student_id: 8-digit student number
            password: Plaintext password (will be hashed)
            department: Department name
            nickname: Display name, 2-10 characters

        Returns:
            SignupResult with the persisted member and token

        Raises:
            ValidationError: If any field fails its format check
            DuplicateEmail: If the email is already registered
            DuplicateStudentId: If the student id is already registered
        """
        email = validate_email(email, self.institution_domain)
        student_id = validate_student_id(student_id)
        password = validate_password(password)
        department = validate_department(department)
        nickname = validate_nickname(nickname)

        if self.store.email_exists(email):
            raise DuplicateEmail(email)
        if self.store.student_id_exists(student_id):
            raise DuplicateStudentId(student_id)

        member = Member.register(
            email=email,
            password_hash=self.password_hasher.hash(password),
            nickname=nickname,
            department=department,
            student_id=student_id,
            now=self.clock(),
        )

        try:
            member, token = self.token_issuer.issue(
                email, partial(self.store.add_member_with_token, member)
            )
        except UniqueViolation as exc:
            raise self._translate_conflict(exc, member) from None

        logger.info("Member provisioned: %s", email)
        return SignupResult(
            member=member,
            token=token,
            verification_sent=self._dispatch(email, token),
        )

    def resend(self, email: str) -> VerificationToken:
        """
        Issue and send a fresh verification token.

        Earlier tokens are left untouched and stay valid until used or
        expired.

        Raises:
            MemberNotFound: If no member has this email
            AlreadyVerified: If the member is already verified
            ResendTooSoon: If the latest token is younger than the cooldown
            SendFailure: If the new link could not be delivered
        """
        email = normalize_email(email)
        member = self.store.get_member_by_email(email)
        if member is None:
            raise MemberNotFound(email)
        if member.is_verified:
            raise AlreadyVerified(email)

        latest = self.ledger.most_recent_token_for(email)
        if latest is not None:
            age = (self.clock() - latest.created_at).total_seconds()
            if age < self.resend_cooldown_seconds:
                raise ResendTooSoon(email, int(self.resend_cooldown_seconds - age) + 1)

        token = self.ledger.issue(email)
        self.dispatcher.send(email, token.token)
        return token

    def is_email_taken(self, email: str) -> bool:
        return self.store.email_exists(normalize_email(email))

    def is_student_id_taken(self, student_id: str) -> bool:
        return self.store.student_id_exists(student_id.strip())

    def get_member(self, email: str) -> Member | None:
        return self.store.get_member_by_email(normalize_email(email))

    def _dispatch(self, email: str, token: VerificationToken) -> bool:
        try:
            self.dispatcher.send(email, token.token)
        except SendFailure as exc:
            logger.warning("Verification email to %s failed: %s", email, exc)
            return False
        return True

    def _translate_conflict(self, exc: UniqueViolation, member: Member) -> Exception:
        if exc.field == "email":
            return DuplicateEmail(member.email)
        if exc.field == "student_id":
            return DuplicateStudentId(member.student_id)
        # Token collisions are retried by the issuer; reaching here means
        # every attempt collided.
        return RuntimeError("Could not allocate a unique verification token")
