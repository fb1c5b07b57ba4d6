"""
Unit tests for InMemoryMembershipStore.

Mirrors the PostgreSQL integration tests so both adapters are held to the
same MembershipStore contract.
"""

from datetime import timedelta

import pytest

from src.adapters.repository.memory import InMemoryMembershipStore
from src.domain.models import Member, VerificationToken
from src.domain.ports import ConsumeResult, UniqueViolation


def member(clock, email: str = "a@inha.ac.kr", student_id: str = "20231234") -> Member:
    return Member.register(
        email=email,
        password_hash="$2b$04$hash",
        nickname="nick",
        department="CS",
        student_id=student_id,
        now=clock(),
    )


def token(clock, email: str = "a@inha.ac.kr", value: str = "tok-1") -> VerificationToken:
    return VerificationToken.issue(email, value, clock())


class TestAddMemberWithToken:
    def test_assigns_ids(self, store: InMemoryMembershipStore, clock) -> None:
        stored_member, stored_token = store.add_member_with_token(member(clock), token(clock))

        assert stored_member.id == 1
        assert stored_token.id == 1

    def test_rows_readable(self, store: InMemoryMembershipStore, clock) -> None:
        store.add_member_with_token(member(clock), token(clock))

        assert store.email_exists("a@inha.ac.kr")
        assert store.student_id_exists("20231234")
        assert store.get_member_by_email("a@inha.ac.kr").nickname == "nick"
        assert store.get_token("tok-1").email == "a@inha.ac.kr"

    @pytest.mark.parametrize(
        ("email", "student_id", "value", "field"),
        [
            ("a@inha.ac.kr", "20239999", "tok-2", "email"),
            ("b@inha.ac.kr", "20231234", "tok-2", "student_id"),
            ("b@inha.ac.kr", "20239999", "tok-1", "token"),
        ],
    )
    def test_conflict_writes_nothing(
        self,
        store: InMemoryMembershipStore,
        clock,
        email: str,
        student_id: str,
        value: str,
        field: str,
    ) -> None:
        store.add_member_with_token(member(clock), token(clock))

        with pytest.raises(UniqueViolation) as exc_info:
            store.add_member_with_token(
                member(clock, email, student_id), token(clock, email, value)
            )

        assert exc_info.value.field == field
        assert store.get_token("tok-2") is None
        assert not store.student_id_exists("20239999")
        assert store.get_member_by_email("a@inha.ac.kr").student_id == "20231234"


class TestTokens:
    def test_add_token_duplicate(self, store: InMemoryMembershipStore, clock) -> None:
        store.add_token(token(clock))

        with pytest.raises(UniqueViolation) as exc_info:
            store.add_token(token(clock))

        assert exc_info.value.field == "token"

    def test_latest_token_for(self, store: InMemoryMembershipStore, clock) -> None:
        store.add_token(token(clock, value="old"))
        clock.advance(minutes=1)
        store.add_token(token(clock, value="new"))
        store.add_token(token(clock, email="b@inha.ac.kr", value="other"))

        assert store.latest_token_for("a@inha.ac.kr").token == "new"

    def test_latest_token_for_same_timestamp_uses_insert_order(
        self, store: InMemoryMembershipStore, clock
    ) -> None:
        store.add_token(token(clock, value="first"))
        store.add_token(token(clock, value="second"))

        assert store.latest_token_for("a@inha.ac.kr").token == "second"

    def test_latest_token_for_unknown(self, store: InMemoryMembershipStore) -> None:
        assert store.latest_token_for("a@inha.ac.kr") is None


class TestConsumeToken:
    def test_consumed_verifies_member(self, store: InMemoryMembershipStore, clock) -> None:
        store.add_member_with_token(member(clock), token(clock))

        assert store.consume_token("tok-1", clock()) is ConsumeResult.CONSUMED
        assert store.get_token("tok-1").is_used is True
        assert store.get_member_by_email("a@inha.ac.kr").is_verified is True

    def test_not_found(self, store: InMemoryMembershipStore, clock) -> None:
        assert store.consume_token("missing", clock()) is ConsumeResult.NOT_FOUND

    def test_already_used(self, store: InMemoryMembershipStore, clock) -> None:
        store.add_member_with_token(member(clock), token(clock))
        store.consume_token("tok-1", clock())

        assert store.consume_token("tok-1", clock()) is ConsumeResult.ALREADY_USED

    def test_expired(self, store: InMemoryMembershipStore, clock) -> None:
        store.add_member_with_token(member(clock), token(clock))

        later = clock() + timedelta(minutes=31)
        assert store.consume_token("tok-1", later) is ConsumeResult.EXPIRED
        assert store.get_token("tok-1").is_used is False
        assert store.get_member_by_email("a@inha.ac.kr").is_verified is False

    def test_consumable_at_exact_expiry(self, store: InMemoryMembershipStore, clock) -> None:
        store.add_member_with_token(member(clock), token(clock))

        at_expiry = store.get_token("tok-1").expires_at
        assert store.consume_token("tok-1", at_expiry) is ConsumeResult.CONSUMED

    def test_used_and_expired_reports_used(self, store: InMemoryMembershipStore, clock) -> None:
        store.add_member_with_token(member(clock), token(clock))
        store.consume_token("tok-1", clock())

        later = clock() + timedelta(minutes=31)
        assert store.consume_token("tok-1", later) is ConsumeResult.ALREADY_USED

    def test_orphan_token_consumed(self, store: InMemoryMembershipStore, clock) -> None:
        store.add_token(token(clock, email="ghost@inha.ac.kr"))

        assert store.consume_token("tok-1", clock()) is ConsumeResult.CONSUMED
        assert store.get_member_by_email("ghost@inha.ac.kr") is None

    def test_second_token_leaves_member_verified(
        self, store: InMemoryMembershipStore, clock
    ) -> None:
        store.add_member_with_token(member(clock), token(clock))
        store.add_token(token(clock, value="tok-2"))
        store.consume_token("tok-1", clock())

        assert store.consume_token("tok-2", clock()) is ConsumeResult.CONSUMED
        assert store.get_member_by_email("a@inha.ac.kr").is_verified is True
