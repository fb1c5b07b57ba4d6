"""
Adversarial tests for race condition attack prevention.

Verifies that concurrent operations on the same email, student id or
token are resolved by the store, preventing attackers from exploiting
check-then-act windows to:
- Create duplicate accounts
- Redeem one verification link more than once

Each scenario runs against the in-memory store, and against PostgreSQL
when a database is reachable.
"""

import threading
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import Mock

import pytest

from src.adapters.hashing.bcrypt_hasher import BcryptPasswordHasher
from src.adapters.repository.memory import InMemoryMembershipStore
from src.domain.exceptions import DuplicateEmail, DuplicateStudentId, TokenAlreadyUsed
from src.domain.ledger import VerificationLedger
from src.domain.registry import MembershipRegistry
from src.domain.tokens import TokenIssuer

# Apply adversarial marker to all tests in this module
pytestmark = pytest.mark.adversarial


@pytest.fixture(params=["memory", "postgres"])
def race_store(request: pytest.FixtureRequest):
    """Store under attack: in-memory, or PostgreSQL when available."""
    if request.param == "memory":
        return InMemoryMembershipStore()
    request.getfixturevalue("clean_database")
    return request.getfixturevalue("pg_store")


def build_services(store) -> tuple[MembershipRegistry, VerificationLedger]:
    issuer = TokenIssuer(store=store)
    ledger = VerificationLedger(store=store, token_issuer=issuer)
    registry = MembershipRegistry(
        store=store,
        password_hasher=BcryptPasswordHasher(cost=4),
        dispatcher=Mock(),
        token_issuer=issuer,
        ledger=ledger,
    )
    return registry, ledger


class PreCheckBypassingStore:
    """
    Wraps a store so every pre-insert existence check reports "free".

    Forces every concurrent signup onto the insert path, where only the
    unique constraint can stop it.
    """

    def __init__(self, inner) -> None:
        self._inner = inner

    def email_exists(self, email: str) -> bool:
        return False

    def student_id_exists(self, student_id: str) -> bool:
        return False

    def __getattr__(self, name: str):
        return getattr(self._inner, name)


def run_concurrently(fn, count: int) -> list:
    """Release ``count`` calls of ``fn(i)`` at once and collect outcomes."""
    barrier = threading.Barrier(count)

    def worker(i: int):
        barrier.wait()
        try:
            return fn(i)
        except Exception as exc:  # collected for assertions
            return exc

    with ThreadPoolExecutor(max_workers=count) as executor:
        return list(executor.map(worker, range(count)))


class TestConcurrentSignup:
    """
    Adversarial tests simulating concurrent signup floods.

    Expected defense: unique constraints make exactly one insert win;
    every loser gets the same Duplicate* error a sequential caller would.
    """

    def test_same_email_exactly_one_succeeds(self, race_store) -> None:
        registry, _ = build_services(race_store)
        attackers = 8

        results = run_concurrently(
            lambda i: registry.signup("a@inha.ac.kr", f"2023{i:04d}", "pw12345678", "CS", "nick"),
            attackers,
        )

        winners = [r for r in results if not isinstance(r, Exception)]
        losers = [r for r in results if isinstance(r, Exception)]
        assert len(winners) == 1, f"{len(winners)} signups succeeded (expected exactly 1)"
        assert all(isinstance(r, DuplicateEmail) for r in losers), losers
        assert race_store.get_member_by_email("a@inha.ac.kr") == winners[0].member

    def test_insert_path_race_translated(self, race_store) -> None:
        """With pre-checks bypassed, losers still see DuplicateEmail."""
        registry, _ = build_services(PreCheckBypassingStore(race_store))
        attackers = 8

        results = run_concurrently(
            lambda i: registry.signup("a@inha.ac.kr", f"2023{i:04d}", "pw12345678", "CS", "nick"),
            attackers,
        )

        losers = [r for r in results if isinstance(r, Exception)]
        assert len(losers) == attackers - 1
        assert all(isinstance(r, DuplicateEmail) for r in losers), losers
        for i in range(attackers):
            student_id = f"2023{i:04d}"
            won = not isinstance(results[i], Exception)
            assert race_store.student_id_exists(student_id) is won

    def test_same_student_id_exactly_one_succeeds(self, race_store) -> None:
        registry, _ = build_services(PreCheckBypassingStore(race_store))
        attackers = 8

        results = run_concurrently(
            lambda i: registry.signup(f"user{i}@inha.ac.kr", "20231234", "pw12345678", "CS", "nick"),
            attackers,
        )

        losers = [r for r in results if isinstance(r, Exception)]
        assert len(losers) == attackers - 1
        assert all(isinstance(r, DuplicateStudentId) for r in losers), losers

    def test_losers_leave_no_tokens(self, race_store) -> None:
        registry, ledger = build_services(PreCheckBypassingStore(race_store))
        attackers = 6

        results = run_concurrently(
            lambda i: registry.signup(f"user{i}@inha.ac.kr", "20231234", "pw12345678", "CS", "nick"),
            attackers,
        )

        for i, result in enumerate(results):
            latest = ledger.most_recent_token_for(f"user{i}@inha.ac.kr")
            if isinstance(result, Exception):
                assert latest is None
            else:
                assert latest == result.token


class TestConcurrentVerification:
    """
    Adversarial tests simulating replayed verification links.

    Expected defense: compare-and-set on is_used - only the first
    redemption succeeds, all others see TokenAlreadyUsed.
    """

    def test_same_token_exactly_one_succeeds(self, race_store) -> None:
        registry, ledger = build_services(race_store)
        token = registry.signup("a@inha.ac.kr", "20231234", "pw12345678", "CS", "nick").token
        attackers = 10

        results = run_concurrently(lambda _: ledger.verify(token.token), attackers)

        successes = [r for r in results if r is None]
        assert len(successes) == 1, f"{len(successes)} verifications succeeded (expected 1)"
        assert all(isinstance(r, TokenAlreadyUsed) for r in results if r is not None)
        assert race_store.get_member_by_email("a@inha.ac.kr").is_verified is True

    def test_distinct_tokens_verify_in_parallel(self, race_store) -> None:
        registry, ledger = build_services(race_store)
        first = registry.signup("a@inha.ac.kr", "20231234", "pw12345678", "CS", "nick").token
        others = [ledger.issue("a@inha.ac.kr") for _ in range(4)]
        tokens = [first, *others]

        results = run_concurrently(lambda i: ledger.verify(tokens[i].token), len(tokens))

        assert results == [None] * len(tokens)
        assert all(race_store.get_token(t.token).is_used for t in tokens)
