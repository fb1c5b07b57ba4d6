"""
Shared test fixtures and configuration.

This module provides pytest fixtures for:
- A controllable clock
- In-memory store and fully wired domain services
- A fast bcrypt hasher
- PostgreSQL connection pool and table cleanup (skipped when unreachable)
"""

from collections.abc import Generator
from datetime import datetime, timedelta, timezone
from unittest.mock import Mock

import psycopg
import pytest
from psycopg_pool import ConnectionPool

from src.adapters.hashing.bcrypt_hasher import BcryptPasswordHasher
from src.adapters.repository.memory import InMemoryMembershipStore
from src.adapters.repository.postgres import PostgresMembershipStore, run_migrations
from src.config.settings import get_settings
from src.domain.ledger import VerificationLedger
from src.domain.registry import MembershipRegistry
from src.domain.tokens import TokenIssuer

VALID_SIGNUP = {
    "email": "a@inha.ac.kr",
    "student_id": "20231234",
    "password": "pw12345678",
    "department": "CS",
    "nickname": "nick",
}


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> InMemoryMembershipStore:
    return InMemoryMembershipStore()


@pytest.fixture
def hasher() -> BcryptPasswordHasher:
    """bcrypt at its minimum cost so tests stay fast."""
    return BcryptPasswordHasher(cost=4)


@pytest.fixture
def dispatcher() -> Mock:
    return Mock()


@pytest.fixture
def token_issuer(store: InMemoryMembershipStore, clock: FakeClock) -> TokenIssuer:
    return TokenIssuer(store=store, clock=clock)


@pytest.fixture
def ledger(
    store: InMemoryMembershipStore, token_issuer: TokenIssuer, clock: FakeClock
) -> VerificationLedger:
    return VerificationLedger(store=store, token_issuer=token_issuer, clock=clock)


@pytest.fixture
def registry(
    store: InMemoryMembershipStore,
    hasher: BcryptPasswordHasher,
    dispatcher: Mock,
    token_issuer: TokenIssuer,
    ledger: VerificationLedger,
    clock: FakeClock,
) -> MembershipRegistry:
    return MembershipRegistry(
        store=store,
        password_hasher=hasher,
        dispatcher=dispatcher,
        token_issuer=token_issuer,
        ledger=ledger,
        clock=clock,
    )


@pytest.fixture
def signup_fields() -> dict[str, str]:
    """Valid signup arguments for MembershipRegistry.signup()."""
    return dict(VALID_SIGNUP)


@pytest.fixture(scope="session")
def pool() -> Generator[ConnectionPool, None, None]:
    """
    Create connection pool and apply migrations once per session.

    Skips dependent tests when the configured database is unreachable
    (e.g. outside docker-compose).
    """
    settings = get_settings()
    try:
        psycopg.connect(settings.database_url, connect_timeout=2).close()
    except psycopg.OperationalError as exc:
        pytest.skip(f"PostgreSQL not available: {exc}")

    pool = ConnectionPool(
        conninfo=settings.database_url,
        min_size=1,
        max_size=10,
        open=True,
    )
    run_migrations(pool)
    yield pool
    pool.close()


@pytest.fixture
def pg_store(pool: ConnectionPool) -> PostgresMembershipStore:
    """Create PostgreSQL store instance for each test."""
    return PostgresMembershipStore(pool)


@pytest.fixture
def clean_database(pool: ConnectionPool) -> Generator[None, None, None]:
    """Clean membership tables before each test."""
    with pool.connection() as conn:
        conn.execute("DELETE FROM verification_tokens")
        conn.execute("DELETE FROM members")
        conn.commit()
    yield
