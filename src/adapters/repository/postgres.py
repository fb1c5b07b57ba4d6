"""
PostgreSQL repository adapter - Implements MembershipStore protocol.

This module provides the PostgreSQL implementation of the domain's
store port using psycopg3 with raw SQL.

Concurrency Design:
-------------------
1. **Unique constraints**: members.email, members.student_id and
   verification_tokens.token carry named UNIQUE constraints. They are the
   authoritative duplicate guard; psycopg's UniqueViolation is translated
   to the domain's UniqueViolation(field) using the constraint name.

2. **Single transaction signup**: the member row and its first token are
   inserted inside one transaction, so a losing signup leaves no rows.

3. **Compare-and-set consumption**: consume_token flips is_used with
   ``UPDATE ... WHERE is_used = FALSE AND expires_at >= %s``. Row-level
   locking inside PostgreSQL serializes concurrent updates of one row, so
   exactly one caller sees a RETURNING row.
"""

import logging
from datetime import datetime
from pathlib import Path

import psycopg
from psycopg.rows import dict_row
from psycopg_pool import ConnectionPool

from src.domain.models import Member, Role, VerificationToken
from src.domain.ports import ConsumeResult, UniqueViolation

logger = logging.getLogger(__name__)

_CONSTRAINT_FIELDS = {
    "members_email_key": "email",
    "members_student_id_key": "student_id",
    "verification_tokens_token_key": "token",
}

_MEMBER_COLUMNS = """
    id, email, password_hash, nickname, department, student_id,
    role, is_active, points, is_verified, created_at
"""

_TOKEN_COLUMNS = "id, email, token, created_at, expires_at, is_used"


def _unique_violation(exc: psycopg.errors.UniqueViolation) -> UniqueViolation:
    constraint = exc.diag.constraint_name or ""
    field = _CONSTRAINT_FIELDS.get(constraint)
    if field is None:
        raise RuntimeError(f"Unexpected unique constraint: {constraint}") from exc
    return UniqueViolation(field)


def _member_from_row(row: dict) -> Member:
    return Member(
        id=row["id"],
        email=row["email"],
        password_hash=row["password_hash"],
        nickname=row["nickname"],
        department=row["department"],
        student_id=row["student_id"],
        role=Role(row["role"]),
        is_active=row["is_active"],
        points=row["points"],
        is_verified=row["is_verified"],
        created_at=row["created_at"],
    )


def _token_from_row(row: dict) -> VerificationToken:
    return VerificationToken(
        id=row["id"],
        email=row["email"],
        token=row["token"],
        created_at=row["created_at"],
        expires_at=row["expires_at"],
        is_used=row["is_used"],
    )


class PostgresMembershipStore:
    """
    Implements MembershipStore protocol via psycopg3.

    Uses structural subtyping - no explicit inheritance from Protocol.
    All SQL uses parameterized queries for security.
    """

    def __init__(self, pool: ConnectionPool) -> None:
        """
        Initialize store with connection pool.

        Args:
            pool: psycopg3 ConnectionPool for database connections
        """
        self._pool = pool

    def email_exists(self, email: str) -> bool:
        sql = "SELECT 1 FROM members WHERE email = %s"
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, (email,))
            return cursor.fetchone() is not None

    def student_id_exists(self, student_id: str) -> bool:
        sql = "SELECT 1 FROM members WHERE student_id = %s"
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, (student_id,))
            return cursor.fetchone() is not None

    def get_member_by_email(self, email: str) -> Member | None:
        sql = f"SELECT {_MEMBER_COLUMNS} FROM members WHERE email = %s"
        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
            cursor.execute(sql, (email,))
            row = cursor.fetchone()
        return _member_from_row(row) if row is not None else None

    def add_member_with_token(
        self, member: Member, token: VerificationToken
    ) -> tuple[Member, VerificationToken]:
        """
        Insert a member and its first verification token atomically.

        Any unique violation rolls back the whole transaction, so neither
        row survives a losing signup.

        Args:
            member: Fully defaulted member built by Member.register()
            token: Token built by VerificationToken.issue()

        Returns:
            The persisted member and token with ids assigned

        Raises:
            UniqueViolation: On email, student_id or token conflicts
        """
        member_sql = f"""
            INSERT INTO members (
                email, password_hash, nickname, department, student_id,
                role, is_active, points, is_verified, created_at
            )
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
            RETURNING {_MEMBER_COLUMNS}
        """
        try:
            with self._pool.connection() as conn:
                with conn.transaction(), conn.cursor(row_factory=dict_row) as cursor:
                    cursor.execute(
                        member_sql,
                        (
                            member.email,
                            member.password_hash,
                            member.nickname,
                            member.department,
                            member.student_id,
                            member.role.value,
                            member.is_active,
                            member.points,
                            member.is_verified,
                            member.created_at,
                        ),
                    )
                    member_row = cursor.fetchone()
                    token_row = self._insert_token(cursor, token)
        except psycopg.errors.UniqueViolation as exc:
            raise _unique_violation(exc) from None
        return _member_from_row(member_row), _token_from_row(token_row)

    def add_token(self, token: VerificationToken) -> VerificationToken:
        try:
            with self._pool.connection() as conn:
                with conn.transaction(), conn.cursor(row_factory=dict_row) as cursor:
                    row = self._insert_token(cursor, token)
        except psycopg.errors.UniqueViolation as exc:
            raise _unique_violation(exc) from None
        return _token_from_row(row)

    def get_token(self, token: str) -> VerificationToken | None:
        sql = f"SELECT {_TOKEN_COLUMNS} FROM verification_tokens WHERE token = %s"
        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
            cursor.execute(sql, (token,))
            row = cursor.fetchone()
        return _token_from_row(row) if row is not None else None

    def latest_token_for(self, email: str) -> VerificationToken | None:
        sql = f"""
            SELECT {_TOKEN_COLUMNS} FROM verification_tokens
            WHERE email = %s
            ORDER BY created_at DESC, id DESC
            LIMIT 1
        """
        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
            cursor.execute(sql, (email,))
            row = cursor.fetchone()
        return _token_from_row(row) if row is not None else None

    def consume_token(self, token: str, now: datetime) -> ConsumeResult:
        """
        Atomically consume a token and verify its member.

        The conditional UPDATE is the compare-and-set. When it matches no
        row, the token is re-read inside the same transaction to report
        why: missing, already used, or expired (checked in that order).

        Args:
            token: Token value from the verification link
            now: Current time for the expiry guard

        Returns:
            ConsumeResult indicating success or specific failure reason
        """
        # SQL to flip is_used (compare-and-set)
        consume_sql = """
            UPDATE verification_tokens
            SET is_used = TRUE
            WHERE token = %s AND is_used = FALSE AND expires_at >= %s
            RETURNING email
        """

        # SQL to mark member verified (never reverts)
        verify_member_sql = """
            UPDATE members
            SET is_verified = TRUE
            WHERE email = %s AND is_verified = FALSE
        """

        # SQL to classify a failed consumption
        status_sql = "SELECT is_used FROM verification_tokens WHERE token = %s"

        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(consume_sql, (token, now))
            row = cursor.fetchone()

            if row is not None:
                cursor.execute(verify_member_sql, (row[0],))
                conn.commit()
                return ConsumeResult.CONSUMED

            cursor.execute(status_sql, (token,))
            status = cursor.fetchone()
            conn.commit()

        if status is None:
            return ConsumeResult.NOT_FOUND
        if status[0]:
            return ConsumeResult.ALREADY_USED
        return ConsumeResult.EXPIRED

    def _insert_token(self, cursor: psycopg.Cursor, token: VerificationToken) -> dict:
        sql = f"""
            INSERT INTO verification_tokens (email, token, created_at, expires_at, is_used)
            VALUES (%s, %s, %s, %s, %s)
            RETURNING {_TOKEN_COLUMNS}
        """
        cursor.execute(
            sql,
            (token.email, token.token, token.created_at, token.expires_at, token.is_used),
        )
        return cursor.fetchone()


def run_migrations(pool: ConnectionPool) -> None:
    """
    Execute all SQL migration files from the migrations directory.

    Migrations are executed in sorted order (alphabetically by filename).
    Each migration should be idempotent (use IF NOT EXISTS, etc.).

    Args:
        pool: psycopg3 ConnectionPool instance
    """
    # Structure: src/adapters/repository/postgres.py -> migrations/
    migrations_dir = Path(__file__).parent.parent.parent.parent / "migrations"

    if not migrations_dir.exists():
        logger.warning(f"Migrations directory not found: {migrations_dir}")
        return

    sql_files = sorted(migrations_dir.glob("*.sql"))

    if not sql_files:
        logger.info("No migration files found")
        return

    logger.info(f"Running {len(sql_files)} migration(s)")

    for sql_file in sql_files:
        logger.info(f"Executing migration: {sql_file.name}")
        try:
            sql_content = sql_file.read_text()

            with pool.connection() as conn:
                conn.execute(sql_content)

            logger.info(f"Migration complete: {sql_file.name}")
        except psycopg.Error as e:
            logger.error(f"Migration failed: {sql_file.name} - {e}")
            raise RuntimeError(f"Database migration failed: {sql_file.name}") from e
