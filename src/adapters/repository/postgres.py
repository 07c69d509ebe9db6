"""
PostgreSQL repository adapter - Implements UserStore protocol.

This module provides the PostgreSQL implementation of the domain's
store port using psycopg3 with parameterized SQL.

Concurrency Design
------------------
1. **Email uniqueness**: The users.email UNIQUE constraint plus
   INSERT ... ON CONFLICT (email) DO NOTHING makes concurrent registrations
   for one email resolve to exactly one row. The loser sees no returned row.

2. **OTP consumption**: Writes that consume or expire an OTP carry
   "AND otp = %s" in their WHERE clause, so only one of several concurrent
   verifications of the same code can change the row.

3. **Record validity**: A CHECK constraint rejects rows holding neither a
   password hash nor an OTP.
"""

import logging
from collections.abc import Collection, Iterator, Mapping
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any

import psycopg
from psycopg import sql
from psycopg.rows import dict_row
from psycopg.types.json import Jsonb
from psycopg_pool import ConnectionPool

from src.domain.exceptions import StoreFailure
from src.domain.ports import ProfileFields, UserRecord

logger = logging.getLogger(__name__)

# Columns update_fields may set or clear
_MUTABLE_FIELDS = frozenset({"password_hash", "otp", "otp_expiry"})

_COLUMNS = "id, email, password_hash, otp, otp_expiry, profile, created_at, updated_at"


@contextmanager
def _translate_errors(operation: str) -> Iterator[None]:
    """Re-raise driver and pool errors as StoreFailure."""
    try:
        yield
    except psycopg.Error as e:
        logger.error("Store operation failed: %s - %s", operation, e)
        raise StoreFailure() from e


def _to_record(row: Mapping[str, Any]) -> UserRecord:
    return UserRecord(
        id=str(row["id"]),
        email=row["email"],
        password_hash=row["password_hash"],
        otp=row["otp"],
        otp_expiry=row["otp_expiry"],
        profile=dict(row["profile"] or {}),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


class PostgresUserStore:
    """
    Implements UserStore protocol via psycopg3.

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

    def find_by_email(self, email: str) -> UserRecord | None:
        query = f"SELECT {_COLUMNS} FROM users WHERE email = %s"
        with _translate_errors("find_by_email"):
            with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
                cursor.execute(query, (email,))
                row = cursor.fetchone()
        return _to_record(row) if row is not None else None

    def find_by_email_and_otp(self, email: str, otp: str) -> UserRecord | None:
        query = f"SELECT {_COLUMNS} FROM users WHERE email = %s AND otp = %s"
        with _translate_errors("find_by_email_and_otp"):
            with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
                cursor.execute(query, (email, otp))
                row = cursor.fetchone()
        return _to_record(row) if row is not None else None

    def insert(self, record: UserRecord) -> UserRecord | None:
        """
        Insert a new user record.

        Returns:
            The stored record, or None if the email is already taken
        """
        query = f"""
            INSERT INTO users (email, password_hash, otp, otp_expiry, profile)
            VALUES (%s, %s, %s, %s, %s)
            ON CONFLICT (email) DO NOTHING
            RETURNING {_COLUMNS}
        """
        params = (
            record.email,
            record.password_hash,
            record.otp,
            record.otp_expiry,
            Jsonb(dict(record.profile)),
        )
        with _translate_errors("insert"):
            with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
                cursor.execute(query, params)
                row = cursor.fetchone()
                conn.commit()
        return _to_record(row) if row is not None else None

    def update_fields(
        self,
        email: str,
        *,
        set_fields: Mapping[str, object] | None = None,
        unset_fields: Collection[str] = (),
        profile: ProfileFields | None = None,
        expected_otp: str | None = None,
    ) -> bool:
        """
        Set and clear columns in one UPDATE statement.

        Profile entries are merged into the stored JSONB profile.

        Returns:
            True if a row matched and was updated
        """
        set_fields = set_fields or {}
        unknown = (set(set_fields) | set(unset_fields)) - _MUTABLE_FIELDS
        if unknown:
            raise ValueError(f"Fields not updatable: {sorted(unknown)}")

        assignments: list[sql.Composable] = []
        params: list[object] = []
        for name, value in set_fields.items():
            assignments.append(sql.SQL("{} = %s").format(sql.Identifier(name)))
            params.append(value)
        for name in unset_fields:
            assignments.append(sql.SQL("{} = NULL").format(sql.Identifier(name)))
        if profile:
            assignments.append(sql.SQL("profile = profile || %s"))
            params.append(Jsonb(dict(profile)))
        assignments.append(sql.SQL("updated_at = NOW()"))

        where = sql.SQL("email = %s")
        params.append(email)
        if expected_otp is not None:
            where = sql.SQL("{} AND otp = %s").format(where)
            params.append(expected_otp)

        query = sql.SQL("UPDATE users SET {} WHERE {}").format(
            sql.SQL(", ").join(assignments), where
        )
        with _translate_errors("update_fields"):
            with self._pool.connection() as conn, conn.cursor() as cursor:
                cursor.execute(query, params)
                conn.commit()
                return cursor.rowcount == 1

    def delete(self, email: str, *, expected_otp: str | None = None) -> bool:
        if expected_otp is None:
            query, params = "DELETE FROM users WHERE email = %s", (email,)
        else:
            query, params = "DELETE FROM users WHERE email = %s AND otp = %s", (email, expected_otp)
        with _translate_errors("delete"):
            with self._pool.connection() as conn, conn.cursor() as cursor:
                cursor.execute(query, params)
                conn.commit()
                return cursor.rowcount == 1

    def delete_expired_pending(self, now: datetime) -> int:
        query = """
            DELETE FROM users
            WHERE password_hash IS NULL
              AND otp_expiry < %s
        """
        with _translate_errors("delete_expired_pending"):
            with self._pool.connection() as conn, conn.cursor() as cursor:
                cursor.execute(query, (now,))
                conn.commit()
                return cursor.rowcount

    def ping(self) -> None:
        """Round-trip a trivial query to prove connectivity."""
        with _translate_errors("ping"):
            with self._pool.connection() as conn:
                conn.execute("SELECT 1")


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
        except Exception as e:
            logger.error(f"Migration failed: {sql_file.name} - {e}")
            raise RuntimeError(f"Database migration failed: {sql_file.name}") from e
