"""
Shared test fixtures and configuration.

This module provides pytest fixtures for:
- A controllable clock for OTP expiry
- In-memory store, recording dispatcher and cookie sink test doubles
- A credential service wired from those doubles
- A PostgreSQL pool and store, skipped when no database is reachable
"""

from collections.abc import Iterator
from datetime import UTC, datetime, timedelta

import psycopg
import pytest
from psycopg_pool import ConnectionPool

from src.adapters.repository.memory import InMemoryUserStore
from src.adapters.repository.postgres import PostgresUserStore, run_migrations
from src.config.settings import get_settings
from src.domain.credentials import CredentialLifecycleService
from src.domain.exceptions import DispatchFailure
from src.domain.otp import OtpMessage
from src.domain.passwords import BcryptPasswordHasher
from src.domain.tokens import TokenService

TEST_SECRET = "test-secret-key-for-session-tokens"


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime.now(UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


class RecordingDispatcher:
    """NotificationDispatcher double that records messages or fails on demand."""

    def __init__(self) -> None:
        self.messages: list[OtpMessage] = []
        self.error: DispatchFailure | None = None

    def deliver(self, message: OtpMessage) -> None:
        if self.error is not None:
            raise self.error
        self.messages.append(message)

    @property
    def last_code(self) -> str:
        return self.messages[-1].code


class RecordingCookieSink:
    """CookieSink double capturing set/delete calls as dicts."""

    def __init__(self) -> None:
        self.set_calls: list[dict] = []
        self.delete_calls: list[dict] = []

    def set_cookie(
        self,
        key: str,
        value: str = "",
        max_age: int | None = None,
        path: str | None = "/",
        secure: bool = False,
        httponly: bool = False,
        samesite: str | None = "lax",
    ) -> None:
        self.set_calls.append(
            {
                "key": key,
                "value": value,
                "max_age": max_age,
                "path": path,
                "secure": secure,
                "httponly": httponly,
                "samesite": samesite,
            }
        )

    def delete_cookie(
        self,
        key: str,
        path: str = "/",
        secure: bool = False,
        httponly: bool = False,
        samesite: str | None = "lax",
    ) -> None:
        self.delete_calls.append(
            {"key": key, "path": path, "secure": secure, "httponly": httponly, "samesite": samesite}
        )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> InMemoryUserStore:
    return InMemoryUserStore()


@pytest.fixture
def dispatcher() -> RecordingDispatcher:
    return RecordingDispatcher()


@pytest.fixture
def tokens() -> TokenService:
    return TokenService(TEST_SECRET)


@pytest.fixture
def hasher() -> BcryptPasswordHasher:
    """Minimum bcrypt cost keeps the suite fast."""
    return BcryptPasswordHasher(rounds=4)


@pytest.fixture
def sink() -> RecordingCookieSink:
    return RecordingCookieSink()


@pytest.fixture
def make_sink() -> type[RecordingCookieSink]:
    """Factory for tests that need several independent cookie sinks."""
    return RecordingCookieSink


@pytest.fixture
def service(
    store: InMemoryUserStore,
    dispatcher: RecordingDispatcher,
    tokens: TokenService,
    hasher: BcryptPasswordHasher,
    clock: FakeClock,
) -> CredentialLifecycleService:
    return CredentialLifecycleService(
        store=store,
        dispatcher=dispatcher,
        tokens=tokens,
        hasher=hasher,
        clock=clock,
    )


# PostgreSQL availability (integration and adversarial suites)


def _is_postgres_available() -> bool:
    """Check whether the configured database accepts connections."""
    try:
        with psycopg.connect(get_settings().database_url, connect_timeout=1):
            return True
    except psycopg.Error:
        return False


# Check once at module load time
_POSTGRES_AVAILABLE = _is_postgres_available()


def skip_if_no_postgres() -> None:
    """Skip test if PostgreSQL is not available."""
    if not _POSTGRES_AVAILABLE:
        pytest.skip(
            "PostgreSQL not available (DATABASE_URL). "
            "Start PostgreSQL and set DATABASE_URL to run these tests."
        )


@pytest.fixture(scope="module")
def pool() -> Iterator[ConnectionPool]:
    """Create connection pool for database tests and apply migrations."""
    skip_if_no_postgres()
    settings = get_settings()
    pool = ConnectionPool(conninfo=settings.database_url, min_size=1, max_size=10, open=True)
    run_migrations(pool)
    yield pool
    pool.close()


@pytest.fixture
def pg_store(pool: ConnectionPool) -> PostgresUserStore:
    """Store over a freshly emptied users table."""
    with pool.connection() as conn:
        conn.execute("DELETE FROM users")
    return PostgresUserStore(pool)
