"""
Shared fixtures for adversarial tests.

Every adversarial scenario runs against both store adapters; the
PostgreSQL variant is skipped when no database is reachable.
"""

import pytest

from src.domain.credentials import CredentialLifecycleService
from src.domain.passwords import BcryptPasswordHasher
from src.domain.ports import UserStore

# Module-level marker for all adversarial tests
pytestmark = pytest.mark.adversarial


@pytest.fixture(params=["memory", "postgres"])
def any_store(request: pytest.FixtureRequest) -> UserStore:
    """The in-memory store, then the PostgreSQL store."""
    if request.param == "memory":
        return request.getfixturevalue("store")
    return request.getfixturevalue("pg_store")


@pytest.fixture
def attacked_service(any_store, dispatcher, tokens, clock) -> CredentialLifecycleService:
    """Credential service over the parametrized store."""
    return CredentialLifecycleService(
        store=any_store,
        dispatcher=dispatcher,
        tokens=tokens,
        hasher=BcryptPasswordHasher(rounds=4),
        clock=clock,
    )
