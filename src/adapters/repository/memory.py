"""
In-memory repository adapter - Implements UserStore protocol.

Process-local store for development and tests. A single lock serializes
every operation, which gives the same uniqueness and conditional-write
guarantees the PostgreSQL adapter gets from its constraints.
"""

import copy
import threading
import uuid
from collections.abc import Collection, Mapping
from datetime import UTC, datetime

from src.domain.exceptions import StoreFailure
from src.domain.ports import ProfileFields, UserRecord

_MUTABLE_FIELDS = frozenset({"password_hash", "otp", "otp_expiry"})


class InMemoryUserStore:
    """
    Implements UserStore protocol with a dict keyed by email.

    Records are copied on the way in and out so callers never share
    mutable state with the store.
    """

    def __init__(self) -> None:
        self._records: dict[str, UserRecord] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def find_by_email(self, email: str) -> UserRecord | None:
        with self._lock:
            record = self._records.get(email)
            return copy.deepcopy(record) if record is not None else None

    def find_by_email_and_otp(self, email: str, otp: str) -> UserRecord | None:
        with self._lock:
            record = self._records.get(email)
            if record is None or record.otp is None or record.otp != otp:
                return None
            return copy.deepcopy(record)

    def insert(self, record: UserRecord) -> UserRecord | None:
        with self._lock:
            if record.email in self._records:
                return None
            now = datetime.now(UTC)
            stored = copy.deepcopy(record)
            stored.id = str(uuid.uuid4())
            stored.created_at = now
            stored.updated_at = now
            self._records[stored.email] = stored
            return copy.deepcopy(stored)

    def update_fields(
        self,
        email: str,
        *,
        set_fields: Mapping[str, object] | None = None,
        unset_fields: Collection[str] = (),
        profile: ProfileFields | None = None,
        expected_otp: str | None = None,
    ) -> bool:
        set_fields = set_fields or {}
        unknown = (set(set_fields) | set(unset_fields)) - _MUTABLE_FIELDS
        if unknown:
            raise ValueError(f"Fields not updatable: {sorted(unknown)}")

        with self._lock:
            record = self._records.get(email)
            if record is None:
                return False
            if expected_otp is not None and record.otp != expected_otp:
                return False

            updated = copy.deepcopy(record)
            for name, value in set_fields.items():
                setattr(updated, name, value)
            for name in unset_fields:
                setattr(updated, name, None)
            if profile:
                updated.profile.update(profile)
            updated.updated_at = datetime.now(UTC)
            # Re-run the record invariant before committing the write
            try:
                updated.__post_init__()
            except ValueError as e:
                raise StoreFailure() from e
            self._records[email] = updated
            return True

    def delete(self, email: str, *, expected_otp: str | None = None) -> bool:
        with self._lock:
            record = self._records.get(email)
            if record is None:
                return False
            if expected_otp is not None and record.otp != expected_otp:
                return False
            del self._records[email]
            return True

    def delete_expired_pending(self, now: datetime) -> int:
        with self._lock:
            stale = [
                email
                for email, record in self._records.items()
                if record.password_hash is None and record.otp_expired(now)
            ]
            for email in stale:
                del self._records[email]
            return len(stale)

    def ping(self) -> None:
        """Always reachable."""
