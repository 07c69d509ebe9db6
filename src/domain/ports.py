"""
Port interfaces - Protocol definitions for infrastructure abstraction.

This module defines the record model and the interfaces (ports) that the
domain requires from infrastructure. Adapters implement these protocols.
"""

from collections.abc import Callable, Collection, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Protocol, Union

from .otp import OtpMessage

# Profile values are scalars only; nested structures are rejected at the edge.
ProfileValue = Union[str, int, float, bool, None]
ProfileFields = Mapping[str, ProfileValue]

# Returns the current instant as a timezone-aware UTC datetime.
Clock = Callable[[], datetime]


class RecordState(str, Enum):
    """
    Credential lifecycle states for a user record.

    State Transitions:
    - (none) -> PENDING_VERIFICATION (registration OTP issued)
    - (none) -> ACTIVE (direct registration)
    - PENDING_VERIFICATION -> ACTIVE (registration OTP verified)
    - PENDING_VERIFICATION -> (none) (registration OTP found expired)
    - ACTIVE -> LOGIN_CHALLENGE (login OTP issued)
    - LOGIN_CHALLENGE -> ACTIVE (login OTP verified or found expired)

    There is no transition back to PENDING_VERIFICATION once ACTIVE.
    """

    PENDING_VERIFICATION = "PENDING_VERIFICATION"
    ACTIVE = "ACTIVE"
    LOGIN_CHALLENGE = "LOGIN_CHALLENGE"


@dataclass
class UserRecord:
    """
    One account, doubling as the ledger for its outstanding OTP challenge.

    A record must hold a password hash, an outstanding OTP, or both.
    """

    email: str
    id: str | None = None
    password_hash: str | None = None
    otp: str | None = None
    otp_expiry: datetime | None = None
    profile: dict[str, ProfileValue] = field(default_factory=dict)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def __post_init__(self) -> None:
        if self.password_hash is None and self.otp is None:
            raise ValueError(f"User record {self.email!r} has neither password nor OTP")

    @property
    def name(self) -> str | None:
        value = self.profile.get("name")
        return None if value is None else str(value)

    @property
    def state(self) -> RecordState:
        if self.password_hash is None:
            return RecordState.PENDING_VERIFICATION
        if self.otp is not None:
            return RecordState.LOGIN_CHALLENGE
        return RecordState.ACTIVE

    def otp_expired(self, now: datetime) -> bool:
        """True when the outstanding OTP's expiry instant has passed."""
        return self.otp_expiry is not None and self.otp_expiry < now


class UserStore(Protocol):
    """
    Port interface for user record persistence.

    All operations are keyed by the unique email field. Implementations
    must enforce email uniqueness themselves (insert returns None on
    conflict) and raise StoreFailure on infrastructure errors.
    """

    def find_by_email(self, email: str) -> UserRecord | None:
        """Return the record for email, or None."""
        ...

    def find_by_email_and_otp(self, email: str, otp: str) -> UserRecord | None:
        """Return the record matching both email and outstanding OTP, or None."""
        ...

    def insert(self, record: UserRecord) -> UserRecord | None:
        """
        Insert a new record.

        Returns:
            The stored record (with id and timestamps), or None if a record
            for the email already exists.
        """
        ...

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
        Set and unset record fields in a single write.

        Args:
            email: Record key
            set_fields: Column values to assign (password_hash, otp, otp_expiry)
            unset_fields: Column names to clear
            profile: Profile entries merged into the existing profile
            expected_otp: When given, the write applies only if the record's
                outstanding OTP still equals this value

        Returns:
            True if a record was updated
        """
        ...

    def delete(self, email: str, *, expected_otp: str | None = None) -> bool:
        """Delete the record (conditionally on its OTP). True if deleted."""
        ...

    def delete_expired_pending(self, now: datetime) -> int:
        """Delete password-less records whose OTP expired before now."""
        ...

    def ping(self) -> None:
        """Raise StoreFailure if the store is unreachable."""
        ...


class NotificationDispatcher(Protocol):
    """Port interface for out-of-band message delivery."""

    def deliver(self, message: OtpMessage) -> None:
        """
        Deliver a rendered OTP message to its address.

        Raises:
            DispatchFailure: Channel rejected the message
            DispatchTimeout: Channel did not answer in time
        """
        ...


class CookieSink(Protocol):
    """
    Port interface for the response object that carries session cookies.

    Starlette's Response satisfies this protocol structurally.
    """

    def set_cookie(
        self,
        key: str,
        value: str = "",
        max_age: int | None = None,
        path: str | None = "/",
        secure: bool = False,
        httponly: bool = False,
        samesite: str | None = "lax",
    ) -> None: ...

    def delete_cookie(
        self,
        key: str,
        path: str = "/",
        secure: bool = False,
        httponly: bool = False,
        samesite: str | None = "lax",
    ) -> None: ...
