"""
Credential lifecycle domain service - registration, login and OTP challenges.

This module contains the core business logic for issuing session
credentials through two enrollment paths: direct password registration and
login, and one-time passcode (OTP) challenges for registration and login.

Record Lifecycle
================

States (see RecordState):
- PENDING_VERIFICATION: registration OTP outstanding, no password yet
- ACTIVE: password set, no outstanding OTP
- LOGIN_CHALLENGE: ACTIVE plus an outstanding login OTP

Transitions:
    (none)               -> ACTIVE                (register)
    (none)               -> PENDING_VERIFICATION  (generate_register_otp)
    PENDING_VERIFICATION -> ACTIVE                (verify_otp_register)
    PENDING_VERIFICATION -> (none)                (expired OTP observed)
    ACTIVE               -> LOGIN_CHALLENGE       (generate_login_otp)
    LOGIN_CHALLENGE      -> ACTIVE                (verify_otp_login, success or expiry)

The user record is the OTP ledger: a challenge lives in its otp/otp_expiry
fields and is removed by the write that consumes or expires it. Consuming
writes are conditional on the OTP value, so an OTP is accepted at most once
even under concurrent verification.

Email uniqueness under concurrent registration is enforced by the store
(insert returns None on conflict), not by the read-then-insert here.
"""

import functools
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import ParamSpec, TypeVar

from .cookies import attach_session_cookie, clear_session_cookie
from .exceptions import (
    CredentialError,
    DispatchFailure,
    InvalidCredentials,
    InvalidOtpOrEmail,
    MissingParameter,
    OtpExpired,
    StoreFailure,
    UserAlreadyExists,
    UserNotFound,
)
from .otp import OtpChallenge, build_otp_message, issue_challenge
from .passwords import BcryptPasswordHasher
from .ports import (
    Clock,
    CookieSink,
    NotificationDispatcher,
    ProfileFields,
    ProfileValue,
    RecordState,
    UserRecord,
    UserStore,
)
from .results import (
    ChallengeResult,
    Failure,
    LoginResult,
    LogoutResult,
    RegistrationResult,
    Result,
    Success,
)
from .tokens import SessionClaims, TokenService

logger = logging.getLogger(__name__)

P = ParamSpec("P")
R = TypeVar("R")

OTP_FIELDS = ("otp", "otp_expiry")

# Names caller-supplied profile data may never overwrite.
RESERVED_PROFILE_FIELDS = frozenset(
    {
        "id",
        "_id",
        "email",
        "password",
        "password_hash",
        "otp",
        "otp_expiry",
        "created_at",
        "updated_at",
        "createdAt",
        "updatedAt",
    }
)


def _utc_now() -> datetime:
    return datetime.now(UTC)


def _require(**params: object) -> None:
    """Raise MissingParameter for the first param that is None or empty."""
    for name, value in params.items():
        if value is None or (isinstance(value, str) and value == ""):
            raise MissingParameter(name)


def filter_profile(profile: ProfileFields | None) -> dict[str, ProfileValue]:
    """Drop reserved names from caller-supplied profile fields."""
    if not profile:
        return {}
    return {key: value for key, value in profile.items() if key not in RESERVED_PROFILE_FIELDS}


def _as_result(operation: Callable[P, R]) -> Callable[P, Result[R]]:
    """Convert CredentialError raised by an operation into a Failure value."""

    @functools.wraps(operation)
    def wrapper(*args: P.args, **kwargs: P.kwargs) -> Result[R]:
        try:
            return Success(operation(*args, **kwargs))
        except CredentialError as exc:
            logger.info("%s failed: %s", operation.__name__, exc.kind.value)
            return Failure.from_error(exc)

    return wrapper


@dataclass
class CredentialLifecycleService:
    """
    Domain service for the credential lifecycle.

    Orchestrates the store, password hasher, OTP generator, notification
    dispatcher and token service. Every public operation returns a Result.
    """

    store: UserStore
    dispatcher: NotificationDispatcher
    tokens: TokenService
    hasher: BcryptPasswordHasher = field(default_factory=BcryptPasswordHasher)
    is_production: bool = False
    rollback_on_dispatch_failure: bool = True
    clock: Clock = field(default=_utc_now)

    @_as_result
    def register(
        self, email: str, password: str, profile: ProfileFields | None = None
    ) -> RegistrationResult:
        """
        Register an account directly with a password.

        Does not log the user in.

        Raises (as Failure):
            MissingParameter, UserAlreadyExists, StoreFailure
        """
        _require(email=email, password=password)

        if self.store.find_by_email(email) is not None:
            raise UserAlreadyExists()

        record = UserRecord(
            email=email,
            password_hash=self.hasher.hash(password),
            profile=filter_profile(profile),
        )
        stored = self.store.insert(record)
        if stored is None:
            raise UserAlreadyExists()

        logger.info("User registered: %s", email)
        return RegistrationResult(message="User registered successfully", user_id=str(stored.id))

    @_as_result
    def login(self, email: str, password: str, response: CookieSink | None) -> LoginResult:
        """
        Log in with email and password, setting the session cookie on response.

        Unknown email, pending registration and wrong password all fail with
        the same InvalidCredentials error, and all run one bcrypt comparison.
        """
        _require(email=email, password=password, response=response)

        record = self.store.find_by_email(email)
        password_hash = record.password_hash if record is not None else None
        if not self.hasher.verify(password, password_hash) or record is None:
            raise InvalidCredentials()

        return self._start_session(record, response)

    @_as_result
    def logout(self, response: CookieSink | None) -> LogoutResult:
        """Clear the session cookie. Safe to call without an existing session."""
        _require(response=response)
        clear_session_cookie(response)
        return LogoutResult(message="Logged out")

    @_as_result
    def generate_register_otp(
        self, email: str, email_title: str, email_body: str
    ) -> ChallengeResult:
        """
        Create a pending registration for a brand-new email and send its OTP.

        Raises (as Failure):
            MissingParameter, UserAlreadyExists, DispatchFailure,
            DispatchTimeout, StoreFailure
        """
        _require(email=email, email_title=email_title, email_body=email_body)

        if self.store.find_by_email(email) is not None:
            raise UserAlreadyExists()

        challenge = issue_challenge(self.clock())
        pending = UserRecord(email=email, otp=challenge.code, otp_expiry=challenge.expires_at)
        if self.store.insert(pending) is None:
            raise UserAlreadyExists()
        logger.info("Registration OTP issued: %s", email)

        self._dispatch(
            email,
            challenge,
            email_title,
            email_body,
            compensate=lambda: self.store.delete(email, expected_otp=challenge.code),
        )
        return ChallengeResult(message="OTP sent successfully for registration", email=email)

    @_as_result
    def verify_otp_register(
        self,
        email: str,
        otp: str,
        password: str,
        profile: ProfileFields | None = None,
    ) -> RegistrationResult:
        """
        Complete a pending registration: set the password and consume the OTP.

        An expired OTP deletes the pending record, so the caller can start
        over with generate_register_otp.
        """
        _require(email=email, otp=otp, password=password)

        record = self.store.find_by_email_and_otp(email, otp)
        if record is None or record.state is not RecordState.PENDING_VERIFICATION:
            raise InvalidOtpOrEmail()

        if record.otp_expired(self.clock()):
            self.store.delete(email, expected_otp=otp)
            logger.warning("Registration OTP expired, pending record removed: %s", email)
            raise OtpExpired()

        applied = self.store.update_fields(
            email,
            set_fields={"password_hash": self.hasher.hash(password)},
            unset_fields=OTP_FIELDS,
            profile=filter_profile(profile),
            expected_otp=otp,
        )
        if not applied:
            # Consumed by a concurrent verification
            raise InvalidOtpOrEmail()

        logger.info("Registration completed: %s", email)
        return RegistrationResult(
            message="Registration completed successfully", user_id=str(record.id)
        )

    @_as_result
    def generate_login_otp(self, email: str, email_title: str, email_body: str) -> ChallengeResult:
        """
        Issue a login OTP for an active account and send it.

        A newer OTP replaces any outstanding one. The password hash is untouched.
        """
        _require(email=email, email_title=email_title, email_body=email_body)

        record = self.store.find_by_email(email)
        if record is None or record.state is RecordState.PENDING_VERIFICATION:
            raise UserNotFound()

        challenge = issue_challenge(self.clock())
        applied = self.store.update_fields(
            email,
            set_fields={"otp": challenge.code, "otp_expiry": challenge.expires_at},
        )
        if not applied:
            raise UserNotFound()
        logger.info("Login OTP issued: %s", email)

        self._dispatch(
            email,
            challenge,
            email_title,
            email_body,
            compensate=lambda: self.store.update_fields(
                email, unset_fields=OTP_FIELDS, expected_otp=challenge.code
            ),
        )
        return ChallengeResult(message="OTP sent successfully for login", email=email)

    @_as_result
    def verify_otp_login(self, email: str, otp: str, response: CookieSink | None) -> LoginResult:
        """
        Log in with a login OTP, setting the session cookie on response.

        The OTP is removed whether it is accepted or found expired.
        """
        _require(email=email, otp=otp, response=response)

        record = self.store.find_by_email_and_otp(email, otp)
        if record is None or record.state is not RecordState.LOGIN_CHALLENGE:
            raise InvalidOtpOrEmail()

        expired = record.otp_expired(self.clock())
        consumed = self.store.update_fields(email, unset_fields=OTP_FIELDS, expected_otp=otp)

        if expired:
            logger.warning("Login OTP expired: %s", email)
            raise OtpExpired()
        if not consumed:
            raise InvalidOtpOrEmail()

        return self._start_session(record, response)

    def purge_expired_registrations(self) -> int:
        """Delete pending registrations whose OTP has expired."""
        purged = self.store.delete_expired_pending(self.clock())
        if purged:
            logger.info("Purged %d expired pending registration(s)", purged)
        return purged

    def _start_session(self, record: UserRecord, response: CookieSink) -> LoginResult:
        user_id = str(record.id)
        token = self.tokens.issue(SessionClaims(id=user_id, email=record.email, name=record.name))
        attach_session_cookie(response, token, self.is_production)
        logger.info("Session issued: %s", record.email)
        return LoginResult(message="Login successful", user_id=user_id, token=token)

    def _dispatch(
        self,
        email: str,
        challenge: OtpChallenge,
        title: str,
        body: str,
        compensate: Callable[[], bool],
    ) -> None:
        """
        Send the OTP message. On failure, optionally undo the OTP write.

        The dispatch error is always re-raised.
        """
        message = build_otp_message(email, challenge.code, title, body)
        try:
            self.dispatcher.deliver(message)
        except DispatchFailure as exc:
            logger.warning("OTP dispatch failed for %s: %s", email, exc.kind.value)
            if self.rollback_on_dispatch_failure:
                try:
                    compensate()
                except StoreFailure:
                    logger.exception("Compensating write failed for %s", email)
            raise
