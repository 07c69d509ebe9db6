"""
Domain layer - Credential lifecycle business logic.

This package contains the core business logic for password and OTP based
registration and login. It defines its own port interfaces for
infrastructure abstraction; the web framework and database driver never
appear here.
"""

from .credentials import CredentialLifecycleService, filter_profile
from .exceptions import (
    CredentialError,
    DispatchFailure,
    DispatchTimeout,
    ErrorKind,
    InvalidCredentials,
    InvalidOtpOrEmail,
    InvalidToken,
    MissingParameter,
    OtpExpired,
    StoreFailure,
    Unauthorized,
    UserAlreadyExists,
    UserNotFound,
)
from .ports import CookieSink, NotificationDispatcher, RecordState, UserRecord, UserStore
from .results import (
    ChallengeResult,
    Failure,
    LoginResult,
    LogoutResult,
    RegistrationResult,
    Result,
    Success,
)
from .tokens import SessionClaims, TokenService, authenticate, is_logged_in

__all__ = [
    "ChallengeResult",
    "CookieSink",
    "CredentialError",
    "CredentialLifecycleService",
    "DispatchFailure",
    "DispatchTimeout",
    "ErrorKind",
    "Failure",
    "InvalidCredentials",
    "InvalidOtpOrEmail",
    "InvalidToken",
    "LoginResult",
    "LogoutResult",
    "MissingParameter",
    "NotificationDispatcher",
    "OtpExpired",
    "RecordState",
    "RegistrationResult",
    "Result",
    "SessionClaims",
    "StoreFailure",
    "Success",
    "TokenService",
    "Unauthorized",
    "UserAlreadyExists",
    "UserNotFound",
    "UserRecord",
    "UserStore",
    "authenticate",
    "filter_profile",
    "is_logged_in",
]
