"""
Domain exceptions - Semantic error types for the credential lifecycle.

This module defines domain-specific exceptions that communicate
business rule violations without leaking infrastructure details.
Every exception carries an ErrorKind so callers can branch on a
closed set of failure modes instead of message strings.
"""

from enum import Enum


class ErrorKind(str, Enum):
    """Closed enumeration of credential lifecycle failure modes."""

    MISSING_PARAMETER = "missing_parameter"
    USER_ALREADY_EXISTS = "user_already_exists"
    USER_NOT_FOUND = "user_not_found"
    INVALID_CREDENTIALS = "invalid_credentials"
    INVALID_OTP_OR_EMAIL = "invalid_otp_or_email"
    OTP_EXPIRED = "otp_expired"
    UNAUTHORIZED = "unauthorized"
    INVALID_TOKEN = "invalid_token"
    DISPATCH_FAILURE = "dispatch_failure"
    DISPATCH_TIMEOUT = "dispatch_timeout"
    STORE_FAILURE = "store_failure"


class CredentialError(Exception):
    """Base class for credential lifecycle domain errors."""

    kind: ErrorKind
    default_message = "Credential operation failed"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class MissingParameter(CredentialError):
    """A required parameter was absent, None, or empty."""

    kind = ErrorKind.MISSING_PARAMETER

    def __init__(self, field: str) -> None:
        self.field = field
        super().__init__(f"{field} is required")


class UserAlreadyExists(CredentialError):
    """A record for the email already exists (active or pending)."""

    kind = ErrorKind.USER_ALREADY_EXISTS
    default_message = "User already exists"


class UserNotFound(CredentialError):
    kind = ErrorKind.USER_NOT_FOUND
    default_message = "User not found"


class InvalidCredentials(CredentialError):
    """Unknown email or wrong password. Both cases share this message."""

    kind = ErrorKind.INVALID_CREDENTIALS
    default_message = "Invalid credentials"


class InvalidOtpOrEmail(CredentialError):
    """No record matches both the email and the OTP."""

    kind = ErrorKind.INVALID_OTP_OR_EMAIL
    default_message = "Invalid OTP or email"


class OtpExpired(CredentialError):
    kind = ErrorKind.OTP_EXPIRED
    default_message = "OTP has expired. Please request a new one."


class Unauthorized(CredentialError):
    """No session token was presented."""

    kind = ErrorKind.UNAUTHORIZED
    default_message = "Unauthorized"


class InvalidToken(CredentialError):
    """Session token is malformed, tampered with, or expired."""

    kind = ErrorKind.INVALID_TOKEN
    default_message = "Invalid token"


class DispatchFailure(CredentialError):
    """Notification channel rejected or failed to deliver the message."""

    kind = ErrorKind.DISPATCH_FAILURE
    default_message = "Failed to deliver notification"


class DispatchTimeout(DispatchFailure):
    """Notification channel did not answer within the configured timeout."""

    kind = ErrorKind.DISPATCH_TIMEOUT
    default_message = "Notification delivery timed out"


class StoreFailure(CredentialError):
    """Credential store is unreachable or rejected the operation."""

    kind = ErrorKind.STORE_FAILURE
    default_message = "Credential store unavailable"
