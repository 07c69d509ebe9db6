"""
Operation results - Success value or typed failure.

Each CredentialLifecycleService operation returns a Result instead of
raising, so callers branch on ErrorKind rather than catching exceptions.
"""

import dataclasses
from dataclasses import dataclass
from typing import Generic, TypeVar, Union

from .exceptions import CredentialError, ErrorKind

T = TypeVar("T")


@dataclass(frozen=True)
class Success(Generic[T]):
    """Successful operation carrying its payload."""

    value: T

    @property
    def ok(self) -> bool:
        return True

    def unwrap(self) -> T:
        return self.value


@dataclass(frozen=True)
class Failure:
    """
    Failed operation carrying the error kind and a caller-safe message.

    The originating exception is kept so unwrap() can re-raise it for
    callers that prefer exception flow.
    """

    kind: ErrorKind
    message: str
    field: str | None = None
    error: CredentialError | None = dataclasses.field(default=None, compare=False, repr=False)

    @classmethod
    def from_error(cls, error: CredentialError) -> "Failure":
        return cls(
            kind=error.kind,
            message=error.message,
            field=getattr(error, "field", None),
            error=error,
        )

    @property
    def ok(self) -> bool:
        return False

    def unwrap(self):
        if self.error is not None:
            raise self.error
        raise CredentialError(self.message)


Result = Union[Success[T], Failure]


@dataclass(frozen=True)
class RegistrationResult:
    message: str
    user_id: str


@dataclass(frozen=True)
class LoginResult:
    message: str
    user_id: str
    token: str


@dataclass(frozen=True)
class ChallengeResult:
    message: str
    email: str


@dataclass(frozen=True)
class LogoutResult:
    message: str
