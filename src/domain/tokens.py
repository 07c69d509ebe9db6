"""
Session tokens - HS256 JWTs carrying {id, email, name}.

Tokens are stateless: the server keeps no session table, so a token stays
valid until it expires or the signing secret is rotated. Any verification
problem (bad signature, malformed, expired, missing claim) is reported as
a single InvalidToken failure.
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

import jwt

from .cookies import SESSION_COOKIE_NAME
from .exceptions import InvalidToken, MissingParameter, Unauthorized

logger = logging.getLogger(__name__)

SESSION_TTL = timedelta(hours=24)
_ALGORITHM = "HS256"


@dataclass(frozen=True)
class SessionClaims:
    """Identity claims embedded in a session token."""

    id: str
    email: str
    name: str | None = None


class TokenService:
    """Signs and verifies session tokens with a shared secret."""

    def __init__(self, secret: str, ttl: timedelta = SESSION_TTL) -> None:
        if not secret:
            raise MissingParameter("secret")
        self._secret = secret
        self._ttl = ttl

    def issue(self, claims: SessionClaims) -> str:
        now = datetime.now(UTC)
        payload = {
            "id": claims.id,
            "email": claims.email,
            "name": claims.name,
            "iat": now,
            "exp": now + self._ttl,
        }
        return jwt.encode(payload, self._secret, algorithm=_ALGORITHM)

    def verify(self, token: str) -> SessionClaims:
        """
        Decode and validate a token.

        Raises:
            InvalidToken: For every kind of verification failure
        """
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[_ALGORITHM],
                options={"require": ["exp", "iat", "id", "email"]},
            )
        except jwt.InvalidTokenError as exc:
            logger.debug("Session token rejected: %s", type(exc).__name__)
            raise InvalidToken() from exc

        name = payload.get("name")
        return SessionClaims(
            id=str(payload["id"]),
            email=str(payload["email"]),
            name=None if name is None else str(name),
        )


def authenticate(cookies: Mapping[str, str], tokens: TokenService) -> SessionClaims:
    """
    Resolve the session behind a request's cookies.

    Raises:
        Unauthorized: No session cookie present
        InvalidToken: Cookie present but token does not verify
    """
    token = cookies.get(SESSION_COOKIE_NAME)
    if not token:
        raise Unauthorized()
    return tokens.verify(token)


def is_logged_in(cookies: Mapping[str, str], tokens: TokenService) -> SessionClaims | None:
    """Return the session claims, or None when absent or invalid."""
    try:
        return authenticate(cookies, tokens)
    except (Unauthorized, InvalidToken):
        return None
