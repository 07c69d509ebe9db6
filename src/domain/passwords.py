"""
Password hashing - bcrypt hash and constant-time verify.

When no stored hash exists (unknown email, pending registration) the
verifier still runs bcrypt against a dummy hash so that response time
does not reveal whether the account exists.

bcrypt only reads the first 72 bytes of its input, and bcrypt 5 raises
for anything longer. Passwords are encoded and cut to that limit before
every hash and comparison, matching what earlier bcrypt releases did
implicitly, so long passwords behave the same on every code path.
"""

from dataclasses import dataclass

import bcrypt

BCRYPT_MAX_PASSWORD_BYTES = 72

# Hash of "dummy_password_for_timing_safety" with cost factor 10.
_DUMMY_BCRYPT_HASH = bcrypt.hashpw(b"dummy_password_for_timing_safety", bcrypt.gensalt(10))


def _password_bytes(password: str) -> bytes:
    return password.encode()[:BCRYPT_MAX_PASSWORD_BYTES]


@dataclass(frozen=True)
class BcryptPasswordHasher:
    """Salted one-way password hashing with a configurable cost factor."""

    rounds: int = 10

    def hash(self, password: str) -> str:
        return bcrypt.hashpw(_password_bytes(password), bcrypt.gensalt(rounds=self.rounds)).decode()

    def verify(self, password: str, password_hash: str | None) -> bool:
        """
        Check password against password_hash.

        Always performs one bcrypt comparison, even when password_hash is None.
        """
        secret = _password_bytes(password)
        if password_hash is None:
            bcrypt.checkpw(secret, _DUMMY_BCRYPT_HASH)
            return False
        try:
            return bcrypt.checkpw(secret, password_hash.encode())
        except ValueError:
            # Stored value is not a bcrypt hash
            return False
