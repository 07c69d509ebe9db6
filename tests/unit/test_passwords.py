"""Unit tests for bcrypt password hashing."""

import re

import bcrypt

from src.domain.passwords import BCRYPT_MAX_PASSWORD_BYTES, BcryptPasswordHasher


class TestBcryptPasswordHasher:
    def test_hash_is_bcrypt_not_plaintext(self, hasher) -> None:
        password_hash = hasher.hash("hunter2")
        assert password_hash != "hunter2"
        assert re.match(r"^\$2[aby]\$", password_hash)

    def test_hash_uses_configured_cost(self) -> None:
        password_hash = BcryptPasswordHasher(rounds=5).hash("hunter2")
        assert int(password_hash.split("$")[2]) == 5

    def test_default_cost_is_at_least_10(self) -> None:
        assert BcryptPasswordHasher().rounds >= 10

    def test_hashes_are_salted(self, hasher) -> None:
        assert hasher.hash("hunter2") != hasher.hash("hunter2")

    def test_verify_accepts_correct_password(self, hasher) -> None:
        password_hash = hasher.hash("hunter2")
        assert hasher.verify("hunter2", password_hash) is True
        assert bcrypt.checkpw(b"hunter2", password_hash.encode())

    def test_verify_rejects_wrong_password(self, hasher) -> None:
        assert hasher.verify("wrong", hasher.hash("hunter2")) is False

    def test_verify_without_hash_is_false(self, hasher) -> None:
        assert hasher.verify("hunter2", None) is False

    def test_verify_with_non_bcrypt_value_is_false(self, hasher) -> None:
        assert hasher.verify("hunter2", "plaintext") is False


class TestPasswordLengthLimit:
    """bcrypt reads 72 bytes; longer passwords are cut to that limit everywhere."""

    def test_long_password_round_trips(self, hasher) -> None:
        password_hash = hasher.hash("p" * 100)
        assert hasher.verify("p" * 100, password_hash) is True

    def test_72_byte_password_round_trips(self, hasher) -> None:
        password = "a" * BCRYPT_MAX_PASSWORD_BYTES
        assert hasher.verify(password, hasher.hash(password)) is True

    def test_bytes_past_the_limit_are_ignored(self, hasher) -> None:
        password_hash = hasher.hash("a" * 72)
        assert hasher.verify("a" * 72 + "b", password_hash) is True
        assert hasher.verify("a" * 72 + "bcdef" * 20, password_hash) is True

    def test_difference_within_limit_is_detected(self, hasher) -> None:
        password_hash = hasher.hash("a" * 100)
        assert hasher.verify("a" * 71 + "b" + "a" * 28, password_hash) is False

    def test_multibyte_password_cut_mid_character(self, hasher) -> None:
        """A 73+ byte UTF-8 password is cut on bytes, not characters."""
        password = "é" * 40 + "x"
        assert len(password.encode()) > BCRYPT_MAX_PASSWORD_BYTES
        assert hasher.verify(password, hasher.hash(password)) is True

    def test_long_password_against_dummy_hash_is_false(self, hasher) -> None:
        assert hasher.verify("p" * 100, None) is False

    def test_long_password_against_non_bcrypt_value_is_false(self, hasher) -> None:
        assert hasher.verify("p" * 100, "plaintext") is False
