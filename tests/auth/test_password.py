"""Tests for password hashing and validation."""

import pytest

from snapshare.auth.password import (
    PasswordStrengthError,
    check_needs_rehash,
    hash_password,
    validate_password_strength,
    verify_password,
)


class TestPasswordHashing:
    def test_hash_and_verify(self):
        hashed = hash_password("secret123")
        assert hashed.startswith("$argon2id$")
        assert verify_password("secret123", hashed) is True

    def test_wrong_password(self):
        hashed = hash_password("secret123")
        assert verify_password("secret124", hashed) is False

    def test_invalid_hash_does_not_raise(self):
        assert verify_password("secret123", "not-a-hash") is False

    def test_hashes_are_salted(self):
        assert hash_password("secret123") != hash_password("secret123")

    def test_fresh_hash_needs_no_rehash(self):
        assert check_needs_rehash(hash_password("secret123")) is False


class TestPasswordStrength:
    def test_valid_password(self):
        validate_password_strength("secret")

    @pytest.mark.parametrize("password", ["", "      "])
    def test_empty_rejected(self, password):
        with pytest.raises(PasswordStrengthError, match="empty"):
            validate_password_strength(password)

    def test_too_short(self):
        with pytest.raises(PasswordStrengthError, match="at least 6"):
            validate_password_strength("abc")

    def test_too_long(self):
        with pytest.raises(PasswordStrengthError, match="must not exceed 128"):
            validate_password_strength("a" * 129)

    def test_is_a_validation_error(self):
        with pytest.raises(PasswordStrengthError) as exc_info:
            validate_password_strength("abc")
        assert exc_info.value.status_code == 400
        assert exc_info.value.code == "validation_error"
