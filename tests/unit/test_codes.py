"""Unit tests for verification code generation."""

import string

from snapshare.otp.service import (
    CODE_CHARSET,
    CODE_LENGTH,
    generate_code,
    hash_code,
    is_well_formed,
    normalize_code,
)


class TestVerificationCodes:
    def test_code_is_6_chars(self):
        assert len(generate_code()) == CODE_LENGTH == 6

    def test_code_is_alphanumeric_uppercase(self):
        code = generate_code()
        assert all(c in string.ascii_uppercase + string.digits for c in code)

    def test_codes_vary(self):
        codes = {generate_code() for _ in range(200)}
        assert len(codes) > 190

    def test_charset(self):
        assert CODE_CHARSET == string.ascii_uppercase + string.digits

    def test_normalize_strips_and_uppercases(self):
        assert normalize_code("  ab12cd \n") == "AB12CD"

    def test_well_formed(self):
        assert is_well_formed("AB12CD") is True

    def test_wrong_length_not_well_formed(self):
        assert is_well_formed("AB12C") is False
        assert is_well_formed("AB12CDE") is False

    def test_lowercase_not_well_formed_until_normalized(self):
        assert is_well_formed("ab12cd") is False
        assert is_well_formed(normalize_code("ab12cd")) is True

    def test_symbols_not_well_formed(self):
        assert is_well_formed("AB-2CD") is False

    def test_hash_is_deterministic_hex(self):
        digest = hash_code("AB12CD")
        assert digest == hash_code("AB12CD")
        assert len(digest) == 64
        assert digest != hash_code("AB12CE")
