"""Unit tests for identifier normalization and secret format checks."""

import pytest

from schooltalk.errors import InvalidArgument
from schooltalk.services.identity import (
    normalize_email, normalize_identifier, normalize_phone, validate_secret,
)

pytestmark = pytest.mark.unit


class TestNormalizePhone:

    @pytest.mark.parametrize("raw", ["+1 555 123 4567", "1-555-123-4567", "(1) 555.123.4567"])
    def test_strips_formatting(self, raw):
        assert normalize_phone(raw) == "15551234567"

    def test_rejects_short_numbers(self):
        with pytest.raises(InvalidArgument):
            normalize_phone("555-1234")

    def test_rejects_empty(self):
        with pytest.raises(InvalidArgument):
            normalize_phone("")


class TestNormalizeEmail:

    def test_lowercases_and_strips(self):
        assert normalize_email("  Ms.Lee@School.ORG ") == "ms.lee@school.org"

    @pytest.mark.parametrize("raw", ["no-at-sign", "@school.org", "lee@localhost", "a b@school.org"])
    def test_rejects_malformed(self, raw):
        with pytest.raises(InvalidArgument):
            normalize_email(raw)


class TestNormalizeIdentifier:

    def test_email_branch(self):
        assert normalize_identifier("Teacher@Example.com") == "teacher@example.com"

    def test_phone_branch(self):
        assert normalize_identifier("+1 (555) 000-1111") == "15550001111"

    @pytest.mark.parametrize("raw", [None, "", "   "])
    def test_missing(self, raw):
        with pytest.raises(InvalidArgument):
            normalize_identifier(raw)


class TestValidateSecret:

    def test_four_digit_code(self):
        assert validate_secret("0042", mode="access_code") == "0042"

    @pytest.mark.parametrize("secret", ["123", "12345", "12a4", "", " 123"])
    def test_bad_access_codes(self, secret):
        with pytest.raises(InvalidArgument):
            validate_secret(secret, mode="access_code")

    def test_password_mode_minimum_length(self):
        assert validate_secret("hunter22", mode="password") == "hunter22"
        with pytest.raises(InvalidArgument):
            validate_secret("short", mode="password")

    def test_unknown_mode(self):
        with pytest.raises(InvalidArgument):
            validate_secret("1234", mode="otp")

    def test_non_string(self):
        with pytest.raises(InvalidArgument):
            validate_secret(1234, mode="access_code")
