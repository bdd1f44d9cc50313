"""
Input validation used by the secure-auth gateway.
"""

import pytest

from security.password_policy import PasswordPolicy, validate_password
from security.validation import (
    detect_suspicious_input,
    format_phone_e164,
    is_valid_email,
    is_valid_phone,
    normalize_email,
    normalize_phone,
)


class TestPasswordPolicy:
    def test_lowercase_only_with_digit_fails(self):
        ok, errors = validate_password("abcdefg1")
        assert not ok
        assert "Password must include at least 1 uppercase letter" in errors

    def test_seven_characters_is_too_short(self):
        ok, errors = validate_password("Abcdef1")
        assert not ok
        assert any("at least 8 characters" in e for e in errors)

    def test_mixed_case_with_digit_passes(self):
        assert validate_password("Abcdefg1") == (True, [])

    def test_symbol_not_required(self):
        ok, _ = validate_password("Journal2024")
        assert ok

    def test_missing_digit_fails(self):
        ok, errors = validate_password("Abcdefgh")
        assert not ok
        assert "Password must include at least 1 number" in errors

    def test_non_string_rejected(self):
        assert validate_password(None) == (False, ["Password must be a string"])

    def test_explicit_policy(self):
        lenient = PasswordPolicy(min_len=4, require_upper=False, require_digit=False)
        assert validate_password("abcd", lenient) == (True, [])
        strict = PasswordPolicy(require_symbol=True)
        assert "Password must include at least 1 symbol" in validate_password("Abcdefg1", strict)[1]

    def test_policy_read_from_app_config(self, app):
        app.config["PASSWORD_MIN_LEN"] = 12
        ok, errors = validate_password("Abcdefg1")
        assert not ok
        assert "Password must be at least 12 characters" in errors


class TestPhone:
    def test_dashed_us_number_normalizes_to_ten_digits(self):
        assert normalize_phone("555-123-4567") == "5551234567"
        assert is_valid_phone("555-123-4567")

    def test_too_short(self):
        assert not is_valid_phone("123")

    def test_too_long(self):
        assert not is_valid_phone("1" * 16)

    def test_fifteen_digits_ok(self):
        assert is_valid_phone("+44 20 7946 0958 123")

    @pytest.mark.parametrize("raw", ["555-123-4567", "(555) 123-4567", "1 555 123 4567", "+1 555.123.4567"])
    def test_us_numbers_format_to_e164(self, raw):
        assert format_phone_e164(raw) == "+15551234567"

    def test_international_number_keeps_country_code(self):
        assert format_phone_e164("44 20 7946 0958") == "+442079460958"

    def test_invalid_number_formats_to_none(self):
        assert format_phone_e164("123") is None


class TestEmail:
    def test_valid(self):
        assert is_valid_email("jane@example.com")

    @pytest.mark.parametrize("value", ["", "jane", "jane@", "jane@example", "ja ne@example.com", None, 42])
    def test_invalid(self, value):
        assert not is_valid_email(value)

    def test_length_limit(self):
        local = "a" * 64
        domain = ("b" * 60 + ".") * 4 + "com"
        address = f"{local}@{domain}"
        assert len(address) > 254
        assert not is_valid_email(address)

    def test_normalize(self):
        assert normalize_email("  Jane@Example.COM ") == "jane@example.com"
        assert normalize_email(None) == ""


class TestSuspiciousInput:
    @pytest.mark.parametrize("value", [
        "<script>alert(1)</script>@x.com",
        "javascript:alert(1)",
        "x@y.com'; DROP TABLE users; --",
        "a\" onmouseover=\"x",
    ])
    def test_flags_markup_and_sql(self, value):
        assert detect_suspicious_input(value)

    def test_normal_values_pass(self):
        assert not detect_suspicious_input("jane@example.com", "+1 (555) 123-4567", None)
