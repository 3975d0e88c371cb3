"""
Tests for the named sanitize rules.

These tests verify that sanitizers:
1. Convert well-formed values to the right type
2. Map blank input to None
3. Raise SanitizeError on input they cannot convert
4. Keep raw values when used for export formatting
"""

from datetime import date, datetime

import pytest

from datamigrate.exceptions import ConfigurationError, SanitizeError
from datamigrate.mapping.sanitizers import (
    SANITIZERS,
    format_value,
    get_sanitizer,
    register_sanitizer,
    sanitize,
)


class TestNumericSanitizers:

    @pytest.mark.parametrize("raw,expected", [
        ("42", 42),
        (" 7 ", 7),
        ("36.5", 37),
        ("1,250", 1250),
        (12.0, 12),
        (True, 1),
    ])
    def test_int_converts(self, raw, expected):
        assert sanitize(raw, "int") == expected

    def test_int_rejects_text(self):
        with pytest.raises(SanitizeError) as exc_info:
            sanitize("abc", "int")
        assert exc_info.value.sanitizer == "int"
        assert exc_info.value.source_value == "abc"

    def test_int_rejects_infinity(self):
        with pytest.raises(SanitizeError):
            sanitize("Infinity", "integer")

    def test_float_and_number_alias(self):
        assert sanitize("3.25", "float") == 3.25
        assert sanitize("3.25", "number") == 3.25

    def test_decimal_rounds_half_up(self):
        assert sanitize("2.675", "decimal") == 2.68
        assert sanitize("2.665", "decimal") == 2.67

    def test_extract_numeric_keeps_sign_and_fraction(self):
        assert sanitize("Price: $36.50", "extract_numeric") == 36.5
        assert sanitize("balance -12", "extract_numeric") == -12.0

    def test_extract_numeric_without_digits_fails(self):
        with pytest.raises(SanitizeError):
            sanitize("no numbers", "extract_numeric")

    def test_numbers_only(self):
        assert sanitize("(555) 555-1234", "numbers_only") == "5555551234"


class TestTextAndFlagSanitizers:

    def test_trim_collapses_whitespace(self):
        assert sanitize("  a   b\tc ", "trim") == "a b c"

    def test_case_sanitizers(self):
        assert sanitize(" Mixed ", "upper") == "MIXED"
        assert sanitize(" Mixed ", "lower") == "mixed"

    def test_string(self):
        assert sanitize(12, "string") == "12"

    @pytest.mark.parametrize("raw", ["Y", "yes", "TRUE", "1", "on"])
    def test_boolean_true_values(self, raw):
        assert sanitize(raw, "boolean") is True

    @pytest.mark.parametrize("raw", ["n", "No", "false", "0", "off"])
    def test_boolean_false_values(self, raw):
        assert sanitize(raw, "boolean") is False

    def test_bit(self):
        assert sanitize("yes", "bit") == 1
        assert sanitize("no", "bit") == 0
        with pytest.raises(SanitizeError):
            sanitize("maybe", "bit")


class TestDateSanitizers:

    @pytest.mark.parametrize("raw", ["2023-10-03", "2023/10/03", "10/03/2023", "2023-10-03T00:00:00"])
    def test_date_formats(self, raw):
        assert sanitize(raw, "date") == date(2023, 10, 3)

    def test_datetime_keeps_time(self):
        assert sanitize("2023-10-03 16:26:23", "datetime") == datetime(2023, 10, 3, 16, 26, 23)

    def test_datetime_passthrough(self):
        value = datetime(2020, 1, 2, 3, 4, 5)
        assert sanitize(value, "datetime") is value

    def test_invalid_date(self):
        with pytest.raises(SanitizeError):
            sanitize("not a date", "date")


class TestRegistry:

    @pytest.mark.parametrize("blank", [None, "", "   "])
    def test_blank_input_is_none(self, blank):
        assert sanitize(blank, "int") is None

    def test_unknown_sanitizer(self):
        with pytest.raises(ConfigurationError):
            get_sanitizer("nope")

    def test_unknown_sanitizer_fails_even_for_blank_values(self):
        with pytest.raises(ConfigurationError):
            sanitize(None, "nope")

    def test_register_custom_sanitizer(self):
        register_sanitizer("reverse", lambda value: str(value)[::-1])
        try:
            assert sanitize("abc", "reverse") == "cba"
        finally:
            SANITIZERS.pop("reverse", None)

    def test_custom_sanitizer_value_errors_become_sanitize_errors(self):
        def strict(value):
            raise ValueError("bad")

        register_sanitizer("strict", strict)
        try:
            with pytest.raises(SanitizeError):
                sanitize("x", "strict")
        finally:
            SANITIZERS.pop("strict", None)

    def test_format_value_keeps_raw_on_failure(self):
        assert format_value("abc", "int") == "abc"
        assert format_value("5", "int") == 5
