"""Unit tests for config validators."""

import pytest

from app.config.validators import normalize_string_list, validate_min_max


class TestNormalizeStringList:
    """Tests for normalize_string_list function."""

    def test_none_returns_empty_list(self):
        assert normalize_string_list(None) == []

    def test_single_string(self):
        assert normalize_string_list("  Timeout ") == ["timeout"]

    def test_blank_string(self):
        assert normalize_string_list("   ") == []

    def test_list_drops_blanks_and_non_strings(self):
        assert normalize_string_list(["Rate_Limit", "", 42, " Server_Error"]) == [
            "rate_limit",
            "server_error",
        ]

    def test_other_types(self):
        assert normalize_string_list(7) == []


class TestValidateMinMax:
    """Tests for validate_min_max function."""

    def test_equal_bounds_allowed(self):
        validate_min_max(2, 2)

    def test_inverted_bounds_raise(self):
        with pytest.raises(ValueError, match="Retry delay minimum"):
            validate_min_max(10.0, 1.0, "Retry delay")
