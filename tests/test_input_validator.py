"""
Tests for numeric validation and InfluxQL escaping
"""
from datetime import datetime, timezone

import pytest

from telemetry_node.influx.input_validator import (
    escape_measurement,
    escape_regex_token,
    escape_string_literal,
    format_time_bound,
    is_numeric,
    validate_group_unit,
)


class TestIsNumeric:
    @pytest.mark.parametrize("value", ["12.5", "0", "-3", "+4.", ".5", "1e3", "  7 ", 5, 0.25])
    def test_finite_numbers(self, value):
        assert is_numeric(value) is True

    @pytest.mark.parametrize(
        "value",
        ["abc", "", "   ", "Infinity", "-Infinity", "NaN", "1_000", "12km", "1e999", None, True, float("inf"), float("nan"), 10 ** 400],
    )
    def test_rejects_non_finite_or_malformed(self, value):
        assert is_numeric(value) is False


class TestEscaping:
    def test_string_literal_is_quoted(self):
        assert escape_string_literal("UTC") == "'UTC'"

    def test_string_literal_escapes_quote_and_backslash(self):
        assert escape_string_literal("it's") == "'it\\'s'"
        assert escape_string_literal("a\\b") == "'a\\\\b'"

    def test_measurement_escapes_separators(self):
        assert escape_measurement("unit 1,2") == "unit\\ 1\\,2"

    def test_regex_token_escapes_slash(self):
        assert escape_regex_token("12/34") == "12\\/34"

    def test_group_unit_accepts_duration_units(self):
        assert validate_group_unit("d") == "d"
        assert validate_group_unit("h") == "h"
        assert validate_group_unit("ms") == "ms"

    @pytest.mark.parametrize("group", ["x", "", "1d", "d) drop"])
    def test_group_unit_rejects_other_tokens(self, group):
        with pytest.raises(ValueError):
            validate_group_unit(group)


class TestTimeBounds:
    def test_aware_datetime_rendered_as_utc(self):
        bound = datetime(2024, 3, 15, 14, 0, tzinfo=timezone.utc)
        assert format_time_bound(bound) == "'2024-03-15T14:00:00Z'"

    def test_naive_datetime_taken_as_utc(self):
        assert format_time_bound(datetime(2024, 3, 15)) == "'2024-03-15T00:00:00Z'"

    def test_string_passed_through_escaped(self):
        assert format_time_bound("2024-03-15") == "'2024-03-15'"
        assert format_time_bound("x' or 1=1") == "'x\\' or 1=1'"
