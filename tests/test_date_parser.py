"""Tests for date parser with relative dates."""

import pytest
from datetime import date

from bizledger.utils.date_parser import get_date_range, parse_date, parse_month

TODAY = date(2026, 3, 15)


def test_parse_absolute_date():
    assert parse_date("2024-01-15") == date(2024, 1, 15)


def test_parse_written_date():
    assert parse_date("January 15, 2024") == date(2024, 1, 15)


@pytest.mark.parametrize(
    "text, expected",
    [
        ("today", date(2026, 3, 15)),
        ("Yesterday", date(2026, 3, 14)),
        ("tomorrow", date(2026, 3, 16)),
    ],
)
def test_parse_keywords(text, expected):
    assert parse_date(text, TODAY) == expected


@pytest.mark.parametrize(
    "text, expected",
    [
        ("+3d", date(2026, 3, 18)),
        ("-2w", date(2026, 3, 1)),
        ("+1m", date(2026, 4, 15)),
        ("-1m", date(2026, 2, 15)),
    ],
)
def test_parse_offsets(text, expected):
    assert parse_date(text, TODAY) == expected


def test_month_offset_clamps_to_month_end():
    assert parse_date("+1m", date(2026, 1, 31)) == date(2026, 2, 28)


def test_parse_invalid_date():
    with pytest.raises(ValueError, match="Could not parse date") as excinfo:
        parse_date("not a date")
    assert excinfo.value.__cause__ is not None


class TestParseMonth:
    def test_iso_month(self):
        assert parse_month("2026-03") == date(2026, 3, 1)

    def test_named_month(self):
        assert parse_month("March 2026") == date(2026, 3, 1)

    def test_month_returns_a_date(self):
        parsed = parse_month("2026-02", TODAY)
        assert type(parsed) is date
        assert parsed == date(2026, 2, 1)

    def test_invalid_month_keeps_cause(self):
        with pytest.raises(ValueError, match="Could not parse month") as excinfo:
            parse_month("not a month", TODAY)
        assert excinfo.value.__cause__ is not None

    def test_relative_months(self):
        assert parse_month("this-month", TODAY) == date(2026, 3, 1)
        assert parse_month("last-month", date(2026, 1, 20)) == date(2025, 12, 1)
        assert parse_month("next-month", date(2026, 12, 5)) == date(2027, 1, 1)

    def test_month_without_year_is_rejected(self):
        with pytest.raises(ValueError, match="needs a year"):
            parse_month("March", TODAY)


class TestGetDateRange:
    def test_this_month_is_whole_month(self):
        assert get_date_range("this-month", TODAY) == (date(2026, 3, 1), date(2026, 3, 31))

    def test_last_month_in_leap_year(self):
        assert get_date_range("last-month", date(2028, 3, 10)) == (date(2028, 2, 1), date(2028, 2, 29))

    def test_next_month_crosses_year(self):
        assert get_date_range("next-month", date(2026, 12, 5)) == (date(2027, 1, 1), date(2027, 1, 31))

    def test_rolling_windows(self):
        assert get_date_range("last-7-days", TODAY) == (date(2026, 3, 9), TODAY)
        assert get_date_range("last-30-days", TODAY) == (date(2026, 2, 14), TODAY)
        assert get_date_range("today", TODAY) == (TODAY, TODAY)

    def test_this_year(self):
        assert get_date_range("this-year", TODAY) == (date(2026, 1, 1), date(2026, 12, 31))

    def test_unknown_period(self):
        with pytest.raises(ValueError, match="Unknown period"):
            get_date_range("fortnight", TODAY)
