"""Date parsing utilities."""

from datetime import date, datetime, timedelta
import re
from typing import Optional
from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta

_OFFSET = re.compile(r"^([+-])(\d+)([dwm])$")
_UNITS = {"d": "days", "w": "weeks", "m": "months"}


def parse_date(date_str: str, today: Optional[date] = None) -> date:
    """Parse a date string into a date object.

    Supports:
    - Absolute dates: "2024-01-15", "January 15, 2024", etc.
    - Keywords: "today", "yesterday", "tomorrow"
    - Offsets from today: "+3d", "-2w", "+1m"

    Args:
        date_str: Date string
        today: Reference date for relative forms (defaults to today)

    Returns:
        Date object

    Raises:
        ValueError: If date string cannot be parsed
    """
    text = date_str.strip().lower()
    today = today or date.today()

    keywords = {
        "today": today,
        "yesterday": today - timedelta(days=1),
        "tomorrow": today + timedelta(days=1),
    }
    if text in keywords:
        return keywords[text]

    match = _OFFSET.match(text)
    if match:
        sign, count, unit = match.groups()
        delta = relativedelta(**{_UNITS[unit]: int(count)})
        return today + delta if sign == "+" else today - delta

    try:
        return date_parser.parse(text).date()
    except (ValueError, OverflowError) as e:
        raise ValueError(f"Could not parse date '{date_str}': {e}") from e


def parse_month(month_str: str, today: Optional[date] = None) -> date:
    """Parse a month reference into the first day of that month.

    Accepts "2026-03", "March 2026", "this-month", "last-month" and
    "next-month".

    Raises:
        ValueError: If the month cannot be parsed
    """
    text = month_str.strip().lower()
    first = (today or date.today()).replace(day=1)

    relative = {
        "this-month": first,
        "last-month": first - relativedelta(months=1),
        "next-month": first + relativedelta(months=1),
    }
    if text in relative:
        return relative[text]

    try:
        parsed = date_parser.parse(text, default=datetime(1900, first.month, 1))
    except (ValueError, OverflowError) as e:
        raise ValueError(f"Could not parse month '{month_str}': {e}") from e
    if parsed.year == 1900:
        raise ValueError(f"Month '{month_str}' needs a year")
    return parsed.date().replace(day=1)


def get_date_range(period: str, today: Optional[date] = None) -> tuple[date, date]:
    """Get start and end dates for a named period.

    Months are returned whole (first to last day) so that pending entries
    later in the month are part of the projection.

    Args:
        period: One of today, last-7-days, last-30-days, this-month, last-month,
            next-month, this-year
        today: Reference date (defaults to today)

    Returns:
        Tuple of (start_date, end_date), both inclusive

    Raises:
        ValueError: If period string is not recognized
    """
    period = period.strip().lower()
    today = today or date.today()
    first = today.replace(day=1)

    if period == "today":
        return today, today
    if period == "last-7-days":
        return today - timedelta(days=6), today
    if period == "last-30-days":
        return today - timedelta(days=29), today
    if period in ("this-month", "last-month", "next-month"):
        start = parse_month(period, today)
        return start, start + relativedelta(months=1, days=-1)
    if period == "this-year":
        return today.replace(month=1, day=1), today.replace(month=12, day=31)

    raise ValueError(
        f"Unknown period: '{period}'. Supported periods: today, last-7-days, "
        "last-30-days, this-month, last-month, next-month, this-year"
    )
