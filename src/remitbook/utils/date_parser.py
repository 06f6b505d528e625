"""Date parsing utilities."""

from datetime import UTC, date, datetime, timedelta
from typing import Optional, Union
from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta

WEEKDAYS = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]


def parse_date(date_str: str) -> date:
    """Parse a date string into a date object.

    Supports various formats including relative dates:
    - Absolute dates: "2024-01-15", "January 15, 2024", etc.
    - Relative dates: "today", "yesterday", "last month", "this year", etc.

    Args:
        date_str: Date string in various formats

    Returns:
        Date object

    Raises:
        ValueError: If date string cannot be parsed
    """
    date_str = date_str.strip().lower()
    today = date.today()

    relative_dates = {
        "today": today,
        "yesterday": today - timedelta(days=1),
        "tomorrow": today + timedelta(days=1),
    }
    if date_str in relative_dates:
        return relative_dates[date_str]

    if date_str.startswith("last "):
        period = date_str[5:]
        if period == "month":
            return (today - relativedelta(months=1)).replace(day=1)
        elif period == "year":
            return today.replace(month=1, day=1) - relativedelta(years=1)
        elif period == "week":
            return today - timedelta(days=today.weekday() + 7)
        elif period in WEEKDAYS:
            days_ago = (today.weekday() - WEEKDAYS.index(period)) % 7 or 7
            return today - timedelta(days=days_ago)

    elif date_str.startswith("this "):
        period = date_str[5:]
        if period == "month":
            return today.replace(day=1)
        elif period == "year":
            return today.replace(month=1, day=1)
        elif period == "week":
            return today - timedelta(days=today.weekday())

    try:
        return date_parser.parse(date_str).date()
    except (ValueError, TypeError, OverflowError) as e:
        raise ValueError(f"Could not parse date '{date_str}': {e}")


def parse_datetime(value: str) -> datetime:
    """Parse a date or date-time string into a naive UTC datetime.

    Relative words ("today", "last month") resolve to midnight. Strings with
    an explicit offset are converted to UTC.

    Raises:
        ValueError: If the string cannot be parsed
    """
    text = value.strip()
    try:
        parsed = date_parser.isoparse(text)
    except (ValueError, OverflowError):
        if any(ch.isdigit() for ch in text) and ":" in text:
            try:
                parsed = date_parser.parse(text)
            except (ValueError, TypeError, OverflowError) as e:
                raise ValueError(f"Could not parse date '{value}': {e}")
        else:
            parsed = parse_date(text)
    return to_utc_naive(parsed)


def to_utc_naive(value: Union[date, datetime]) -> datetime:
    """Normalize a date or datetime to the naive UTC form the store keeps.

    Plain dates become midnight. Aware datetimes are converted to UTC;
    naive datetimes are taken to be UTC already.
    """
    if not isinstance(value, datetime):
        return datetime(value.year, value.month, value.day)
    if value.tzinfo is not None:
        return value.astimezone(UTC).replace(tzinfo=None)
    return value


def optional_utc_naive(value: Optional[Union[date, datetime]]) -> Optional[datetime]:
    """to_utc_naive that passes None through."""
    return None if value is None else to_utc_naive(value)
