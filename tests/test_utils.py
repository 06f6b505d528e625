"""Tests for date and amount parsing utilities."""

from datetime import date, datetime, timedelta
from decimal import Decimal

import pytest

from remitbook.utils.amount_parser import normalize_digits, parse_amount
from remitbook.utils.date_parser import parse_date, parse_datetime, to_utc_naive


def test_parse_absolute_date():
    """Test parsing absolute dates."""
    assert parse_date("2024-01-15") == date(2024, 1, 15)
    assert parse_date("January 15, 2024") == date(2024, 1, 15)


def test_parse_relative_dates():
    """Test parsing relative dates."""
    today = date.today()
    assert parse_date("today") == today
    assert parse_date("Yesterday") == today - timedelta(days=1)
    assert parse_date("this month") == today.replace(day=1)
    assert parse_date("this year") == today.replace(month=1, day=1)


def test_parse_last_weekday_is_in_the_past():
    """Test that 'last <weekday>' is within the previous seven days."""
    result = parse_date("last monday")
    assert result.weekday() == 0
    assert 1 <= (date.today() - result).days <= 7


def test_parse_invalid_date():
    """Test that garbage raises ValueError."""
    with pytest.raises(ValueError, match="Could not parse date"):
        parse_date("not a date")


def test_parse_datetime_converts_offsets_to_utc():
    """Test that explicit offsets are converted to naive UTC."""
    assert parse_datetime("2024-01-15T15:00:00+03:00") == datetime(2024, 1, 15, 12, 0)
    assert parse_datetime("2024-01-15") == datetime(2024, 1, 15)
    assert parse_datetime("today") == datetime.combine(date.today(), datetime.min.time())


def test_to_utc_naive_from_date():
    """Test that plain dates become midnight."""
    assert to_utc_naive(date(2024, 3, 1)) == datetime(2024, 3, 1)


def test_parse_amount_formats():
    """Test parsing common amount formats."""
    assert parse_amount("123.45") == Decimal("123.45")
    assert parse_amount("$1,234.56") == Decimal("1234.56")
    assert parse_amount("(50.00)") == Decimal("-50.00")
    assert parse_amount("١٢٫٥") == Decimal("12.5")
    assert parse_amount("۱۰۰٬۰۰۰") == Decimal("100000")


@pytest.mark.parametrize("value", ["", "   ", "abc", "NaN", "Infinity"])
def test_parse_amount_invalid(value):
    """Test that unparseable and non-finite amounts raise ValueError."""
    with pytest.raises(ValueError):
        parse_amount(value)


def test_normalize_digits():
    """Test ASCII normalization of Arabic digits and separators."""
    assert normalize_digits("رصيدك ١٤٦٦٨٨٫٩") == "رصيدك 146688.9"
