"""Utility functions for remitbook."""

from remitbook.utils.date_parser import parse_date, parse_datetime, to_utc_naive
from remitbook.utils.amount_parser import normalize_digits, parse_amount

__all__ = ["parse_date", "parse_datetime", "to_utc_naive", "normalize_digits", "parse_amount"]
