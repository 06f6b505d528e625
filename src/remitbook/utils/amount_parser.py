"""Amount parsing utilities."""

from decimal import Decimal, InvalidOperation
import re

# Arabic-Indic and Eastern Arabic-Indic digits
DIGIT_TRANSLATION = str.maketrans(
    "٠١٢٣٤٥٦٧٨٩۰۱۲۳۴۵۶۷۸۹",
    "01234567890123456789",
)
ARABIC_DECIMAL_SEPARATOR = "٫"
ARABIC_THOUSANDS_SEPARATOR = "٬"


def normalize_digits(text: str) -> str:
    """Replace Arabic digits and separators with their ASCII forms."""
    return (
        text.translate(DIGIT_TRANSLATION)
        .replace(ARABIC_DECIMAL_SEPARATOR, ".")
        .replace(ARABIC_THOUSANDS_SEPARATOR, ",")
    )


def parse_amount(amount_str: str) -> Decimal:
    """Parse an amount string into a Decimal.

    Handles various formats:
    - "123.45"
    - "$123.45"
    - "1,234.56"
    - "(123.45)" (negative in parentheses)
    - "٥٠٠٠" and "١٢٫٥" (Arabic digits and decimal separator)

    Args:
        amount_str: Amount string

    Returns:
        Decimal amount

    Raises:
        ValueError: If amount string cannot be parsed
    """
    if amount_str is None or not str(amount_str).strip():
        raise ValueError("Empty amount string")

    amount_str = normalize_digits(str(amount_str).strip())

    is_negative = False
    if amount_str.startswith("(") and amount_str.endswith(")"):
        is_negative = True
        amount_str = amount_str[1:-1]

    amount_str = re.sub(r"[$€£¥]", "", amount_str)
    amount_str = amount_str.replace(",", "").strip()

    try:
        amount = Decimal(amount_str)
    except InvalidOperation as e:
        raise ValueError(f"Could not parse amount '{amount_str}'") from e
    if not amount.is_finite():
        raise ValueError(f"Could not parse amount '{amount_str}'")
    return -amount if is_negative else amount
