"""
Currency Display Module

Parsing of user-supplied amounts and rounding/formatting of Decimal values
for display. Stored and computed values keep full precision; only what is
shown to a person is rounded to the minor unit. NEVER uses float.
"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Optional
import re


DEFAULT_PRECISION = 2       # Minor unit: 2 decimal places
DEFAULT_SYMBOL = "₹"

_CURRENCY_NOISE = re.compile(r'[\s₹$€£¥]')
_PLAIN_AMOUNT = re.compile(r'^[+-]?[\d.,]*\d[\d.,]*$')


def to_display(value: Decimal, precision: int = DEFAULT_PRECISION) -> Decimal:
    """
    Round a Decimal to the currency's minor unit for display

    Args:
        value: Full precision amount
        precision: Number of decimal places

    Returns:
        Rounded Decimal (ROUND_HALF_UP)
    """
    return value.quantize(Decimal('0.1') ** precision, rounding=ROUND_HALF_UP)


def display_string(value: Optional[Decimal], precision: int = DEFAULT_PRECISION) -> Optional[str]:
    """Rounded amount as a plain string, e.g. '10661.85'"""
    if value is None:
        return None
    return str(to_display(value, precision))


def format_currency(
    value: Decimal,
    symbol: str = DEFAULT_SYMBOL,
    precision: int = DEFAULT_PRECISION
) -> str:
    """Format for display with symbol and thousands separators"""
    amount = to_display(value, precision)
    if amount < 0:
        return f"-{symbol}{-amount:,.{precision}f}"
    return f"{symbol}{amount:,.{precision}f}"


def decimal_from_string(value: str) -> Decimal:
    """
    Safely convert string to Decimal, handling common formats

    Args:
        value: String representation of number

    Returns:
        Decimal value

    Raises:
        ValueError: If string cannot be converted to valid Decimal
    """
    if not value or not isinstance(value, str):
        raise ValueError("Value must be a non-empty string")

    # Only currency symbols and whitespace are dropped; anything else left
    # over (letters, exponents) makes the amount invalid
    clean_value = _CURRENCY_NOISE.sub('', value)
    if not _PLAIN_AMOUNT.match(clean_value):
        raise ValueError(f"Cannot convert '{value}' to Decimal")

    if ',' in clean_value and '.' in clean_value:
        # Both present - comma is the thousands separator
        clean_value = clean_value.replace(',', '')
    elif ',' in clean_value and clean_value.count(',') == 1:
        parts = clean_value.split(',')
        if len(parts[1]) <= 2:  # Decimal comma
            clean_value = clean_value.replace(',', '.')
        else:
            clean_value = clean_value.replace(',', '')
    elif ',' in clean_value:
        # Grouped thousands, e.g. 1,20,000 or 1,000,000
        clean_value = clean_value.replace(',', '')

    try:
        result = Decimal(clean_value)
    except InvalidOperation:
        raise ValueError(f"Cannot convert '{value}' to Decimal")

    return result
