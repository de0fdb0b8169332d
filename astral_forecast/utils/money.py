"""Conversion between dollar amounts from the records service and integer cents"""

from decimal import Decimal, ROUND_HALF_UP


def to_cents(amount) -> int:
    """Convert a dollar amount (float, int, str or Decimal) to integer cents"""
    cents = Decimal(str(amount)) * 100
    return int(cents.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def format_dollars(cents: int) -> str:
    """Plain `$1,234.56` rendering used inside alert messages"""
    sign = "-" if cents < 0 else ""
    return f"{sign}${abs(cents) / 100:,.2f}"
