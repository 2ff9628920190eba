# sparesite/money.py
#
# Decimal helpers shared by coupon and service pricing.
# All money is Decimal, rounded half-up to pennies.

from decimal import Decimal, ROUND_HALF_UP, InvalidOperation

from django.conf import settings

PENNY = Decimal("0.01")
ZERO = Decimal("0.00")


def to_decimal(value) -> Decimal:
    """
    Coerce int/float/str/Decimal/None into Decimal.
    Floats go through str() so 0.1 stays 0.1.
    """
    if isinstance(value, Decimal):
        return value
    if value is None or value == "":
        return Decimal("0")
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        raise ValueError(f"Not a valid amount: {value!r}")


def round_money(value) -> Decimal:
    return to_decimal(value).quantize(PENNY, rounding=ROUND_HALF_UP)


def format_money(value, currency_symbol=None) -> str:
    """Format as currency with two decimals, e.g. '£25.00'."""
    symbol = settings.CURRENCY_SYMBOL if currency_symbol is None else currency_symbol
    try:
        return f"{symbol}{round_money(value):.2f}"
    except ValueError:
        return f"{symbol}0.00"
