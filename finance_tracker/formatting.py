"""Human-readable money and date formatting."""

from datetime import date, datetime
from decimal import Decimal
from typing import Union


CURRENCY_SYMBOLS = {
    "CAD": "CA$",
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "INR": "₹",
}


def format_currency(amount: Union[Decimal, int, float], currency_code: str = "CAD") -> str:
    """
    Format an amount like "CA$1,234.50" (negative: "-CA$1,234.50").

    Unknown currency codes are rendered as a suffix: "1,234.50 CHF".
    """
    value = Decimal(str(amount)).quantize(Decimal("0.01"))
    sign = "-" if value < 0 else ""
    digits = f"{abs(value):,.2f}"
    symbol = CURRENCY_SYMBOLS.get(currency_code.upper())
    if symbol is None:
        return f"{sign}{digits} {currency_code.upper()}"
    return f"{sign}{symbol}{digits}"


def format_date(value: Union[date, datetime]) -> str:
    """Format a date like "Mar 5, 2024"."""
    return f"{value.strftime('%b')} {value.day}, {value.year}"
