"""
Numeric coercion and display helpers shared by the models, insights and exports.
"""
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any

ZERO = Decimal("0")
HUNDRED = Decimal("100")

# Amounts outside 1e-100 .. 1e100 in magnitude are treated as unusable
MAX_AMOUNT_EXPONENT = 100

CURRENCY_SYMBOLS = {
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "MAD": "MAD ",
}

CATEGORY_LABELS = {
    "housing": "Housing",
    "transportation": "Transportation",
    "food": "Food & Dining",
    "utilities": "Utilities",
    "healthcare": "Healthcare",
    "entertainment": "Entertainment",
    "shopping": "Shopping",
    "education": "Education",
    "savings": "Savings",
    "software": "Software",
    "hardware": "Hardware",
    "travel": "Travel",
    "personnel": "Personnel",
    "marketing": "Marketing",
    "consulting": "Consulting",
    "other": "Other",
}


def to_decimal(value: Any) -> Decimal:
    """
    Coerce an amount-like value to a finite Decimal.
    Anything that is not a finite number (or numeric string) of a sane
    magnitude becomes 0.
    """
    if isinstance(value, bool) or value is None:
        return ZERO
    if isinstance(value, Decimal):
        return _bounded(value)
    if isinstance(value, int):
        return _bounded(Decimal(value))
    if isinstance(value, float):
        # str() keeps the shortest repr, so 0.1 stays 0.1
        value = str(value)
    if isinstance(value, str):
        try:
            parsed = Decimal(value.strip().replace(",", ""))
        except InvalidOperation:
            return ZERO
        return _bounded(parsed)
    return ZERO


def _bounded(value: Decimal) -> Decimal:
    if not value.is_finite():
        return ZERO
    if not value.is_zero() and abs(value.adjusted()) > MAX_AMOUNT_EXPONENT:
        return ZERO
    return value


def percentage(part: Decimal, whole: Decimal) -> Decimal:
    if whole == 0:
        return ZERO
    return part / whole * HUNDRED


def category_label(category: Any) -> str:
    key = getattr(category, "value", category)
    return CATEGORY_LABELS.get(key, str(key))


def format_currency(amount: Any, currency: str = "USD") -> str:
    """Render an amount as e.g. "$1,234.5"; a trailing ".00" is dropped."""
    value = to_decimal(amount).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    symbol = CURRENCY_SYMBOLS.get((currency or "USD").upper(), "$")
    formatted = f"{value:,.2f}"
    if formatted.endswith(".00"):
        formatted = formatted[:-3]
    elif formatted.endswith("0") and "." in formatted:
        formatted = formatted[:-1]
    return f"{symbol}{formatted}"


def format_percent(value: Any, places: int = 1) -> str:
    return f"{float(to_decimal(value)):.{places}f}%"
