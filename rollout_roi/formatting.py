"""Currency, percent, and number string formatting for displays."""

from __future__ import annotations


def _signed(value: float, body: str) -> str:
    return f"-{body}" if value < 0 and body.strip("$0.,") else body


def format_currency(value: float) -> str:
    """Whole-dollar currency: 97425.4 -> "$97,425"."""
    v = float(value)
    return _signed(v, f"${abs(v):,.0f}")


def format_currency_decimals(value: float) -> str:
    """Currency with cents: 97425.4 -> "$97,425.40"."""
    v = float(value)
    return _signed(v, f"${abs(v):,.2f}")


def format_currency_k(value: float) -> str:
    """Abbreviated currency: 1_500_000 -> "$1.5M", 485_000 -> "$485.0K"."""
    v = float(value)
    if abs(v) >= 1_000_000:
        return _signed(v, f"${abs(v) / 1_000_000:.1f}M")
    if abs(v) >= 1_000:
        return _signed(v, f"${abs(v) / 1_000:.1f}K")
    return format_currency(v)


def format_percent(value: float) -> str:
    """Fraction as whole percent: 0.12 -> "12%"."""
    return f"{float(value) * 100:.0f}%"


def format_percent_decimal(value: float) -> str:
    return f"{float(value) * 100:.1f}%"


def format_number(value: float) -> str:
    """Comma-grouped number with at most one decimal: 1234.5 -> "1,234.5"."""
    text = f"{float(value):,.1f}"
    return text[:-2] if text.endswith(".0") else text


def format_month(month: int) -> str:
    return f"M{int(month)}"
