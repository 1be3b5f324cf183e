"""Calendar month-key ("YYYY-MM") arithmetic."""

from __future__ import annotations

import re

import pandas as pd


MONTH_KEY_RE = re.compile(r"^\d{4}-\d{2}$")


def is_month_key(value: object) -> bool:
    if not isinstance(value, str) or not MONTH_KEY_RE.match(value):
        return False
    return 1 <= int(value[5:7]) <= 12


def _period(key: str) -> pd.Period:
    if not is_month_key(key):
        raise ValueError(f"Invalid month key: {key!r} (expected YYYY-MM)")
    return pd.Period(key, freq="M")


def parse_month_key(key: str) -> tuple[int, int]:
    p = _period(key)
    return int(p.year), int(p.month)


def to_month_key(year: int, month: int) -> str:
    return f"{int(year):04d}-{int(month):02d}"


def months_between(start: str, end: str) -> int:
    """Inclusive month count from ``start`` to ``end``; 0 when start is after end."""
    return max(0, _period(end).ordinal - _period(start).ordinal + 1)


def add_months(key: str, n: int) -> str:
    return (_period(key) + int(n)).strftime("%Y-%m")


def generate_month_range(start: str, end: str) -> list[str]:
    if months_between(start, end) <= 0:
        return []
    return list(pd.period_range(start=_period(start), end=_period(end), freq="M").strftime("%Y-%m"))


def format_month_label(key: str) -> str:
    """Format "2026-01" as "Jan 2026"."""
    return _period(key).strftime("%b %Y")


def current_month_key() -> str:
    return pd.Timestamp.now().strftime("%Y-%m")
