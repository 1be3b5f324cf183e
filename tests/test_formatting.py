from __future__ import annotations

from rollout_roi.formatting import (
    format_currency,
    format_currency_decimals,
    format_currency_k,
    format_month,
    format_number,
    format_percent,
    format_percent_decimal,
)


def test_currency_formats():
    assert format_currency(97425.4) == "$97,425"
    assert format_currency(-1500) == "-$1,500"
    assert format_currency(-0.2) == "$0"
    assert format_currency_decimals(97425.4) == "$97,425.40"
    assert format_currency_decimals(-3.5) == "-$3.50"


def test_abbreviated_currency():
    assert format_currency_k(1_500_000) == "$1.5M"
    assert format_currency_k(485_000) == "$485.0K"
    assert format_currency_k(-2_500) == "-$2.5K"
    assert format_currency_k(999) == "$999"


def test_percent_and_number_formats():
    assert format_percent(0.12) == "12%"
    assert format_percent_decimal(0.125) == "12.5%"
    assert format_number(1234.5) == "1,234.5"
    assert format_number(100) == "100"
    assert format_month(7) == "M7"
