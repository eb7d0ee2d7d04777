from __future__ import annotations

import math

from cycle_system.utils.format import (
    format_compact,
    format_currency,
    format_date,
    format_number,
    format_percent,
    format_signed_int,
    round_half_up,
)


def test_format_currency() -> None:
    assert format_currency(512.5) == "$512.50"
    assert format_currency(43120.4) == "$43,120"
    assert format_currency(1000) == "$1,000"
    assert format_currency(math.nan) == "N/A"


def test_format_percent_always_signed() -> None:
    assert format_percent(12.34) == "+12.3%"
    assert format_percent(-3) == "-3.0%"
    assert format_percent(0) == "+0.0%"
    assert format_percent(7.0, 0) == "+7%"


def test_format_number() -> None:
    assert format_number(1.23456) == "1.23"
    assert format_number(1234.5, 1) == "1,234.5"


def test_format_compact() -> None:
    assert format_compact(152.3e9, prefix="$") == "$152.3B"
    assert format_compact(2.5e12, prefix="$") == "$2.5T"
    assert format_compact(1500) == "1.5K"
    assert format_compact(999) == "999"
    assert format_compact(4.2e6, suffix=" BTC") == "4.2M BTC"


def test_round_half_up() -> None:
    assert round_half_up(2.5) == 3
    assert round_half_up(3.5) == 4
    assert round_half_up(1.49) == 1
    assert round_half_up(-0.5) == 0


def test_format_signed_int() -> None:
    assert format_signed_int(2) == "+2"
    assert format_signed_int(0) == "+0"
    assert format_signed_int(-1) == "-1"


def test_format_date() -> None:
    assert format_date("2024-01-15") == "Jan 2024"
