from __future__ import annotations

import math

import numpy as np
import pytest

from cycle_system.backtest.engine import BacktestConfig, columns, run_backtest
from cycle_system.backtest.returns import (
    close_by_date,
    format_return,
    forward_return,
    forward_return_by_date,
    index_by_date,
)


def _config(fire_at: set[int], cooldown: int, enrich=None) -> BacktestConfig:
    def trigger(frame, i, computed):
        return {"i": i} if i in fire_at else None

    return BacktestConfig(
        title="test",
        columns=columns(("i", "Index"), ("extra", "Extra")),
        trigger=trigger,
        enrich=enrich,
        cooldown_periods=cooldown,
    )


def test_cooldown_is_enforced_in_index_space(prices_factory) -> None:
    prices = prices_factory([1.0] * 20)
    table = run_backtest(prices, np.zeros(20), _config({0, 1, 2, 10, 11}, cooldown=5))
    assert [row["i"] for row in table.rows] == [0, 10]
    assert table.columns == ["Index", "Extra"]
    assert table.title == "test"


def test_cooldown_counts_from_last_trigger_not_last_candidate(prices_factory) -> None:
    prices = prices_factory([1.0] * 20)
    table = run_backtest(prices, np.zeros(20), _config({0, 4, 5, 9}, cooldown=5))
    assert [row["i"] for row in table.rows] == [0, 5]


def test_enrich_receives_trigger_index(prices_factory) -> None:
    prices = prices_factory([1.0] * 10)
    seen = []

    def enrich(row, i, frame):
        seen.append(i)
        return {**row, "extra": len(frame) - i}

    table = run_backtest(prices, np.zeros(10), _config({3}, cooldown=1, enrich=enrich))
    assert seen == [3]
    assert table.rows == [{"i": 3, "extra": 7}]


def test_length_mismatch_raises(prices_factory) -> None:
    with pytest.raises(ValueError):
        run_backtest(prices_factory([1.0] * 5), np.zeros(4), _config(set(), cooldown=1))


def test_empty_frame_gives_no_rows(prices_factory) -> None:
    table = run_backtest(prices_factory([]), np.zeros(0), _config({0}, cooldown=1))
    assert table.rows == []


def test_forward_return_array_offset(prices_factory) -> None:
    prices = prices_factory([100.0, 110.0, 120.0])
    assert forward_return(prices, 0, 2) == pytest.approx(20.0)
    assert math.isnan(forward_return(prices, 1, 2))


def test_forward_return_by_date_needs_both_prices(prices_factory) -> None:
    prices = prices_factory([100.0, 0.0, 150.0], start="2021-03-01")
    closes = close_by_date(prices)
    assert forward_return_by_date(closes, "2021-03-01", 2) == pytest.approx(50.0)
    assert math.isnan(forward_return_by_date(closes, "2021-03-01", 1))
    assert math.isnan(forward_return_by_date(closes, "2021-03-02", 1))
    assert math.isnan(forward_return_by_date(closes, "2021-03-03", 30))


def test_index_by_date(prices_factory) -> None:
    prices = prices_factory([1.0, 2.0], start="2021-03-01")
    assert index_by_date(prices) == {"2021-03-01": 0, "2021-03-02": 1}


def test_format_return() -> None:
    assert format_return(math.nan) == "?"
    assert format_return(12.34) == "+12.3%"
    assert format_return(-5.0) == "-5.0%"
