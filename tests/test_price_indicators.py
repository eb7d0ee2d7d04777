"""Indicators computed from BTC price history alone (Mayer Multiple, 200-week MA)."""
from __future__ import annotations

import math

import numpy as np
import pytest

from cycle_system.core.indicator import Signal
from cycle_system.indicators.mayer_multiple import MayerMultiple, get_bar_color, mayer_multiple
from cycle_system.indicators.two_hundred_wma import TwoHundredWMA, get_signal, time_near_label


def test_mayer_multiple_series_nan_during_warmup() -> None:
    values = mayer_multiple([100.0] * 201)
    assert np.isnan(values[:199]).all()
    assert values[199] == pytest.approx(1.0)


def test_mayer_insufficient_history_is_neutral(prices_factory) -> None:
    result = MayerMultiple().calculate(prices_factory([100.0] * 150))
    assert result.signal is Signal.NEUTRAL
    assert result.current_value_label == "N/A"
    assert result.backtest_rows == []


def test_mayer_ramp_then_plateau_is_neutral(prices_factory) -> None:
    closes = list(np.linspace(10000, 50000, 150)) + [50000.0] * 50
    result = MayerMultiple().calculate(prices_factory(closes))
    assert result.current_value == pytest.approx(50000 / 35000)
    assert result.current_value_label == "1.43"
    assert result.signal is Signal.NEUTRAL


def test_mayer_deep_discount_is_buy(prices_factory) -> None:
    result = MayerMultiple().calculate(prices_factory([100.0] * 200 + [70.0]))
    assert result.current_value == pytest.approx(70 / 99.85)
    assert result.signal is Signal.BUY


def test_mayer_backtest_rows_and_yearly_bars(prices_factory) -> None:
    # 200 days at 100, then a long stretch at 40: Mayer <= 0.6 on day 200 and again after cooldown
    result = MayerMultiple().calculate(prices_factory([100.0] * 200 + [40.0] * 400))

    assert len(result.backtest_rows) == 2
    first, second = result.backtest_rows
    assert first["date"] == "Jul 2020"
    assert first["price"] == "$40.00"
    assert first["return6m"] == "+0.0%"
    assert first["return12m"] == "+0.0%"
    assert second["return12m"] == "?"
    assert result.backtest_columns == ["Date", "Price", "Mayer", "6mo Return", "12mo Return"]

    bars = result.chart_data.bars
    assert [b.time for b in bars] == ["2020-06-01", "2021-06-01"]
    assert bars[0].color == get_bar_color(bars[0].value)


def test_bar_colors() -> None:
    assert get_bar_color(0.5) == "#22c55e"
    assert get_bar_color(1.0) == "#eab308"
    assert get_bar_color(3.0) == "#ef4444"


def test_wma_signal_rules() -> None:
    assert get_signal(100, 100) is Signal.BUY
    assert get_signal(301, 100) is Signal.SELL
    assert get_signal(200, 100) is Signal.NEUTRAL
    assert get_signal(100, math.nan) is Signal.NEUTRAL


def test_time_near_label() -> None:
    assert time_near_label(1) == "Days"
    assert time_near_label(3) == "3 weeks"
    assert time_near_label(10) == "3 months"


def test_wma_insufficient_history(prices_factory) -> None:
    result = TwoHundredWMA().calculate(prices_factory([100.0] * 500))
    assert result.current_value_label == "N/A"
    assert result.signal is Signal.NEUTRAL
    assert result.backtest_rows == []


def test_wma_touch_and_current_state_row(prices_factory) -> None:
    result = TwoHundredWMA().calculate(prices_factory([100.0] * 1500, start="2016-01-01"))

    assert result.signal is Signal.BUY
    assert result.current_value_label == "$100.00"
    assert result.chart_config.log_scale is True

    rows = result.backtest_rows
    assert len(rows) == 2
    assert rows[0]["date"] == "Oct 2019"
    assert rows[0]["returnFromTouch"] == "+0% → $100.00"
    assert rows[1]["date"] == "Feb 2020"
    assert rows[1]["timeNear"] == "0% above"
    assert rows[1]["returnFromTouch"] == "Active"


def test_wma_empty_prices(prices_factory) -> None:
    assert TwoHundredWMA().calculate(prices_factory([])).is_empty
