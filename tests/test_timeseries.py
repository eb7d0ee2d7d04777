from __future__ import annotations

import math

import numpy as np
import pytest

from cycle_system.utils.timeseries import (
    align_to_dates,
    rate_of_change,
    resample_weekly,
    shift_date,
    sma,
    z_score,
)


def test_sma_marks_warmup_as_nan() -> None:
    result = sma([1, 2, 3, 4, 5], 3)
    assert math.isnan(result[0]) and math.isnan(result[1])
    assert list(result[2:]) == pytest.approx([2.0, 3.0, 4.0])


def test_sma_same_length_and_period_one_is_identity() -> None:
    values = [5.0, 7.0, 9.0]
    assert list(sma(values, 1)) == values
    assert len(sma(values, 10)) == 3
    assert np.isnan(sma(values, 10)).all()


def test_sma_rejects_non_positive_period() -> None:
    with pytest.raises(ValueError):
        sma([1, 2, 3], 0)


def test_rate_of_change() -> None:
    result = rate_of_change([100, 110, 121], 1)
    assert math.isnan(result[0])
    assert list(result[1:]) == pytest.approx([10.0, 10.0])


def test_rate_of_change_nan_when_base_not_positive() -> None:
    result = rate_of_change([0, 50, 100], 1)
    assert math.isnan(result[1])
    assert result[2] == pytest.approx(100.0)


def test_z_score_short_or_flat_window_is_zero() -> None:
    assert z_score([1, 2, 3, 4]) == 0.0
    assert z_score([7, 7, 7, 7, 7]) == 0.0


def test_z_score_uses_population_stddev() -> None:
    assert z_score([1, 2, 3, 4, 5]) == pytest.approx(2 / math.sqrt(2))


def test_resample_weekly_keeps_last_day_of_each_epoch_week(prices_factory) -> None:
    # 2020-01-01 is a Wednesday; epoch weeks roll over on Thursdays
    prices = prices_factory(range(1, 15), start="2020-01-01")
    weekly = resample_weekly(prices)
    assert list(weekly["date"]) == ["2020-01-01", "2020-01-08", "2020-01-14"]
    assert list(weekly["close"]) == [1.0, 8.0, 14.0]
    assert list(weekly.index) == [0, 1, 2]


def test_resample_weekly_empty(prices_factory) -> None:
    assert resample_weekly(prices_factory([])).empty


def test_align_to_dates_with_and_without_forward_fill() -> None:
    dates = ["a", "b", "c", "d"]
    values = {"b": 5.0, "c": 0.0}

    plain = align_to_dates(dates, values)
    assert math.isnan(plain[0]) and math.isnan(plain[3])
    assert plain[1] == 5.0 and plain[2] == 0.0

    filled = align_to_dates(dates, values, forward_fill=True)
    assert math.isnan(filled[0])
    assert list(filled[1:]) == [5.0, 5.0, 5.0]


def test_shift_date_crosses_month_and_leap_day() -> None:
    assert shift_date("2020-02-28", 2) == "2020-03-01"
    assert shift_date("2021-01-31", -31) == "2020-12-31"
