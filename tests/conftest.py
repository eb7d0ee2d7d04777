from __future__ import annotations

from typing import Sequence

import numpy as np
import pandas as pd
import pytest


def _timestamps(dates: pd.DatetimeIndex) -> np.ndarray:
    return np.asarray((dates - pd.Timestamp("1970-01-01")) // pd.Timedelta(seconds=1), dtype="int64")


def make_prices(closes: Sequence[float], start: str = "2020-01-01") -> pd.DataFrame:
    """Daily BTC frame with one row per calendar day."""
    closes = np.asarray(closes, dtype=float)
    dates = pd.date_range(start=start, periods=len(closes), freq="D")
    return pd.DataFrame({
        "timestamp": _timestamps(dates),
        "date": dates.strftime("%Y-%m-%d"),
        "open": closes,
        "high": closes,
        "low": closes,
        "close": closes,
        "volume": np.ones(len(closes)),
    })


def make_series(column: str, values: Sequence[float], start: str = "2020-01-01", step_days: int = 1) -> pd.DataFrame:
    """Auxiliary series frame: timestamp, date, <column>."""
    dates = pd.date_range(start=start, periods=len(values), freq=f"{step_days}D")
    return pd.DataFrame({
        "timestamp": _timestamps(dates),
        "date": dates.strftime("%Y-%m-%d"),
        column: np.asarray(values, dtype=float),
    })


@pytest.fixture
def flat_prices() -> pd.DataFrame:
    return make_prices([100.0] * 400)


@pytest.fixture
def prices_factory():
    return make_prices


@pytest.fixture
def series_factory():
    return make_series
