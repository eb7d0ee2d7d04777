from __future__ import annotations

import pandas as pd

from cycle_system.ingestion import yahoo_finance
from cycle_system.ingestion.yahoo_finance import fetch_btc_history, to_price_frame, validate_data


def _history(closes) -> pd.DataFrame:
    index = pd.date_range("2024-01-01", periods=len(closes), freq="D", tz="America/New_York", name="Date")
    return pd.DataFrame(
        {
            "Open": closes,
            "High": closes,
            "Low": closes,
            "Close": closes,
            "Adj Close": closes,
            "Volume": [1.0] * len(closes),
        },
        index=index,
    )


def test_to_price_frame_strips_timezone() -> None:
    frame = to_price_frame(_history([42000.0, 43000.0]))
    assert list(frame.columns) == ["timestamp", "date", "open", "high", "low", "close", "volume"]
    assert list(frame["date"]) == ["2024-01-01", "2024-01-02"]
    assert frame["timestamp"].iat[0] == 1704067200


def test_validate_rejects_non_positive_close() -> None:
    assert validate_data(to_price_frame(_history([1.0, 2.0])), "BTC-USD")
    assert not validate_data(to_price_frame(_history([1.0, 0.0])), "BTC-USD")
    assert not validate_data(pd.DataFrame(), "BTC-USD")


class _Ticker:
    def __init__(self, ticker):
        self.ticker = ticker

    def history(self, **kwargs):
        return _history([42000.0, 43000.0, 44000.0])


class _BrokenTicker(_Ticker):
    calls = 0

    def history(self, **kwargs):
        _BrokenTicker.calls += 1
        raise ConnectionError("rate limited")


def test_fetch_btc_history(monkeypatch) -> None:
    monkeypatch.setattr(yahoo_finance.yf, "Ticker", _Ticker)
    frame = fetch_btc_history(pd.Timestamp("2024-01-01").date())
    assert len(frame) == 3
    assert frame["close"].iat[-1] == 44000.0


def test_fetch_btc_history_gives_up_after_retries(monkeypatch) -> None:
    monkeypatch.setattr(yahoo_finance.yf, "Ticker", _BrokenTicker)
    result = fetch_btc_history(pd.Timestamp("2024-01-01").date(), max_retries=2, retry_delay=0)
    assert result is None
    assert _BrokenTicker.calls == 2
