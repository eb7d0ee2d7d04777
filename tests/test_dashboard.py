from __future__ import annotations

import json

import pandas as pd
import pytest

from cycle_system.core.indicator import Indicator, IndicatorResult, Signal
from cycle_system.dashboard import Dashboard
from cycle_system.data.market_data import CachedDataSource
from cycle_system.data.sample_data import SampleDataSource
from cycle_system.data.sources import CsvDataSource, StaticDataSource
from cycle_system.indicators import build_indicators, create_indicator, list_indicators
from cycle_system.indicators.mayer_multiple import MayerMultiple
from cycle_system.utils.config import Config, MiningCostConfig


class ExplodingIndicator(Indicator):
    id = "exploding"
    name = "Exploding"

    def calculate(self, prices: pd.DataFrame) -> IndicatorResult:
        raise RuntimeError("boom")


class BrokenBtcSource(StaticDataSource):
    def fetch_btc_history(self) -> pd.DataFrame:
        raise ConnectionError("no prices")


class CountingSource(StaticDataSource):
    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.calls = 0

    def fetch_dvol(self, days: int = 730) -> pd.DataFrame:
        self.calls += 1
        return super().fetch_dvol(days)


# ─── dashboard ──────────────────────────────────────────────────────────────

def test_failing_indicator_is_isolated(prices_factory) -> None:
    source = StaticDataSource({"btc": prices_factory([100.0] * 250)})
    report = Dashboard([ExplodingIndicator(source), MayerMultiple(source)], source).run()

    assert [r.id for r in report.results] == ["exploding", "mayer-multiple"]
    assert report.failures == {"exploding": "boom"}
    assert report.results[0].is_empty
    assert report.get("mayer-multiple").current_value_label == "1.00"
    assert report.last_updated == "2020-09-06"
    assert "[실패] exploding: boom" in report.summary()


def test_btc_fetch_failure_runs_with_empty_prices() -> None:
    source = BrokenBtcSource()
    report = Dashboard([MayerMultiple(source)], source).run()
    assert report.last_updated == ""
    assert report.failures == {}
    assert report.results[0].signal is Signal.NEUTRAL


def test_report_to_dict_is_json_serializable(prices_factory) -> None:
    source = StaticDataSource({"btc": prices_factory([100.0] * 10)})
    report = Dashboard([MayerMultiple(source)], source).run()
    payload = json.loads(json.dumps(report.to_dict()))
    assert payload["indicators"][0]["signal"] == "neutral"
    assert payload["indicators"][0]["current_value"] is None


def test_sample_source_runs_every_indicator() -> None:
    source = CachedDataSource(SampleDataSource(seed=1, days=1600))
    report = Dashboard(build_indicators(source), source).run()

    assert [r.id for r in report.results] == list_indicators()
    assert report.failures == {}
    assert report.get("cycle-composite").backtest_rows[-1]["ret1m"] == "—"


# ─── registry ───────────────────────────────────────────────────────────────

def test_indicator_order() -> None:
    assert list_indicators() == [
        "cycle-composite",
        "mayer-multiple",
        "200-week-ma",
        "stablecoin-supply",
        "binance-coinbase-gap",
        "bitfinex-longs",
        "deribit-options",
        "mining-cost",
        "realized-price",
    ]


def test_create_unknown_indicator() -> None:
    with pytest.raises(ValueError, match="알 수 없는 지표"):
        create_indicator("nvt-ratio")


def test_build_indicators_applies_config() -> None:
    config = Config(
        mining=MiningCostConfig(joules_per_th=18.0, electricity_rate=0.06),
        indicators={
            "mining-cost": {"electricity_rate": 0.04},
            "bitfinex-longs": {"days": 90},
        },
    )
    mining, longs, composite = build_indicators(
        None, config, ids=["mining-cost", "bitfinex-longs", "cycle-composite"]
    )

    assert mining.params == {"joules_per_th": 18.0, "electricity_rate": 0.04}
    assert longs.params == {"days": 90}
    assert composite.params["joules_per_th"] == 18.0
    assert composite.params["electricity_rate"] == 0.06
    assert composite.params["dvol_days"] == 730


# ─── data sources ───────────────────────────────────────────────────────────

def test_cached_source_fetches_once_per_argument(series_factory) -> None:
    inner = CountingSource({"dvol": series_factory("iv", [50.0] * 40)})
    source = CachedDataSource(inner)

    first = source.fetch_dvol(30)
    first["iv"] = 0.0
    again = source.fetch_dvol(30)
    source.fetch_dvol(10)

    assert inner.calls == 2
    assert len(again) == 30
    assert (again["iv"] == 50.0).all()

    source.clear_cache()
    source.fetch_dvol(30)
    assert inner.calls == 3


def test_static_source_limits_days(series_factory) -> None:
    source = StaticDataSource({"binance": series_factory("close", range(1, 11))})
    closes = source.fetch_binance_closes(days=3)
    assert list(closes["close"]) == [8.0, 9.0, 10.0]
    assert list(closes.index) == [0, 1, 2]
    assert source.fetch_coinbase_closes().empty


def test_csv_source(tmp_path) -> None:
    pd.DataFrame({"date": ["2024-01-02", "2024-01-01"], "iv": [55.0, 50.0]}).to_csv(
        tmp_path / "dvol.csv", index=False
    )
    (tmp_path / "options_summary.json").write_text(
        json.dumps({"put_call_ratio": 0.65, "total_open_interest": 4e5, "unknown": 1}),
        encoding="utf-8",
    )
    pd.DataFrame({
        "symbol": ["BTC", "ETH"],
        "price": [60000.0, 3000.0],
        "price_change_7d": [4.0, 8.0],
        "oi_history": ["", "1 2 3"],
    }).to_csv(tmp_path / "altcoins.csv", index=False)

    source = CsvDataSource(tmp_path)
    dvol = source.fetch_dvol()
    assert list(dvol["date"]) == ["2024-01-01", "2024-01-02"]
    assert dvol["timestamp"].iat[0] == 1704067200

    summary = source.fetch_options_summary()
    assert summary.put_call_ratio == 0.65

    snapshot = source.fetch_altcoin_snapshot()
    assert snapshot.btc_change_7d == 4.0
    assert [q.symbol for q in snapshot.quotes] == ["ETH"]
    assert snapshot.quotes[0].oi_history == [1.0, 2.0, 3.0]

    assert source.fetch_hashrate().empty
    assert source.fetch_korean_snapshot() == []
