"""Indicators that pull an auxiliary series from a DataSource."""
from __future__ import annotations

import math

import pandas as pd
import pytest

from cycle_system.core.data_source import OptionsSummary
from cycle_system.core.indicator import Signal
from cycle_system.data.sources import StaticDataSource
from cycle_system.indicators.bitfinex_longs import BitfinexLongs, format_longs, longs_change
from cycle_system.indicators.deribit_options import DeribitOptions
from cycle_system.indicators.exchange_gap import BinanceCoinbaseGap, compute_gap_series
from cycle_system.indicators.mining_cost import MiningCost, block_reward, estimate_mining_cost
from cycle_system.indicators.realized_price import RealizedPrice
from cycle_system.indicators.stablecoin_supply import StablecoinSupply


class FailingSource(StaticDataSource):
    def fetch_stablecoin_supply(self) -> pd.DataFrame:
        raise ConnectionError("upstream down")

    def fetch_binance_closes(self, days: int = 1000) -> pd.DataFrame:
        raise ConnectionError("upstream down")

    def fetch_hashrate(self) -> pd.DataFrame:
        raise TimeoutError("timeout")


# ─── stablecoin supply ──────────────────────────────────────────────────────

def _supply_path() -> list[float]:
    values = [100.0 + i for i in range(10)]   # ATH 109
    values += [100.0] * 5                      # >5% pullback
    values += [120.0]                          # new ATH after pullback -> event (index 15)
    values += [100.0] * 10                     # pullback
    values += [130.0]                          # new ATH inside cooldown -> no event, ATH still moves
    values += [130.0] * 73                     # flat, index 27..99
    values += [100.0] * 10                     # pullback below 130 * 0.95
    values += [140.0]                          # index 110, 95 days after last event -> event
    return values


def test_stablecoin_ath_after_pullback_backtest(prices_factory, series_factory) -> None:
    source = StaticDataSource({
        "btc": prices_factory([100.0] * 400),
        "stablecoin_supply": series_factory("supply", _supply_path()),
    })
    result = StablecoinSupply(source).calculate(source.fetch_btc_history())

    assert result.signal is Signal.BUY   # 140 vs 130 thirty days earlier
    assert result.current_value_label == "$140"
    assert result.backtest_columns == ["Date", "Supply", "BTC Price", "BTC 6mo Return"]
    assert [row["supply"] for row in result.backtest_rows] == ["$120", "$140"]
    assert all(row["btcReturn"] == "+0.0%" for row in result.backtest_rows)
    assert result.backtest_rows[0]["btcPrice"] == "$100.00"


def test_stablecoin_requires_btc_price_on_event_date(prices_factory, series_factory) -> None:
    source = StaticDataSource({"stablecoin_supply": series_factory("supply", _supply_path())})
    result = StablecoinSupply(source).calculate(prices_factory([]))
    assert result.backtest_rows == []


def test_stablecoin_source_failure_gives_empty_result(prices_factory) -> None:
    result = StablecoinSupply(FailingSource()).calculate(prices_factory([100.0] * 10))
    assert result.is_empty
    assert result.signal is Signal.NEUTRAL


def test_indicator_without_source_is_empty(prices_factory) -> None:
    assert StablecoinSupply().calculate(prices_factory([100.0])).is_empty


# ─── binance / coinbase gap ─────────────────────────────────────────────────

def test_gap_series_skips_unmatched_and_invalid_dates(series_factory) -> None:
    binance = series_factory("close", [100.0, 0.0, 100.0, 100.0])
    coinbase = series_factory("close", [100.5, 100.0, 0.0], start="2020-01-01")
    gaps = compute_gap_series(binance, coinbase)
    assert list(gaps["date"]) == ["2020-01-01"]
    assert gaps["gap"].iat[0] == pytest.approx(0.5)


def test_gap_signal_label_and_backtest(prices_factory, series_factory) -> None:
    source = StaticDataSource({
        "btc": prices_factory([100.0] * 200),
        "binance": series_factory("close", [100.0] * 30),
        "coinbase": series_factory("close", [100.3] * 30),
    })
    result = BinanceCoinbaseGap(source).calculate(source.fetch_btc_history())

    assert result.signal is Signal.BUY
    assert result.current_value_label == "+0.300%"
    assert len(result.backtest_rows) == 3   # days 0, 14, 28 with cooldown 14
    row = result.backtest_rows[0]
    assert row["gap"] == "0.30%"
    assert row["ret30"] == "+0.0%"
    assert row["ret90"] == "+0.0%"
    assert [line.color for line in result.chart_data.lines] == ["#3b82f6", "#f59e0b"]


def test_gap_negative_premium_is_sell(prices_factory, series_factory) -> None:
    source = StaticDataSource({
        "binance": series_factory("close", [100.0] * 5),
        "coinbase": series_factory("close", [99.9] * 5),
    })
    result = BinanceCoinbaseGap(source).calculate(prices_factory([]))
    assert result.signal is Signal.SELL
    assert result.current_value_label.startswith("-0.100")
    assert result.backtest_rows == []


def test_gap_missing_exchange_is_empty(prices_factory, series_factory) -> None:
    source = StaticDataSource({"binance": series_factory("close", [100.0] * 5)})
    assert BinanceCoinbaseGap(source).calculate(prices_factory([])).is_empty
    assert BinanceCoinbaseGap(FailingSource()).calculate(prices_factory([])).is_empty


# ─── bitfinex longs ─────────────────────────────────────────────────────────

def test_longs_change_uses_first_point_when_history_is_short() -> None:
    assert longs_change([100.0, 90.0]) == pytest.approx(-10.0)
    assert longs_change([100.0] * 10 + [200.0] * 30) == pytest.approx(100.0)
    assert longs_change([0.0, 50.0]) == 0.0


def test_format_longs() -> None:
    assert format_longs(12345) == "12.3K BTC"
    assert format_longs(512) == "512 BTC"


def test_longs_signal_thresholds_are_strict(prices_factory, series_factory) -> None:
    neutral = StaticDataSource({"bitfinex_longs": series_factory("longs", [100.0, 90.0])})
    sell = StaticDataSource({"bitfinex_longs": series_factory("longs", [100.0, 80.0])})
    assert BitfinexLongs(neutral).calculate(prices_factory([])).signal is Signal.NEUTRAL
    assert BitfinexLongs(sell).calculate(prices_factory([])).signal is Signal.SELL


def test_longs_single_point_is_empty(prices_factory, series_factory) -> None:
    source = StaticDataSource({"bitfinex_longs": series_factory("longs", [100.0])})
    assert BitfinexLongs(source).calculate(prices_factory([])).is_empty


def test_longs_spike_backtest(prices_factory, series_factory) -> None:
    source = StaticDataSource({
        "btc": prices_factory([100.0] * 400),
        "bitfinex_longs": series_factory("longs", [100.0] * 40 + [120.0]),
    })
    result = BitfinexLongs(source).calculate(source.fetch_btc_history())
    assert len(result.backtest_rows) == 1
    row = result.backtest_rows[0]
    assert row["deviation"] == "+19%"
    assert row["longs"] == "120 BTC"
    assert row["btcReturn"] == "+0.0%"


# ─── deribit options ────────────────────────────────────────────────────────

def test_deribit_pcr_signal_and_dvol_backtest(prices_factory, series_factory) -> None:
    source = StaticDataSource(
        {
            "btc": prices_factory([100.0] * 200),
            "dvol": series_factory("iv", [50.0] * 10 + [60.0] * 20),
        },
        options_summary=OptionsSummary(put_call_ratio=0.8, total_open_interest=350000),
    )
    result = DeribitOptions(source).calculate(source.fetch_btc_history())

    assert result.signal is Signal.BUY
    assert result.current_value_label == "PCR 0.80"
    assert "OI 350.0K BTC" in result.description
    assert len(result.backtest_rows) == 1
    row = result.backtest_rows[0]
    assert row["dvol"] == "60.0%"
    assert row["change"] == "+10.0 pts"
    assert row["btcReturn"] == "+0.0%"


def test_deribit_low_pcr_is_sell(prices_factory) -> None:
    source = StaticDataSource(options_summary=OptionsSummary(put_call_ratio=0.35))
    assert DeribitOptions(source).calculate(prices_factory([])).signal is Signal.SELL


def test_deribit_missing_summary_is_neutral(prices_factory, series_factory) -> None:
    source = StaticDataSource({"dvol": series_factory("iv", [50.0] * 10)})
    result = DeribitOptions(source).calculate(prices_factory([]))
    assert result.signal is Signal.NEUTRAL
    assert result.current_value_label == "N/A"
    assert len(result.chart_data.lines[0].data) == 10


def test_deribit_nothing_available_is_empty(prices_factory) -> None:
    assert DeribitOptions(StaticDataSource()).calculate(prices_factory([])).is_empty


# ─── mining cost ────────────────────────────────────────────────────────────

def test_block_reward_follows_halvings() -> None:
    assert block_reward("2012-11-27") == 50.0
    assert block_reward("2012-11-28") == 25.0
    assert block_reward("2020-05-10") == 12.5
    assert block_reward("2020-05-11") == 6.25
    assert block_reward("2024-04-20") == 3.125


def test_estimate_mining_cost(series_factory) -> None:
    hashrate = series_factory("hashrate", [6e8], start="2024-05-01")
    cost = estimate_mining_cost(hashrate)["cost"].iat[0]
    # 6e8 TH/s * 25 J/TH * 24h / 1000 * $0.05 / (144 * 3.125)
    assert cost == pytest.approx(40000.0)

    cheaper = estimate_mining_cost(hashrate, joules_per_th=12.5)["cost"].iat[0]
    assert cheaper == pytest.approx(20000.0)


def test_mining_cost_signal_and_backtest(prices_factory, series_factory) -> None:
    source = StaticDataSource({
        "btc": prices_factory([44000.0] * 300, start="2024-05-01"),
        "hashrate": series_factory("hashrate", [6e8, 6e8], start="2024-05-01"),
    })
    result = MiningCost(source).calculate(source.fetch_btc_history())

    assert result.signal is Signal.BUY
    assert result.current_value_label == "$40,000"
    assert "1.1x" in result.description
    assert len(result.backtest_rows) == 1
    row = result.backtest_rows[0]
    assert row["ratio"] == "1.10x"
    assert row["cost"] == "$40,000"
    assert row["ret6m"] == "+0.0%"


def test_mining_cost_needs_two_points(prices_factory, series_factory) -> None:
    source = StaticDataSource({"hashrate": series_factory("hashrate", [6e8])})
    assert MiningCost(source).calculate(prices_factory([100.0])).is_empty
    assert MiningCost(FailingSource()).calculate(prices_factory([100.0])).is_empty


# ─── realized price ─────────────────────────────────────────────────────────

def test_realized_price_mvrv_and_backtest(prices_factory, series_factory) -> None:
    source = StaticDataSource({
        "btc": prices_factory([100.0] * 401, start="2012-01-01"),
        "realized_price": series_factory("realized_price", [90.0], start="2012-01-01"),
    })
    result = RealizedPrice(source).calculate(source.fetch_btc_history())

    assert result.signal is Signal.NEUTRAL
    assert result.current_value_label == "$90.00 (MVRV 1.11)"
    # MVRV 1.11 < 1.2 every day: one event per 90-day cooldown
    assert len(result.backtest_rows) == 5
    assert result.backtest_rows[0]["realized"] == "$90.00"
    assert result.backtest_rows[-1]["return6m"] == "?"

    price_line = result.chart_data.lines[0]
    assert price_line.data[-1].time == "2013-02-04"


def test_realized_price_unknown_before_first_sample(prices_factory, series_factory) -> None:
    source = StaticDataSource({
        "realized_price": series_factory("realized_price", [110.0], start="2012-02-01"),
    })
    prices = prices_factory([100.0] * 60, start="2012-01-01")
    result = RealizedPrice(source).calculate(prices)
    assert result.signal is Signal.BUY   # MVRV 0.91
    assert result.backtest_rows[0]["date"] == "Feb 2012"


def test_realized_price_before_2012_never_triggers(prices_factory, series_factory) -> None:
    source = StaticDataSource({
        "realized_price": series_factory("realized_price", [90.0], start="2011-01-01"),
    })
    result = RealizedPrice(source).calculate(prices_factory([100.0] * 100, start="2011-01-01"))
    assert result.backtest_rows == []
    assert not math.isnan(result.metadata["mvrv"])


def test_mining_cost_blank_latest_hashrate_is_not_available(prices_factory, series_factory) -> None:
    source = StaticDataSource({
        "btc": prices_factory([44000.0] * 10, start="2024-05-01"),
        "hashrate": series_factory("hashrate", [6e8, math.nan], start="2024-05-01"),
    })
    result = MiningCost(source).calculate(source.fetch_btc_history())

    assert result.current_value_label == "N/A"
    assert result.signal is Signal.NEUTRAL
    assert "Price/Cost: N/A" in result.description
    assert len(result.backtest_rows) == 1
    assert result.backtest_rows[0]["cost"] == "$40,000"
