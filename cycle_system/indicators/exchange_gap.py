"""
바이낸스-코인베이스 가격 갭(Coinbase Premium) 지표.

[ 역할 ]
    core/indicator.py::Indicator의 구현체.
    같은 날짜의 코인베이스 종가와 바이낸스 종가 차이(%)로 미국 현물 수요를 측정.
    gap = (coinbase - binance) / binance × 100

[ 시그널 ]
    gap >  0.1%    → BUY   (미국 매수세 우위)
    gap < -0.05%   → SELL

[ 백테스트 ]
    gap ≥ 0.2% 인 날 (쿨다운 14일, 갭 시계열 인덱스 기준)
    → 해당 날짜의 BTC 일봉 인덱스에서 30/90 오프셋 수익률
"""

import math
from functools import partial

import numpy as np
import pandas as pd

from cycle_system.backtest.engine import BacktestConfig, columns, run_backtest
from cycle_system.backtest.returns import close_by_date, format_return, forward_return, index_by_date
from cycle_system.core.indicator import (
    ChartConfig,
    ChartDataSet,
    ChartLine,
    ChartPoint,
    Indicator,
    IndicatorResult,
    Signal,
    classify,
)
from cycle_system.utils.format import format_currency, format_date
from cycle_system.utils.timeseries import sma

BULLISH_THRESHOLD = 0.1
BEARISH_THRESHOLD = -0.05
BACKTEST_THRESHOLD = 0.2
BACKTEST_COOLDOWN = 14
SMA_PERIOD = 7


def get_signal(gap: float) -> Signal:
    return classify(gap, buy=lambda v: v > BULLISH_THRESHOLD, sell=lambda v: v < BEARISH_THRESHOLD)


def compute_gap_series(binance: pd.DataFrame, coinbase: pd.DataFrame) -> pd.DataFrame:
    """두 거래소 종가를 날짜로 맞춰 gap(%) 시계열 생성.

    코인베이스 종가가 없거나 0인 날, 바이낸스 종가가 0 이하인 날은 제외.

    Returns:
        DataFrame: date, binance, coinbase, gap
    """
    cb_by_date = dict(zip(coinbase["date"], coinbase["close"].astype(float)))
    records = []
    for d, bn in zip(binance["date"], binance["close"].astype(float)):
        cb = cb_by_date.get(d)
        if not cb or bn <= 0:
            continue
        records.append({
            "date": d,
            "binance": bn,
            "coinbase": cb,
            "gap": (cb - bn) / bn * 100,
        })
    return pd.DataFrame(records, columns=["date", "binance", "coinbase", "gap"])


class BinanceCoinbaseGap(Indicator):
    """바이낸스-코인베이스 갭 지표 구현체."""

    id = "binance-coinbase-gap"
    name = "Binance–Coinbase Gap"
    description = "Coinbase premium over Binance (US spot demand)"

    DEFAULT_PARAMS = {"days": 1000}

    def calculate(self, prices: pd.DataFrame) -> IndicatorResult:
        source = self._require_source()
        if source is None:
            return self.empty_result()

        days = int(self.params["days"])
        binance = self._fetch("binance closes", source.fetch_binance_closes, days)
        coinbase = self._fetch("coinbase closes", source.fetch_coinbase_closes, days)
        if binance is None or coinbase is None or binance.empty or coinbase.empty:
            return self.empty_result()

        gaps = compute_gap_series(binance, coinbase)
        if gaps.empty:
            return self.empty_result()

        values = gaps["gap"].to_numpy(dtype=float)
        sma7 = sma(values, SMA_PERIOD)
        current = float(values[-1])

        gap_line = ChartLine(label="CB Premium %", color="#3b82f6")
        sma_line = ChartLine(label="7-day SMA", color="#f59e0b")
        for d, value, avg in zip(gaps["date"], values, sma7):
            gap_line.data.append(ChartPoint(time=d, value=float(value)))
            if not math.isnan(avg):
                sma_line.data.append(ChartPoint(time=d, value=float(avg)))

        backtest = run_backtest(gaps, values, BacktestConfig(
            title=f"Every time CB premium ≥ {BACKTEST_THRESHOLD}%",
            columns=columns(
                ("date", "Date"),
                ("gap", "Gap"),
                ("btcPrice", "BTC Price"),
                ("ret30", "1mo Return"),
                ("ret90", "3mo Return"),
            ),
            trigger=partial(_trigger, btc=close_by_date(prices)),
            enrich=partial(_enrich, prices=prices, btc_index=index_by_date(prices)),
            cooldown_periods=BACKTEST_COOLDOWN,
        ))

        sign = "+" if current >= 0 else ""
        return IndicatorResult(
            id=self.id,
            name=self.name,
            description=self.description,
            current_value=current,
            current_value_label=f"{sign}{current:.3f}%",
            signal=get_signal(current),
            signal_rules=(
                f"Premium >{BULLISH_THRESHOLD}% = US buying · <{BEARISH_THRESHOLD}% = US selling"
            ),
            chart_data=ChartDataSet(lines=[gap_line, sma_line]),
            chart_config=ChartConfig(type="line+line", log_scale=False),
            backtest_title=backtest.title,
            backtest_columns=backtest.columns,
            backtest_rows=backtest.rows,
            metadata={"aligned_days": len(gaps)},
        )


def _trigger(gaps: pd.DataFrame, i: int, computed: np.ndarray, btc: dict[str, float]):
    gap = computed[i]
    if gap < BACKTEST_THRESHOLD:
        return None
    d = gaps["date"].iat[i]
    btc_price = btc.get(d)
    if not btc_price:
        return None
    return {
        "date": format_date(d),
        "gap": f"{gap:.2f}%",
        "btcPrice": format_currency(btc_price),
    }


def _enrich(
    row: dict,
    i: int,
    gaps: pd.DataFrame,
    prices: pd.DataFrame,
    btc_index: dict[str, int],
) -> dict:
    idx = btc_index[gaps["date"].iat[i]]
    return {
        **row,
        "ret30": format_return(forward_return(prices, idx, 30)),
        "ret90": format_return(forward_return(prices, idx, 90)),
    }
