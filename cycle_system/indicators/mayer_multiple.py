"""
메이어 멀티플(Mayer Multiple) 지표.

[ 역할 ]
    core/indicator.py::Indicator의 구현체.
    "종가 / 200일 이동평균"으로 장기 추세선 대비 과열/침체 정도를 측정.

[ 시그널 ]
    < 0.8        → BUY   (200일선 대비 크게 할인)
    0.8 ~ 2.4    → NEUTRAL
    > 2.4        → SELL  (과열)

[ 백테스트 ]
    메이어 ≤ 0.6 인 날 (쿨다운 60일) → 6개월/12개월 뒤 수익률 (배열 오프셋 180/365)

[ 차트 ]
    연도별 최고 메이어 값을 막대로, 구간별 색상
"""

import math
from datetime import datetime, timezone

import numpy as np
import pandas as pd

from cycle_system.backtest.engine import BacktestConfig, columns, run_backtest
from cycle_system.backtest.returns import format_return, forward_return
from cycle_system.core.indicator import (
    ChartBar,
    ChartConfig,
    ChartDataSet,
    Indicator,
    IndicatorResult,
    Signal,
    classify,
)
from cycle_system.utils.format import format_currency, format_date, format_number
from cycle_system.utils.timeseries import sma

SMA_PERIOD = 200
BUY_THRESHOLD = 0.8
SELL_THRESHOLD = 2.4
BACKTEST_THRESHOLD = 0.6
BACKTEST_COOLDOWN = 60


def mayer_multiple(closes) -> np.ndarray:
    """일별 메이어 멀티플. SMA200이 없는 구간은 NaN."""
    closes = np.asarray(closes, dtype=float)
    sma200 = sma(closes, SMA_PERIOD)
    with np.errstate(divide="ignore", invalid="ignore"):
        return np.where(np.isnan(sma200) | (sma200 == 0), np.nan, closes / sma200)


def get_signal(value: float) -> Signal:
    return classify(value, buy=lambda v: v < BUY_THRESHOLD, sell=lambda v: v > SELL_THRESHOLD)


def get_bar_color(value: float) -> str:
    if value < BUY_THRESHOLD:
        return "#22c55e"
    if value > SELL_THRESHOLD:
        return "#ef4444"
    return "#eab308"


class MayerMultiple(Indicator):
    """메이어 멀티플 지표 구현체."""

    id = "mayer-multiple"
    name = "Mayer Multiple"
    description = "Distance from 200-day moving average"

    def calculate(self, prices: pd.DataFrame) -> IndicatorResult:
        if prices.empty:
            return self.empty_result()

        mayer = mayer_multiple(prices["close"])
        current = float(mayer[-1])

        # 연도별 최고값 막대
        bars: list[ChartBar] = []
        yearly: dict[int, list[float]] = {}
        for ts, value in zip(prices["timestamp"], mayer):
            if math.isnan(value):
                continue
            year = datetime.fromtimestamp(int(ts), tz=timezone.utc).year
            yearly.setdefault(year, []).append(float(value))
        for year, values in yearly.items():
            peak = max(values)
            bars.append(ChartBar(time=f"{year}-06-01", value=peak, color=get_bar_color(peak)))

        backtest = run_backtest(prices, mayer, BacktestConfig(
            title=f"Every time Mayer ≤ {BACKTEST_THRESHOLD}",
            columns=columns(
                ("date", "Date"),
                ("price", "Price"),
                ("mayer", "Mayer"),
                ("return6m", "6mo Return"),
                ("return12m", "12mo Return"),
            ),
            trigger=_trigger,
            enrich=_enrich,
            cooldown_periods=BACKTEST_COOLDOWN,
        ))

        return IndicatorResult(
            id=self.id,
            name=self.name,
            description=self.description,
            current_value=current,
            current_value_label=format_number(current),
            signal=get_signal(current),
            signal_rules=(
                f"Buy <{BUY_THRESHOLD} · Normal {BUY_THRESHOLD}–{SELL_THRESHOLD} · Sell >{SELL_THRESHOLD}"
            ),
            chart_data=ChartDataSet(bars=bars),
            chart_config=ChartConfig(type="bar"),
            backtest_title=backtest.title,
            backtest_columns=backtest.columns,
            backtest_rows=backtest.rows,
        )


def _trigger(prices: pd.DataFrame, i: int, computed: np.ndarray):
    value = computed[i]
    if math.isnan(value) or value > BACKTEST_THRESHOLD:
        return None
    return {
        "date": format_date(prices["date"].iat[i]),
        "price": format_currency(float(prices["close"].iat[i])),
        "mayer": format_number(float(value)),
    }


def _enrich(row: dict, i: int, prices: pd.DataFrame) -> dict:
    return {
        **row,
        "return6m": format_return(forward_return(prices, i, 180)),
        "return12m": format_return(forward_return(prices, i, 365)),
    }
