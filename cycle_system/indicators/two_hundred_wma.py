"""
200주 이동평균(200-Week MA) 지표.

[ 역할 ]
    core/indicator.py::Indicator의 구현체.
    일봉을 주봉으로 리샘플한 뒤 200주 SMA를 구해 장기 사이클 바닥선으로 사용.

[ 시그널 ]
    종가 ≤ 200WMA          → BUY   (사이클 바닥권)
    종가 / 200WMA > 3      → SELL
    그 외                  → NEUTRAL

[ 백테스트 ]
    주봉 종가가 200WMA ±5% 이내 (쿨다운 52주, 약 1년)
    보강: ±10% 밴드에 머문 주 수, 이후 52주 내 최고가까지의 수익률
    마지막 이벤트가 최신 주봉보다 이전 연도이면 "현재 상태" 행을 덧붙인다.
"""

import math
from functools import partial

import numpy as np
import pandas as pd

from cycle_system.backtest.engine import BacktestConfig, columns, run_backtest
from cycle_system.core.indicator import (
    ChartConfig,
    ChartDataSet,
    ChartLine,
    ChartPoint,
    Indicator,
    IndicatorResult,
    Signal,
)
from cycle_system.utils.format import (
    NOT_AVAILABLE,
    format_currency,
    format_date,
    format_percent,
    round_half_up,
)
from cycle_system.utils.timeseries import resample_weekly, sma

WMA_PERIOD = 200
TOUCH_THRESHOLD = 0.05   # 200WMA ±5%
SELL_RATIO = 3
BACKTEST_COOLDOWN = 52   # 주봉 기준 약 1년
LOOKAHEAD_WEEKS = 52


def get_signal(price: float, wma: float) -> Signal:
    if math.isnan(wma) or wma <= 0:
        return Signal.NEUTRAL
    if price <= wma:
        return Signal.BUY
    if price / wma > SELL_RATIO:
        return Signal.SELL
    return Signal.NEUTRAL


def time_near_label(weeks: int) -> str:
    """밴드 체류 기간 표기."""
    if weeks <= 1:
        return "Days"
    if weeks <= 4:
        return f"{weeks} weeks"
    return f"{round_half_up(weeks / 4)} months"


class TwoHundredWMA(Indicator):
    """200주 이동평균 지표 구현체."""

    id = "200-week-ma"
    name = "200-Week Moving Average"
    description = "Long-term cycle floor indicator"

    def calculate(self, prices: pd.DataFrame) -> IndicatorResult:
        if prices.empty:
            return self.empty_result()

        weekly = resample_weekly(prices)
        closes = weekly["close"].to_numpy(dtype=float)
        wma200 = sma(closes, WMA_PERIOD)

        current_wma = float(wma200[-1])
        current_price = float(closes[-1])

        price_line = ChartLine(label="BTC Price", color="#e4e4e7")
        wma_line = ChartLine(label="200-Week MA", color="#22d3ee")
        for d, close, wma in zip(weekly["date"], closes, wma200):
            price_line.data.append(ChartPoint(time=d, value=float(close)))
            if not math.isnan(wma):
                wma_line.data.append(ChartPoint(time=d, value=float(wma)))

        backtest = run_backtest(weekly, wma200, BacktestConfig(
            title="Every time BTC touched 200WMA",
            columns=columns(
                ("date", "Date"),
                ("wma", "200WMA"),
                ("timeNear", "Time There"),
                ("returnFromTouch", "Return From Touch"),
            ),
            trigger=_trigger,
            enrich=partial(_enrich, wma=wma200),
            cooldown_periods=BACKTEST_COOLDOWN,
        ))

        rows = list(backtest.rows)
        if not math.isnan(current_wma) and current_wma > 0:
            last_year = int(str(rows[-1]["date"]).split(" ")[-1]) if rows else 0
            latest_date = str(weekly["date"].iat[-1])
            # 최근 연도에 터치 이벤트가 없으면 현재 위치를 보여준다
            if int(latest_date[:4]) > last_year:
                distance = round_half_up((current_price - current_wma) / current_wma * 100)
                rows.append({
                    "date": format_date(latest_date),
                    "wma": format_currency(round_half_up(current_wma)),
                    "timeNear": f"{distance}% above" if distance >= 0 else f"{abs(distance)}% below",
                    "returnFromTouch": (
                        "Active" if current_price <= current_wma * (1 + TOUCH_THRESHOLD)
                        else "Not yet touched"
                    ),
                })

        label = (
            NOT_AVAILABLE if math.isnan(current_wma)
            else format_currency(round_half_up(current_wma))
        )

        return IndicatorResult(
            id=self.id,
            name=self.name,
            description=self.description,
            current_value=current_wma,
            current_value_label=label,
            signal=get_signal(current_price, current_wma),
            signal_rules=f"At/below 200WMA = cycle floor · >{SELL_RATIO}x = overheated",
            chart_data=ChartDataSet(lines=[price_line, wma_line]),
            chart_config=ChartConfig(type="line+line", log_scale=True),
            backtest_title=backtest.title,
            backtest_columns=backtest.columns,
            backtest_rows=rows,
            metadata={"weekly_points": len(weekly)},
        )


def _ratio(weekly: pd.DataFrame, wma: np.ndarray, i: int) -> float:
    if math.isnan(wma[i]) or wma[i] == 0:
        return math.nan
    return float(weekly["close"].iat[i]) / float(wma[i])


def _trigger(weekly: pd.DataFrame, i: int, computed: np.ndarray):
    ratio = _ratio(weekly, computed, i)
    if math.isnan(ratio):
        return None
    if ratio > 1 + TOUCH_THRESHOLD or ratio < 1 - TOUCH_THRESHOLD:
        return None
    return {
        "date": format_date(weekly["date"].iat[i]),
        "wma": format_currency(round_half_up(float(computed[i]))),
    }


def _enrich(row: dict, i: int, weekly: pd.DataFrame, wma: np.ndarray) -> dict:
    closes = weekly["close"]

    # ±10% 밴드 안에 머문 주 수
    weeks_near = 0
    for j in range(i, len(weekly)):
        ratio = _ratio(weekly, wma, j)
        if math.isnan(ratio) or ratio > 1 + TOUCH_THRESHOLD * 2 or ratio < 1 - TOUCH_THRESHOLD * 2:
            break
        weeks_near += 1

    # 터치 이후 52주 내 최고가
    start = float(closes.iat[i])
    window = closes.iloc[i:min(i + LOOKAHEAD_WEEKS, len(weekly))]
    max_price = max(start, float(window.max()))
    return_pct = (max_price - start) / start * 100

    return {
        **row,
        "timeNear": time_near_label(weeks_near),
        "returnFromTouch": f"{format_percent(return_pct, 0)} → {format_currency(round_half_up(max_price))}",
    }
