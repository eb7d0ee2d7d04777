"""
실현가격(Realized Price) 지표.

[ 역할 ]
    core/indicator.py::Indicator의 구현체.
    온체인 평균 취득단가(실현가격)를 BTC 일봉 날짜에 맞춰 앞으로 채운 뒤
    MVRV(= 종가 / 실현가격)로 가치 구간을 판단.

[ 시그널 ]
    MVRV ≤ 1.0   → BUY   (실현가격 이하, 깊은 저평가)
    MVRV ≥ 3.5   → SELL

[ 백테스트 ]
    MVRV < 1.2 인 날, 2012-01-01 이후 (쿨다운 90일)
    → 6개월/12개월 뒤 수익률 (배열 오프셋 180/365)
"""

import math
from functools import partial

import numpy as np
import pandas as pd

from cycle_system.backtest.engine import BacktestConfig, columns, run_backtest
from cycle_system.backtest.returns import format_return, forward_return
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
from cycle_system.utils.format import (
    format_currency,
    format_date,
    format_number,
    round_half_up,
)
from cycle_system.utils.timeseries import align_to_dates

BUY_THRESHOLD = 1.0
SELL_THRESHOLD = 3.5
BACKTEST_THRESHOLD = 1.2
BACKTEST_START_TS = 1325376000   # 2012-01-01
BACKTEST_COOLDOWN = 90
CHART_SAMPLE_DAYS = 7


def get_signal(mvrv: float) -> Signal:
    return classify(mvrv, buy=lambda v: v <= BUY_THRESHOLD, sell=lambda v: v >= SELL_THRESHOLD)


def compute_mvrv(prices: pd.DataFrame, realized: pd.DataFrame) -> tuple[np.ndarray, np.ndarray]:
    """(앞으로 채운 실현가격, MVRV). 실현가격이 아직 없는 구간은 NaN."""
    by_date = dict(zip(realized["date"], realized["realized_price"].astype(float)))
    aligned = align_to_dates(prices["date"], by_date, forward_fill=True)
    closes = prices["close"].to_numpy(dtype=float)
    with np.errstate(divide="ignore", invalid="ignore"):
        mvrv = np.where(aligned > 0, closes / aligned, np.nan)
    return aligned, mvrv


class RealizedPrice(Indicator):
    """실현가격 지표 구현체."""

    id = "realized-price"
    name = "Realized Price"
    description = "Average on-chain cost basis of all BTC"

    def calculate(self, prices: pd.DataFrame) -> IndicatorResult:
        source = self._require_source()
        realized = self._fetch("realized price", source.fetch_realized_price) if source else None
        if realized is None or realized.empty or prices.empty:
            return self.empty_result()

        aligned, mvrv = compute_mvrv(prices, realized)
        closes = prices["close"].to_numpy(dtype=float)
        last = len(prices) - 1
        current_mvrv = float(mvrv[last])
        current_realized = float(aligned[last])

        # 주 단위 샘플 + 최신 값
        price_line = ChartLine(label="BTC Price", color="#e4e4e7")
        realized_line = ChartLine(label="Realized Price", color="#f59e0b")
        sample = list(range(0, len(prices), CHART_SAMPLE_DAYS))
        if last % CHART_SAMPLE_DAYS != 0:
            sample.append(last)
        for i in sample:
            d = prices["date"].iat[i]
            if closes[i] > 0:
                price_line.data.append(ChartPoint(time=d, value=float(closes[i])))
            if aligned[i] > 0:
                realized_line.data.append(ChartPoint(time=d, value=float(aligned[i])))

        backtest = run_backtest(prices, mvrv, BacktestConfig(
            title=f"Every time price approached realized price (MVRV < {BACKTEST_THRESHOLD})",
            columns=columns(
                ("date", "Date"),
                ("price", "BTC Price"),
                ("realized", "Realized"),
                ("mvrvVal", "MVRV"),
                ("return6m", "6mo Return"),
                ("return12m", "12mo Return"),
            ),
            trigger=partial(_trigger, realized=aligned),
            enrich=_enrich,
            cooldown_periods=BACKTEST_COOLDOWN,
        ))

        if current_realized > 0:
            distance = (closes[last] - current_realized) / current_realized * 100
            label = (
                f"{format_currency(round_half_up(current_realized))} "
                f"(MVRV {format_number(current_mvrv)})"
            )
        else:
            distance = 0.0
            label = "N/A"

        return IndicatorResult(
            id=self.id,
            name=self.name,
            description=self.description,
            current_value=current_realized,
            current_value_label=label,
            signal=get_signal(current_mvrv),
            signal_rules=(
                f"At/below realized = buy · MVRV >{SELL_THRESHOLD} = sell · "
                f"Now {round_half_up(distance)}% above"
            ),
            chart_data=ChartDataSet(lines=[price_line, realized_line]),
            chart_config=ChartConfig(type="line+line", log_scale=True),
            backtest_title=backtest.title,
            backtest_columns=backtest.columns,
            backtest_rows=backtest.rows,
            metadata={"mvrv": current_mvrv},
        )


def _trigger(prices: pd.DataFrame, i: int, computed: np.ndarray, realized: np.ndarray):
    value = computed[i]
    if math.isnan(value) or value >= BACKTEST_THRESHOLD:
        return None
    if int(prices["timestamp"].iat[i]) < BACKTEST_START_TS:
        return None
    return {
        "date": format_date(prices["date"].iat[i]),
        "price": format_currency(round_half_up(float(prices["close"].iat[i]))),
        "realized": format_currency(round_half_up(float(realized[i]))),
        "mvrvVal": format_number(float(value)),
    }


def _enrich(row: dict, i: int, prices: pd.DataFrame) -> dict:
    return {
        **row,
        "return6m": format_return(forward_return(prices, i, 180)),
        "return12m": format_return(forward_return(prices, i, 365)),
    }
