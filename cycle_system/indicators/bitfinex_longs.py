"""
비트파이넥스 마진 롱 포지션(Bitfinex Longs) 지표.

[ 역할 ]
    core/indicator.py::Indicator의 구현체.
    고래 비중이 큰 비트파이넥스 BTC 마진 롱 잔고의 30일 변화율로 스마트머니 방향을 추정.

[ 시그널 ]
    30일 변화율 >  10%   → BUY   (롱 누적)
    30일 변화율 < -10%   → SELL  (롱 청산)
    데이터가 31개 미만이면 첫 값을 기준으로 변화율 계산

[ 백테스트 ]
    롱 잔고가 30일 SMA 대비 10% 이상 높은 날 (쿨다운 14일)
    → BTC 30일(달력일) 뒤 수익률
"""

import math
from functools import partial

import numpy as np
import pandas as pd

from cycle_system.backtest.engine import BacktestConfig, columns, run_backtest
from cycle_system.backtest.returns import close_by_date, format_return, forward_return_by_date
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
from cycle_system.utils.format import format_currency, format_date, round_half_up
from cycle_system.utils.timeseries import sma

MOMENTUM_PERIOD = 30
BULLISH_THRESHOLD = 10
BEARISH_THRESHOLD = -10
SMA_PERIOD = 30
DEVIATION_THRESHOLD = 10
BACKTEST_COOLDOWN = 14
RETURN_DAYS = 30


def longs_change(values) -> float:
    """최근 값의 30일 변화율(%). 기준값이 0 이하이면 0."""
    values = np.asarray(values, dtype=float)
    current = values[-1]
    prev = values[-(MOMENTUM_PERIOD + 1)] if len(values) > MOMENTUM_PERIOD else values[0]
    if prev <= 0:
        return 0.0
    return float((current - prev) / prev * 100)


def get_signal(roc: float) -> Signal:
    return classify(roc, buy=lambda v: v > BULLISH_THRESHOLD, sell=lambda v: v < BEARISH_THRESHOLD)


def format_longs(value: float) -> str:
    if value >= 1000:
        return f"{value / 1000:.1f}K BTC"
    return f"{round_half_up(value)} BTC"


class BitfinexLongs(Indicator):
    """비트파이넥스 롱 포지션 지표 구현체."""

    id = "bitfinex-longs"
    name = "Bitfinex Longs"
    description = "BTC margin long positions on Bitfinex"

    DEFAULT_PARAMS = {"days": 365}

    def calculate(self, prices: pd.DataFrame) -> IndicatorResult:
        source = self._require_source()
        longs = (
            self._fetch("bitfinex longs", source.fetch_bitfinex_longs, int(self.params["days"]))
            if source else None
        )
        if longs is None or len(longs) < 2:
            return self.empty_result()

        values = longs["longs"].to_numpy(dtype=float)
        sma30 = sma(values, SMA_PERIOD)
        current = float(values[-1])
        roc = longs_change(values)

        longs_line = ChartLine(label="Margin Longs (BTC)", color="#22c55e")
        sma_line = ChartLine(label="30-day SMA", color="#a1a1aa")
        for d, value, avg in zip(longs["date"], values, sma30):
            longs_line.data.append(ChartPoint(time=d, value=float(value)))
            if not math.isnan(avg):
                sma_line.data.append(ChartPoint(time=d, value=float(avg)))

        backtest = run_backtest(longs, sma30, BacktestConfig(
            title=f"When longs spike >{DEVIATION_THRESHOLD}% above 30d SMA",
            columns=columns(
                ("date", "Date"),
                ("longs", "Longs"),
                ("deviation", "Deviation"),
                ("btcPrice", "BTC Price"),
                ("btcReturn", "1mo Return"),
            ),
            trigger=partial(_trigger, btc=close_by_date(prices)),
            cooldown_periods=BACKTEST_COOLDOWN,
        ))

        return IndicatorResult(
            id=self.id,
            name=self.name,
            description=self.description,
            current_value=current,
            current_value_label=format_longs(current),
            signal=get_signal(roc),
            signal_rules=(
                f"30d change: >{BULLISH_THRESHOLD}% = accumulating · "
                f"<{BEARISH_THRESHOLD}% = unwinding"
            ),
            chart_data=ChartDataSet(lines=[longs_line, sma_line]),
            chart_config=ChartConfig(type="line+line", log_scale=False),
            backtest_title=backtest.title,
            backtest_columns=backtest.columns,
            backtest_rows=backtest.rows,
            metadata={"roc_30d": roc},
        )


def _trigger(longs: pd.DataFrame, i: int, computed: np.ndarray, btc: dict[str, float]):
    avg = computed[i]
    if math.isnan(avg) or avg == 0:
        return None
    value = float(longs["longs"].iat[i])
    deviation = (value - avg) / avg * 100
    if deviation < DEVIATION_THRESHOLD:
        return None

    d = longs["date"].iat[i]
    btc_price = btc.get(d)
    if not btc_price:
        return None
    return {
        "date": format_date(d),
        "longs": format_longs(value),
        "deviation": f"+{round_half_up(deviation)}%",
        "btcPrice": format_currency(btc_price),
        "btcReturn": format_return(forward_return_by_date(btc, d, RETURN_DAYS)),
    }
