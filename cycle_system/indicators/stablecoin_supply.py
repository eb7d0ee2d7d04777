"""
스테이블코인 공급량(Stablecoin Supply) 지표.

[ 역할 ]
    core/indicator.py::Indicator의 구현체.
    USDT + USDC 합산 유통량의 30일 변화율로 시장 유동성 팽창/수축을 판단.

[ 시그널 ]
    30일 변화율 >  3%   → BUY   (유동성 팽창)
    30일 변화율 < -1%   → SELL  (유동성 수축)

[ 백테스트 ]
    공급량이 직전 ATH 대비 5% 이상 눌렸다가 다시 ATH를 갱신한 날 (쿨다운 90일)
    → BTC 180일(달력일) 뒤 수익률
    ATH/눌림 상태는 쿨다운 중에도 매일 갱신되어야 하므로 엔진 대신 같은 규칙의
    루프를 직접 돈다.
"""

import math

import numpy as np
import pandas as pd

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
from cycle_system.utils.format import format_compact, format_currency, format_date
from cycle_system.utils.timeseries import rate_of_change, sma

MOMENTUM_PERIOD = 30
BULLISH_THRESHOLD = 3
BEARISH_THRESHOLD = -1
PULLBACK_RATIO = 0.95
BACKTEST_COOLDOWN = 90
RETURN_DAYS = 180
SMA_PERIOD = 90


def get_signal(roc: float) -> Signal:
    return classify(roc, buy=lambda v: v > BULLISH_THRESHOLD, sell=lambda v: v < BEARISH_THRESHOLD)


def format_supply(value: float) -> str:
    return format_compact(value, prefix="$")


class StablecoinSupply(Indicator):
    """스테이블코인 공급량 지표 구현체."""

    id = "stablecoin-supply"
    name = "Stablecoin Supply"
    description = "Combined USDT + USDC circulating supply"

    def calculate(self, prices: pd.DataFrame) -> IndicatorResult:
        source = self._require_source()
        supply_data = self._fetch("stablecoin supply", source.fetch_stablecoin_supply) if source else None
        if supply_data is None or supply_data.empty:
            return self.empty_result()

        supplies = supply_data["supply"].to_numpy(dtype=float)
        roc30 = rate_of_change(supplies, MOMENTUM_PERIOD)
        sma90 = sma(supplies, SMA_PERIOD)

        current_supply = float(supplies[-1])
        current_roc = float(roc30[-1])

        supply_line = ChartLine(label="USDT + USDC Supply", color="#22c55e")
        sma_line = ChartLine(label="90-day SMA", color="#a1a1aa")
        for d, value, avg in zip(supply_data["date"], supplies, sma90):
            supply_line.data.append(ChartPoint(time=d, value=float(value)))
            if not math.isnan(avg):
                sma_line.data.append(ChartPoint(time=d, value=float(avg)))

        return IndicatorResult(
            id=self.id,
            name=self.name,
            description=self.description,
            current_value=current_supply,
            current_value_label=format_supply(current_supply),
            signal=get_signal(current_roc),
            signal_rules=(
                f"30d change: Expanding >{BULLISH_THRESHOLD}% · Contracting <{BEARISH_THRESHOLD}%"
            ),
            chart_data=ChartDataSet(lines=[supply_line, sma_line]),
            chart_config=ChartConfig(type="line+line", log_scale=False),
            backtest_title="Every time supply set new ATH (after pullback)",
            backtest_columns=["Date", "Supply", "BTC Price", "BTC 6mo Return"],
            backtest_rows=build_new_ath_backtest(supply_data, prices),
            metadata={"roc_30d": current_roc},
        )


def build_new_ath_backtest(supply_data: pd.DataFrame, prices: pd.DataFrame) -> list[dict]:
    """5% 이상 눌림 후 ATH 재갱신 이벤트 → BTC 6개월 수익률."""
    rows: list[dict] = []
    btc = close_by_date(prices)
    ath = 0.0
    had_pullback = False
    last_trigger = -np.inf

    for i, (d, supply) in enumerate(zip(supply_data["date"], supply_data["supply"])):
        supply = float(supply)
        if supply > ath:
            if had_pullback and i - last_trigger >= BACKTEST_COOLDOWN:
                btc_price = btc.get(d)
                if btc_price:
                    rows.append({
                        "date": format_date(d),
                        "supply": format_supply(supply),
                        "btcPrice": format_currency(btc_price),
                        "btcReturn": format_return(forward_return_by_date(btc, d, RETURN_DAYS)),
                    })
                    last_trigger = i
            ath = supply
            had_pullback = False
        elif supply < ath * PULLBACK_RATIO:
            had_pullback = True

    return rows
