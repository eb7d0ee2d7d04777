"""
데리빗 옵션(Deribit Options) 지표.

[ 역할 ]
    core/indicator.py::Indicator의 구현체.
    현재 풋/콜 미결제약정 비율(PCR)로 옵션 시장 심리를 판단하고,
    DVOL(내재변동성 지수) 히스토리를 차트와 백테스트에 사용한다.

[ 시그널 ]
    PCR ≥ 0.7   → BUY   (공포, 역발상 매수)
    PCR ≤ 0.4   → SELL  (탐욕)
    요약 정보가 없으면 NEUTRAL

[ 백테스트 ]
    DVOL이 7일 전 대비 5포인트 이상 오른 날 (쿨다운 21일)
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
from cycle_system.utils.format import NOT_AVAILABLE, format_compact, format_currency, format_date
from cycle_system.utils.timeseries import sma

BULLISH_PCR = 0.7
BEARISH_PCR = 0.4
SPIKE_LOOKBACK = 7
SPIKE_POINTS = 5
BACKTEST_COOLDOWN = 21
RETURN_DAYS = 30
SMA_PERIOD = 30


def get_signal(pcr: float) -> Signal:
    return classify(pcr, buy=lambda v: v >= BULLISH_PCR, sell=lambda v: v <= BEARISH_PCR)


class DeribitOptions(Indicator):
    """데리빗 옵션 지표 구현체."""

    id = "deribit-options"
    name = "Deribit Options"
    description = "BTC options put/call ratio and implied volatility"

    DEFAULT_PARAMS = {"dvol_days": 730}

    def calculate(self, prices: pd.DataFrame) -> IndicatorResult:
        source = self._require_source()
        if source is None:
            return self.empty_result()

        summary = self._fetch("options summary", source.fetch_options_summary)
        dvol = self._fetch("dvol", source.fetch_dvol, int(self.params["dvol_days"]))
        if summary is None and (dvol is None or dvol.empty):
            return self.empty_result()
        if dvol is None:
            dvol = pd.DataFrame(columns=["timestamp", "date", "iv"])

        pcr = float(summary.put_call_ratio) if summary is not None else math.nan
        ivs = dvol["iv"].to_numpy(dtype=float)
        sma30 = sma(ivs, SMA_PERIOD) if len(ivs) else ivs

        dvol_line = ChartLine(label="DVOL", color="#a855f7")
        sma_line = ChartLine(label="30-day SMA", color="#a1a1aa")
        for d, value, avg in zip(dvol["date"], ivs, sma30):
            dvol_line.data.append(ChartPoint(time=d, value=float(value)))
            if not math.isnan(avg):
                sma_line.data.append(ChartPoint(time=d, value=float(avg)))

        backtest = run_backtest(dvol, ivs, BacktestConfig(
            title=f"When DVOL spikes >{SPIKE_POINTS} pts in {SPIKE_LOOKBACK} days",
            columns=columns(
                ("date", "Date"),
                ("dvol", "DVOL"),
                ("change", "7d Change"),
                ("btcPrice", "BTC Price"),
                ("btcReturn", "1mo Return"),
            ),
            trigger=partial(_trigger, btc=close_by_date(prices)),
            cooldown_periods=BACKTEST_COOLDOWN,
        ))

        description = self.description
        if summary is not None:
            oi = format_compact(float(summary.total_open_interest), suffix=" BTC")
            description = f"{self.description} · OI {oi}"

        return IndicatorResult(
            id=self.id,
            name=self.name,
            description=description,
            current_value=pcr,
            current_value_label=NOT_AVAILABLE if math.isnan(pcr) else f"PCR {pcr:.2f}",
            signal=get_signal(pcr),
            signal_rules=f"PCR ≥{BULLISH_PCR} = fear (buy) · ≤{BEARISH_PCR} = greed (sell)",
            chart_data=ChartDataSet(lines=[dvol_line, sma_line]),
            chart_config=ChartConfig(type="line+line", log_scale=False),
            backtest_title=backtest.title,
            backtest_columns=backtest.columns,
            backtest_rows=backtest.rows,
            metadata={
                "dvol": float(ivs[-1]) if len(ivs) else None,
                "open_interest": float(summary.total_open_interest) if summary is not None else None,
            },
        )


def _trigger(dvol: pd.DataFrame, i: int, computed: np.ndarray, btc: dict[str, float]):
    if i < SPIKE_LOOKBACK:
        return None
    change = computed[i] - computed[i - SPIKE_LOOKBACK]
    if math.isnan(change) or change < SPIKE_POINTS:
        return None

    d = dvol["date"].iat[i]
    btc_price = btc.get(d)
    if not btc_price:
        return None
    return {
        "date": format_date(d),
        "dvol": f"{computed[i]:.1f}%",
        "change": f"+{change:.1f} pts",
        "btcPrice": format_currency(btc_price),
        "btcReturn": format_return(forward_return_by_date(btc, d, RETURN_DAYS)),
    }
