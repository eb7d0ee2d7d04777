"""
채굴원가(Mining Cost) 지표.

[ 역할 ]
    core/indicator.py::Indicator의 구현체.
    네트워크 해시레이트로 BTC 1개당 생산원가를 추정하고 "BTC 가격 / 원가"로
    채굴자 항복(capitulation)과 과열 구간을 판단.

[ 원가 모델 ]
    전력(W)      = 해시레이트(TH/s) × J/TH
    일일 kWh     = W × 24 / 1000
    일일 비용    = kWh × 전기요금($/kWh)
    BTC당 원가   = 일일 비용 ÷ (144블록 × 해당 시점 블록 보상)
    블록 보상은 반감기 날짜 기준으로 50 → 25 → 12.5 → 6.25 → 3.125

[ 시그널 ]
    가격/원가 ≤ 1.2   → BUY   (채굴자 항복)
    가격/원가 ≥ 3     → SELL  (과열)

[ 백테스트 ]
    가격/원가 ≤ 1.5 인 날 (쿨다운 60, 해시레이트 시계열 인덱스 기준)
    → 해당 날짜 BTC 일봉 인덱스에서 180 오프셋 수익률
"""

import math
from functools import partial

import numpy as np
import pandas as pd

from cycle_system.backtest.engine import BacktestConfig, columns, run_backtest
from cycle_system.backtest.returns import (
    close_by_date,
    format_return,
    forward_return,
    index_by_date,
)
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

BLOCKS_PER_DAY = 144
# (반감기 시작일, 이후 블록 보상)
BLOCK_REWARD_SCHEDULE = [
    ("2012-11-28", 25.0),
    ("2016-07-09", 12.5),
    ("2020-05-11", 6.25),
    ("2024-04-20", 3.125),
]
GENESIS_BLOCK_REWARD = 50.0

BUY_RATIO = 1.2
SELL_RATIO = 3
BACKTEST_RATIO = 1.5
BACKTEST_COOLDOWN = 60
RETURN_DAYS = 180


def block_reward(date_str: str) -> float:
    """해당 날짜의 블록 보상(BTC)."""
    reward = GENESIS_BLOCK_REWARD
    for halving_date, next_reward in BLOCK_REWARD_SCHEDULE:
        if date_str >= halving_date:
            reward = next_reward
    return reward


def estimate_mining_cost(
    hashrate: pd.DataFrame,
    joules_per_th: float = 25.0,
    electricity_rate: float = 0.05,
) -> pd.DataFrame:
    """해시레이트 시계열 → BTC당 추정 생산원가.

    Args:
        hashrate: timestamp, date, hashrate(TH/s) 컬럼 DataFrame
        joules_per_th: ASIC 효율
        electricity_rate: 전기요금 ($/kWh)

    Returns:
        DataFrame: 입력 컬럼 + cost
    """
    result = hashrate.copy()
    daily_kwh = result["hashrate"].astype(float) * joules_per_th * 24 / 1000
    daily_btc = result["date"].map(block_reward) * BLOCKS_PER_DAY
    result["cost"] = daily_kwh * electricity_rate / daily_btc
    return result.reset_index(drop=True)


def get_signal(ratio: float) -> Signal:
    return classify(ratio, buy=lambda v: v <= BUY_RATIO, sell=lambda v: v >= SELL_RATIO)


class MiningCost(Indicator):
    """채굴원가 지표 구현체."""

    id = "mining-cost"
    name = "Avg Mining Cost"
    description = "Estimated BTC production cost"

    DEFAULT_PARAMS = {"joules_per_th": 25.0, "electricity_rate": 0.05}

    def calculate(self, prices: pd.DataFrame) -> IndicatorResult:
        source = self._require_source()
        hashrate = self._fetch("hashrate", source.fetch_hashrate) if source else None
        if hashrate is None or len(hashrate) < 2 or prices.empty:
            return self.empty_result()

        mining = estimate_mining_cost(
            hashrate,
            joules_per_th=float(self.params["joules_per_th"]),
            electricity_rate=float(self.params["electricity_rate"]),
        )
        costs = mining["cost"].to_numpy(dtype=float)
        current_cost = float(costs[-1])
        current_price = float(prices["close"].iat[-1])
        ratio = current_price / current_cost if current_cost > 0 else math.nan

        btc = close_by_date(prices)
        btc_line = ChartLine(label="BTC Price", color="#e4e4e7")
        cost_line = ChartLine(label="Est. Mining Cost", color="#f59e0b")
        for d, cost in zip(mining["date"], costs):
            cost_line.data.append(ChartPoint(time=d, value=float(cost)))
            if btc.get(d):
                btc_line.data.append(ChartPoint(time=d, value=btc[d]))

        backtest = run_backtest(mining, costs, BacktestConfig(
            title=f"Every time BTC dropped below {BACKTEST_RATIO}x mining cost",
            columns=columns(
                ("date", "Date"),
                ("cost", "Mining Cost"),
                ("btcPrice", "BTC Price"),
                ("ratio", "Ratio"),
                ("ret6m", "6mo Return"),
            ),
            trigger=partial(_trigger, btc=btc),
            enrich=partial(_enrich, prices=prices, btc_index=index_by_date(prices)),
            cooldown_periods=BACKTEST_COOLDOWN,
        ))

        ratio_label = "N/A" if math.isnan(ratio) else f"{ratio:.1f}x"
        cost_label = "N/A" if math.isnan(current_cost) else format_currency(round_half_up(current_cost))
        return IndicatorResult(
            id=self.id,
            name=self.name,
            description=f"Est. production cost · Price/Cost: {ratio_label}",
            current_value=current_cost,
            current_value_label=cost_label,
            signal=get_signal(ratio),
            signal_rules=(
                f"Price ≤{BUY_RATIO}x cost = capitulation buy · ≥{SELL_RATIO}x = euphoria sell"
            ),
            chart_data=ChartDataSet(lines=[btc_line, cost_line]),
            chart_config=ChartConfig(type="line+line", log_scale=True),
            backtest_title=backtest.title,
            backtest_columns=backtest.columns,
            backtest_rows=backtest.rows,
            metadata={"price_to_cost": ratio},
        )


def _trigger(mining: pd.DataFrame, i: int, computed: np.ndarray, btc: dict[str, float]):
    cost = computed[i]
    if math.isnan(cost) or cost <= 0:
        return None
    btc_price = btc.get(mining["date"].iat[i])
    if not btc_price:
        return None
    ratio = btc_price / cost
    if ratio > BACKTEST_RATIO:
        return None
    return {
        "date": format_date(mining["date"].iat[i]),
        "cost": format_currency(round_half_up(cost)),
        "btcPrice": format_currency(round_half_up(btc_price)),
        "ratio": f"{ratio:.2f}x",
    }


def _enrich(
    row: dict,
    i: int,
    mining: pd.DataFrame,
    prices: pd.DataFrame,
    btc_index: dict[str, int],
) -> dict:
    idx = btc_index[mining["date"].iat[i]]
    return {**row, "ret6m": format_return(forward_return(prices, idx, RETURN_DAYS))}
