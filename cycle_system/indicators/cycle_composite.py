"""
사이클 복합 점수(Cycle Composite) 지표.

[ 역할 ]
    core/indicator.py::Indicator의 구현체.
    7개 하위 지표의 일별 시그널(+1 / 0 / -1)을 날짜별로 합산해 하나의 사이클 점수를 만든다.
    하위 지표의 전체 결과를 계산하는 것이 아니라 "날짜 → 투표" 맵만 가볍게 다시 구한다.

[ 하위 투표 ]
    mayer_votes       종가 / SMA200         < 0.8 매수, > 2.4 매도
    wma_votes         종가 / 최근 주봉 WMA   ≤ 1 매수,   > 3 매도
    mining_votes      종가 / 채굴원가(ffill) ≤ 1.2 매수, ≥ 3 매도
    stablecoin_votes  공급량 30일 변화율    > 3 매수,   < -1 매도
    gap_votes         CB 프리미엄           > 0.1 매수, < -0.05 매도
    longs_votes       롱 30일 변화율        > 10 매수,  < -10 매도
    dvol_votes        DVOL 수준             > 60 매수,  < 40 매도
    pcr_vote          실시간 PCR이 DVOL 마지막 날짜의 투표를 덮어씀 (≥0.7 매수, ≤0.4 매도)

    임계값은 단독 지표 모듈과 독립적으로 관리된다. (DVOL처럼 값이 다른 것도 있다)

[ 합산 ]
    BTC 일봉 날짜마다 투표가 있는 맵만 더해 score, 투표 수를 available_count로 기록.
    투표가 하나도 없는 날은 기록하지 않는다.
    score ≥ 2 → BUY, score ≤ -2 → SELL

[ 백테스트 ]
    score ≥ 2 또는 ≤ -2 인 날 (쿨다운 60, 복합 기록 인덱스 기준)
    → BTC 일봉 인덱스에서 30/90/180 오프셋 수익률
    마지막에 항상 현재 상태 행을 덧붙인다.
"""

import logging
import math
from dataclasses import dataclass
from datetime import date
from functools import partial

import numpy as np
import pandas as pd

from cycle_system.backtest.engine import BacktestConfig, columns, run_backtest
from cycle_system.backtest.returns import format_return, forward_return, index_by_date
from cycle_system.core.data_source import OptionsSummary
from cycle_system.core.indicator import (
    ChartBar,
    ChartConfig,
    ChartDataSet,
    ChartLine,
    ChartMarker,
    ChartPoint,
    Indicator,
    IndicatorResult,
    Signal,
)
from cycle_system.indicators.mining_cost import estimate_mining_cost
from cycle_system.utils.format import format_currency, format_date, format_signed_int, round_half_up
from cycle_system.utils.timeseries import resample_weekly, sma

logger = logging.getLogger("cycle_system.indicators.composite")

MAYER_BUY = 0.8
MAYER_SELL = 2.4
WMA_SELL_RATIO = 3
MINING_BUY_RATIO = 1.2
MINING_SELL_RATIO = 3
STABLE_BUY_ROC = 3
STABLE_SELL_ROC = -1
GAP_BUY = 0.1
GAP_SELL = -0.05
LONGS_BUY_ROC = 10
LONGS_SELL_ROC = -10
DVOL_BUY = 60
DVOL_SELL = 40
PCR_BUY = 0.7
PCR_SELL = 0.4
ROC_PERIOD = 30

COMPOSITE_BUY = 2
COMPOSITE_SELL = -2
BACKTEST_COOLDOWN = 60
TOTAL_COMPONENTS = 7
PENDING = "—"

HALVING_DATES = ["2012-11-28", "2016-07-09", "2020-05-11", "2024-04-20"]
HALVING_COLOR = "#eab308"

VoteMap = dict[str, int]


@dataclass
class CompositeDailyRecord:
    """BTC 일봉 하루의 합산 결과."""
    date: str
    price: float
    score: int
    available_count: int


def _vote(buy: bool, sell: bool) -> int:
    if buy:
        return 1
    if sell:
        return -1
    return 0


# ─── 하위 투표 맵 ───────────────────────────────────────────────────────────

def mayer_votes(prices: pd.DataFrame) -> VoteMap:
    closes = prices["close"].to_numpy(dtype=float)
    sma200 = sma(closes, 200) if len(closes) else closes
    votes: VoteMap = {}
    for d, close, avg in zip(prices["date"], closes, sma200):
        if math.isnan(avg) or avg == 0:
            continue
        mayer = close / avg
        votes[d] = _vote(mayer < MAYER_BUY, mayer > MAYER_SELL)
    return votes


def wma_votes(prices: pd.DataFrame) -> VoteMap:
    """주봉 200WMA를 일봉 날짜로 앞으로 채워 비교."""
    if prices.empty:
        return {}
    weekly = resample_weekly(prices)
    wma200 = sma(weekly["close"].to_numpy(dtype=float), 200)
    weekly_dates = list(weekly["date"])

    votes: VoteMap = {}
    last_wma = math.nan
    week_idx = 0
    for d, close in zip(prices["date"], prices["close"].astype(float)):
        while week_idx < len(weekly_dates) and weekly_dates[week_idx] <= d:
            if not math.isnan(wma200[week_idx]):
                last_wma = float(wma200[week_idx])
            week_idx += 1
        if math.isnan(last_wma):
            continue
        ratio = close / last_wma
        votes[d] = _vote(ratio <= 1, ratio > WMA_SELL_RATIO)
    return votes


def mining_votes(mining: pd.DataFrame, prices: pd.DataFrame) -> VoteMap:
    """mining: estimate_mining_cost() 결과 (cost 컬럼). 원가는 앞으로 채운다."""
    if mining is None or mining.empty:
        return {}
    cost_by_date = dict(zip(mining["date"], mining["cost"].astype(float)))
    votes: VoteMap = {}
    last_cost = 0.0
    for d, close in zip(prices["date"], prices["close"].astype(float)):
        cost = cost_by_date.get(d)
        if cost is not None and cost > 0:
            last_cost = cost
        if last_cost <= 0:
            continue
        ratio = close / last_cost
        votes[d] = _vote(ratio <= MINING_BUY_RATIO, ratio >= MINING_SELL_RATIO)
    return votes


def _roc_votes(frame: pd.DataFrame, column: str, buy: float, sell: float) -> VoteMap:
    if frame is None or len(frame) < ROC_PERIOD + 1:
        return {}
    values = frame[column].to_numpy(dtype=float)
    dates = list(frame["date"])
    votes: VoteMap = {}
    for i in range(ROC_PERIOD, len(values)):
        prev = values[i - ROC_PERIOD]
        if prev <= 0:
            continue
        roc = (values[i] - prev) / prev * 100
        votes[dates[i]] = _vote(roc > buy, roc < sell)
    return votes


def stablecoin_votes(supply: pd.DataFrame) -> VoteMap:
    return _roc_votes(supply, "supply", STABLE_BUY_ROC, STABLE_SELL_ROC)


def longs_votes(longs: pd.DataFrame) -> VoteMap:
    return _roc_votes(longs, "longs", LONGS_BUY_ROC, LONGS_SELL_ROC)


def gap_votes(binance: pd.DataFrame, coinbase: pd.DataFrame) -> VoteMap:
    if binance is None or coinbase is None or binance.empty or coinbase.empty:
        return {}
    cb_by_date = dict(zip(coinbase["date"], coinbase["close"].astype(float)))
    votes: VoteMap = {}
    for d, bn in zip(binance["date"], binance["close"].astype(float)):
        cb = cb_by_date.get(d)
        if not cb or bn <= 0:
            continue
        gap = (cb - bn) / bn * 100
        votes[d] = _vote(gap > GAP_BUY, gap < GAP_SELL)
    return votes


def dvol_votes(dvol: pd.DataFrame) -> VoteMap:
    if dvol is None or dvol.empty:
        return {}
    return {
        d: _vote(iv > DVOL_BUY, iv < DVOL_SELL)
        for d, iv in zip(dvol["date"], dvol["iv"].astype(float))
    }


def pcr_vote(votes: VoteMap, dvol: pd.DataFrame, summary: OptionsSummary | None) -> VoteMap:
    """DVOL 마지막 날짜의 투표를 실시간 PCR 투표로 교체한 새 맵."""
    if summary is None or dvol is None or dvol.empty:
        return votes
    pcr = float(summary.put_call_ratio)
    last_date = dvol["date"].iat[-1]
    return {**votes, last_date: _vote(pcr >= PCR_BUY, pcr <= PCR_SELL)}


# ─── 합산 / 분류 ────────────────────────────────────────────────────────────

def aggregate_votes(prices: pd.DataFrame, vote_maps: list[VoteMap]) -> list[CompositeDailyRecord]:
    """BTC 일봉 날짜별로 투표 합산. 맵당 날짜별 최대 1표."""
    records = []
    for d, close in zip(prices["date"], prices["close"].astype(float)):
        score = 0
        available = 0
        for votes in vote_maps:
            vote = votes.get(d)
            if vote is not None:
                score += vote
                available += 1
        if available > 0:
            records.append(CompositeDailyRecord(date=d, price=close, score=score, available_count=available))
    return records


def classify_score(score: int) -> Signal:
    if score >= COMPOSITE_BUY:
        return Signal.BUY
    if score <= COMPOSITE_SELL:
        return Signal.SELL
    return Signal.NEUTRAL


def get_composite_color(score: int) -> str:
    if score >= 3:
        return "#15803d"
    if score >= 2:
        return "#22c55e"
    if score >= 1:
        return "#86efac"
    if score == 0:
        return "#71717a"
    if score >= -1:
        return "#fca5a5"
    if score >= -2:
        return "#ef4444"
    return "#991b1b"


def cycle_position(date_str: str) -> str:
    """"Day 640 of Cycle 5 (since 2024 halving)" 형식의 반감기 사이클 위치."""
    last_halving = ""
    cycle_num = 1
    for halving in HALVING_DATES:
        if halving <= date_str:
            last_halving = halving
            cycle_num += 1
    if not last_halving:
        return "Pre-halving era"
    days_since = (date.fromisoformat(date_str) - date.fromisoformat(last_halving)).days
    return f"Day {days_since} of Cycle {cycle_num} (since {last_halving[:4]} halving)"


def _signal_type(score: int, neutral: str | None = None) -> str | None:
    if score >= COMPOSITE_BUY:
        return "BUY"
    if score <= COMPOSITE_SELL:
        return "SELL"
    return neutral


# ─── 지표 ───────────────────────────────────────────────────────────────────

class CycleComposite(Indicator):
    """사이클 복합 점수 구현체. 하위 데이터 조회는 각각 독립적으로 실패할 수 있다."""

    id = "cycle-composite"
    name = "Cycle Composite"
    description = "Aggregating indicators into a single cycle score"

    DEFAULT_PARAMS = {
        "exchange_days": 1000,
        "longs_days": 1825,
        "dvol_days": 730,
        "joules_per_th": 25.0,
        "electricity_rate": 0.05,
    }

    def calculate(self, prices: pd.DataFrame) -> IndicatorResult:
        if prices.empty:
            return self.empty_result()

        vote_maps = [mayer_votes(prices), wma_votes(prices), *self._auxiliary_votes(prices)]
        records = aggregate_votes(prices, vote_maps)
        if not records:
            return self.empty_result()

        composite = pd.DataFrame([vars(r) for r in records])
        scores = composite["score"].to_numpy(dtype=float)

        price_line = ChartLine(
            label="BTC Price",
            color="#e4e4e7",
            data=[ChartPoint(time=r.date, value=r.price) for r in records],
        )
        bars = [ChartBar(time=r.date, value=r.score, color=get_composite_color(r.score)) for r in records]

        first_date, last_date = records[0].date, records[-1].date
        in_range = [h for h in HALVING_DATES if first_date <= h <= last_date]
        markers = [
            ChartMarker(time=h, label=f"H{i + 1}", color=HALVING_COLOR)
            for i, h in enumerate(in_range)
        ]

        backtest = run_backtest(composite, scores, BacktestConfig(
            title=f"Extreme composite readings (≥{COMPOSITE_BUY} buy, ≤{COMPOSITE_SELL} sell)",
            columns=columns(
                ("date", "Date"),
                ("type", "Type"),
                ("score", "Score"),
                ("indicators", "Indicators"),
                ("btcPrice", "BTC Price"),
                ("ret1m", "1mo"),
                ("ret3m", "3mo"),
                ("ret6m", "6mo"),
            ),
            trigger=_trigger,
            enrich=partial(_enrich, prices=prices, btc_index=index_by_date(prices)),
            cooldown_periods=BACKTEST_COOLDOWN,
        ))

        latest = records[-1]
        rows = list(backtest.rows)
        rows.append({
            **_base_row(latest, _signal_type(latest.score, neutral="NOW")),
            "ret1m": PENDING,
            "ret3m": PENDING,
            "ret6m": PENDING,
        })

        position = cycle_position(latest.date)
        logger.info(
            f"복합 점수 {format_signed_int(latest.score)} / {latest.available_count} "
            f"({len(records)}일, 이벤트 {len(backtest.rows)}건)"
        )

        return IndicatorResult(
            id=self.id,
            name=self.name,
            description=f"{latest.available_count} indicators · {position}",
            current_value=float(latest.score),
            current_value_label=f"{format_signed_int(latest.score)} / {latest.available_count}",
            signal=classify_score(latest.score),
            signal_rules=(
                f"Sum of {TOTAL_COMPONENTS} signals (+1 buy, 0 neutral, -1 sell) · "
                f"Buy ≥{COMPOSITE_BUY} · Sell ≤{COMPOSITE_SELL}"
            ),
            chart_data=ChartDataSet(lines=[price_line], bars=bars, markers=markers),
            chart_config=ChartConfig(type="line+histogram", log_scale=True),
            backtest_title=backtest.title,
            backtest_columns=backtest.columns,
            backtest_rows=rows,
            metadata={
                "score": latest.score,
                "available_count": latest.available_count,
                "cycle_position": position,
            },
        )

    def _auxiliary_votes(self, prices: pd.DataFrame) -> list[VoteMap]:
        """보조 시계열 투표 맵 5개 (채굴, 스테이블코인, 갭, 롱, DVOL/PCR). 실패한 소스는 빈 맵."""
        source = self._require_source()
        if source is None:
            return []

        hashrate = self._fetch("hashrate", source.fetch_hashrate)
        supply = self._fetch("stablecoin supply", source.fetch_stablecoin_supply)
        binance = self._fetch("binance closes", source.fetch_binance_closes, int(self.params["exchange_days"]))
        coinbase = self._fetch("coinbase closes", source.fetch_coinbase_closes, int(self.params["exchange_days"]))
        longs = self._fetch("bitfinex longs", source.fetch_bitfinex_longs, int(self.params["longs_days"]))
        dvol = self._fetch("dvol", source.fetch_dvol, int(self.params["dvol_days"]))
        summary = self._fetch("options summary", source.fetch_options_summary)

        mining = None
        if hashrate is not None and not hashrate.empty:
            mining = estimate_mining_cost(
                hashrate,
                joules_per_th=float(self.params["joules_per_th"]),
                electricity_rate=float(self.params["electricity_rate"]),
            )

        return [
            mining_votes(mining, prices),
            stablecoin_votes(supply),
            gap_votes(binance, coinbase),
            longs_votes(longs),
            pcr_vote(dvol_votes(dvol), dvol, summary),
        ]


def _base_row(record: CompositeDailyRecord, signal_type: str) -> dict:
    return {
        "date": format_date(record.date),
        "type": signal_type,
        "score": format_signed_int(record.score),
        "indicators": f"{record.available_count}/{TOTAL_COMPONENTS}",
        "btcPrice": format_currency(round_half_up(record.price)),
    }


def _trigger(composite: pd.DataFrame, i: int, computed: np.ndarray):
    signal_type = _signal_type(int(computed[i]))
    if signal_type is None:
        return None
    record = CompositeDailyRecord(
        date=composite["date"].iat[i],
        price=float(composite["price"].iat[i]),
        score=int(computed[i]),
        available_count=int(composite["available_count"].iat[i]),
    )
    return _base_row(record, signal_type)


def _enrich(
    row: dict,
    i: int,
    composite: pd.DataFrame,
    prices: pd.DataFrame,
    btc_index: dict[str, int],
) -> dict:
    idx = btc_index[composite["date"].iat[i]]
    return {
        **row,
        "ret1m": format_return(forward_return(prices, idx, 30)),
        "ret3m": format_return(forward_return(prices, idx, 90)),
        "ret6m": format_return(forward_return(prices, idx, 180)),
    }
