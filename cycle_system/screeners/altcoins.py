"""
알트코인 스크리너 지표 계산 모듈.

[ 역할 ]
    거래량 상위 알트코인의 원시 시세/파생 데이터(AltcoinQuote)를 받아
    미결제약정 z-score, 펀딩 APR, BTC 대비 상대강도, 돌파 점수를 계산하고
    돌파 점수 순으로 정렬한 스크리너 표를 만든다.

[ 돌파 점수 (0~10) ]
    OI z-score   30%   clamp((z + 1) / 3) × 10          z ≥ 2 만점, z ≤ -1 0점
    상대강도     25%   clamp(rs / 2) × 10               rs ≥ 2 만점
    펀딩         20%   clamp(1 - |APR| / 100) × 10      과열 펀딩일수록 감점
    7일 모멘텀   15%   clamp((chg7d + 10) / 30) × 10
    거래량       10%   5 고정 (이미 거래량 상위만 선택)

[ 호출하는 곳 ]
    - run_dashboard.py --screener altcoins
"""

from dataclasses import asdict, dataclass, field
from typing import Any, Sequence

import numpy as np

from cycle_system.core.data_source import AltcoinQuote, AltcoinSnapshot
from cycle_system.utils.format import format_compact, format_currency, format_percent
from cycle_system.utils.timeseries import z_score

TOP_N = 40
FUNDING_PERIODS_PER_DAY = 3   # 8시간 펀딩
VOLUME_BASELINE = 5


@dataclass
class AltcoinToken:
    """스크리너 한 행."""
    symbol: str
    price: float
    price_change_24h: float       # %
    price_change_7d: float        # %
    volume_24h: float             # USD
    market_cap: float
    fdv: float
    open_interest: float          # USD
    oi_change_24h: float          # %
    oi_zscore: float              # 최근 30일 대비
    funding_rate: float           # 8시간 기준
    funding_apr: float            # 연환산 %
    relative_strength: float      # BTC 대비 7일
    breakout_score: float = 0.0


@dataclass
class AltcoinScreenerData:
    tokens: list[AltcoinToken] = field(default_factory=list)
    btc_change_7d: float = 0.0
    last_updated: str = ""

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    def summary(self, limit: int = 20) -> str:
        """돌파 점수 상위 토큰 표."""
        lines = [
            "=" * 78,
            f"알트코인 스크리너 (BTC 7d {format_percent(self.btc_change_7d)})",
            "=" * 78,
            f"{'Symbol':<8}{'Price':>12}{'7d':>9}{'OI':>10}{'OI z':>7}{'APR':>9}{'RS':>7}{'Score':>8}",
            "-" * 78,
        ]
        for t in self.tokens[:limit]:
            lines.append(
                f"{t.symbol:<8}{format_currency(t.price):>12}{format_percent(t.price_change_7d):>9}"
                f"{format_compact(t.open_interest, prefix='$'):>10}{t.oi_zscore:>7.2f}"
                f"{format_percent(t.funding_apr):>9}{t.relative_strength:>7.2f}{t.breakout_score:>8.2f}"
            )
        lines.append("=" * 78)
        return "\n".join(lines)


def clamp(value: float, low: float, high: float) -> float:
    return min(high, max(low, value))


def compute_oi_zscore(oi_values: Sequence[float]) -> float:
    """최신 OI의 z-score (모표준편차). 5개 미만이거나 편차가 0이면 0."""
    return z_score(np.asarray(oi_values, dtype=float))


def compute_breakout_score(token: AltcoinToken) -> float:
    oi_component = clamp((token.oi_zscore + 1) / 3, 0, 1) * 10
    rs_component = clamp(token.relative_strength / 2, 0, 1) * 10
    funding_component = clamp(1 - abs(token.funding_apr) / 100, 0, 1) * 10
    momentum_component = clamp((token.price_change_7d + 10) / 30, 0, 1) * 10
    return (
        oi_component * 0.3
        + rs_component * 0.25
        + funding_component * 0.2
        + momentum_component * 0.15
        + VOLUME_BASELINE * 0.1
    )


def _oi_change(history: Sequence[float]) -> float:
    prev = history[-2] if len(history) > 1 else 0
    curr = history[-1] if history else 0
    return (curr - prev) / prev * 100 if prev > 0 else 0.0


def build_token(quote: AltcoinQuote, btc_change_7d: float) -> AltcoinToken:
    """원시 시세 하나 → 점수가 매겨진 스크리너 행."""
    if quote.futures_volume_base:
        volume = quote.futures_volume_base * quote.price
    else:
        volume = quote.spot_volume_24h

    token = AltcoinToken(
        symbol=quote.symbol.upper(),
        price=quote.price,
        price_change_24h=quote.price_change_24h,
        price_change_7d=quote.price_change_7d,
        volume_24h=volume,
        market_cap=quote.market_cap,
        fdv=quote.fdv,
        open_interest=quote.open_interest_base * quote.price,
        oi_change_24h=_oi_change(quote.oi_history),
        oi_zscore=compute_oi_zscore(quote.oi_history),
        funding_rate=quote.funding_rate,
        funding_apr=quote.funding_rate * FUNDING_PERIODS_PER_DAY * 365 * 100,
        relative_strength=quote.price_change_7d / btc_change_7d if btc_change_7d != 0 else 0.0,
    )
    token.breakout_score = compute_breakout_score(token)
    return token


def build_altcoin_screener(snapshot: AltcoinSnapshot, top_n: int = TOP_N) -> AltcoinScreenerData:
    """현물 거래량 상위 top_n 토큰을 골라 돌파 점수 내림차순으로 정렬."""
    selected = sorted(snapshot.quotes, key=lambda q: q.spot_volume_24h, reverse=True)[:top_n]
    tokens = [build_token(q, snapshot.btc_change_7d) for q in selected]
    tokens.sort(key=lambda t: t.breakout_score, reverse=True)
    return AltcoinScreenerData(
        tokens=tokens,
        btc_change_7d=snapshot.btc_change_7d,
        last_updated=snapshot.as_of,
    )
