"""
한국 거래소 스크리너 지표 계산 모듈.

[ 역할 ]
    업비트/빗썸 KRW 시세와 글로벌 USD 시세(KoreanQuote)로 김치 프리미엄,
    합산 KRW 거래량, 시가총액 대비 거래량을 계산해 거래량 순으로 정렬한다.

[ 김치 프리미엄 ]
    내재 환율 = BTC KRW 가격 / BTC USD 가격   (BTC USD 가격이 없으면 1450)
    프리미엄  = ((KRW 가격 / USD 가격) / 내재 환율 - 1) × 100
    BTC 기준으로 환율을 제거하므로 알트코인 프리미엄은 BTC 대비 상대값이다.
    BTC 자신의 프리미엄은 고정 기준 환율 1450으로 따로 계산한다.

[ 호출하는 곳 ]
    - run_dashboard.py --screener korean
"""

from dataclasses import asdict, dataclass, field
from typing import Any, Sequence

from cycle_system.core.data_source import KoreanQuote
from cycle_system.utils.format import format_compact, format_percent

BASELINE_KRW_USD = 1450.0


@dataclass
class KoreanToken:
    symbol: str
    name: str
    krw_price: float
    usd_price: float
    kimchi_premium: float         # %
    upbit_volume_24h: float       # KRW
    bithumb_volume_24h: float     # KRW
    total_krw_volume: float
    price_change_24h: float       # %
    market_cap: float             # USD
    volume_to_mcap: float         # USD 환산 거래량 / 시가총액


@dataclass
class KoreanScreenerData:
    tokens: list[KoreanToken] = field(default_factory=list)
    btc_kimchi_premium: float = 0.0
    implied_krw_usd: float = BASELINE_KRW_USD

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    def summary(self, limit: int = 20) -> str:
        """KRW 거래량 상위 토큰 표."""
        lines = [
            "=" * 64,
            f"한국 거래소 스크리너 (BTC 프리미엄 {format_percent(self.btc_kimchi_premium, 2)}, "
            f"내재 환율 {self.implied_krw_usd:,.1f})",
            "=" * 64,
            f"{'Symbol':<8}{'Premium':>10}{'KRW Vol':>12}{'24h':>9}{'Vol/Mcap':>10}",
            "-" * 64,
        ]
        for t in self.tokens[:limit]:
            lines.append(
                f"{t.symbol:<8}{format_percent(t.kimchi_premium, 2):>10}"
                f"{format_compact(t.total_krw_volume, prefix='₩'):>12}"
                f"{format_percent(t.price_change_24h):>9}{t.volume_to_mcap:>10.3f}"
            )
        lines.append("=" * 64)
        return "\n".join(lines)


def implied_krw_usd(btc_krw: float, btc_usd: float, fallback: float = BASELINE_KRW_USD) -> float:
    """BTC 가격으로 역산한 KRW/USD 환율."""
    return btc_krw / btc_usd if btc_usd > 0 else fallback


def kimchi_premium(krw_price: float, usd_price: float, implied_fx: float) -> float:
    """BTC 내재 환율 대비 프리미엄(%). 가격이나 환율이 없으면 0."""
    if usd_price <= 0 or implied_fx <= 0:
        return 0.0
    return (krw_price / usd_price / implied_fx - 1) * 100


def build_korean_screener(quotes: Sequence[KoreanQuote]) -> KoreanScreenerData:
    """BTC 행으로 환율을 구하고 나머지 토큰을 KRW 거래량 내림차순으로 정렬."""
    btc = next((q for q in quotes if q.symbol.upper() == "BTC"), None)
    btc_krw = btc.krw_price if btc else 0.0
    btc_usd = btc.usd_price if btc else 0.0
    fx = implied_krw_usd(btc_krw, btc_usd)
    btc_premium = kimchi_premium(btc_krw, btc_usd, BASELINE_KRW_USD) if btc_usd > 0 else 0.0

    tokens = []
    for q in quotes:
        symbol = q.symbol.upper()
        if symbol == "BTC":
            continue
        total_krw = q.upbit_volume_24h + q.bithumb_volume_24h
        tokens.append(KoreanToken(
            symbol=symbol,
            name=q.name or symbol,
            krw_price=q.krw_price,
            usd_price=q.usd_price,
            kimchi_premium=kimchi_premium(q.krw_price, q.usd_price, fx) if btc_krw > 0 and btc_usd > 0 else 0.0,
            upbit_volume_24h=q.upbit_volume_24h,
            bithumb_volume_24h=q.bithumb_volume_24h,
            total_krw_volume=total_krw,
            price_change_24h=q.change_rate_24h * 100,
            market_cap=q.market_cap,
            volume_to_mcap=(total_krw / fx) / q.market_cap if q.market_cap > 0 else 0.0,
        ))

    tokens.sort(key=lambda t: t.total_krw_volume, reverse=True)
    return KoreanScreenerData(tokens=tokens, btc_kimchi_premium=btc_premium, implied_krw_usd=fx)
