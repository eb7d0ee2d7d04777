"""
샘플 데이터 소스.

[ 역할 ]
    외부 데이터 없이 전체 파이프라인을 돌려볼 수 있도록 결정적인 합성 시계열을 만든다.
    같은 seed면 항상 같은 데이터가 나온다.

[ 생성 방식 ]
    BTC          로그 가격 = 장기 추세 + 4년 주기 사인파 + 랜덤워크
    해시레이트   지수 성장 + 노이즈, 3일 간격 샘플 (채굴원가 앞으로 채우기 확인용)
    스테이블코인 2017년부터 지수 성장 + 느린 진동 (ATH/눌림 반복)
    거래소 종가  BTC 종가에 소폭 노이즈 (코인베이스에 약한 프리미엄)
    롱 포지션    사인파 + 노이즈
    DVOL         사인파 + 노이즈, 20 이상
    실현가격     종가 장기 평균의 일부, 7일 간격 샘플

[ 호출하는 곳 ]
    - run_dashboard.py --source sample (기본값)
"""

import logging

import numpy as np
import pandas as pd

from cycle_system.core.data_source import (
    AltcoinQuote,
    AltcoinSnapshot,
    KoreanQuote,
    OptionsSummary,
)
from cycle_system.data.sources import StaticDataSource

logger = logging.getLogger("cycle_system.data")

CYCLE_DAYS = 1460
ALTCOIN_SYMBOLS = [
    "ETH", "SOL", "XRP", "BNB", "DOGE", "ADA", "AVAX", "LINK", "DOT", "TRX",
    "TON", "SHIB", "LTC", "BCH", "NEAR", "APT", "ARB", "OP", "SUI", "INJ",
    "ATOM", "FIL", "ETC", "HBAR", "IMX", "SEI", "TIA", "RNDR", "STX", "WLD",
    "PEPE", "WIF", "FET", "JUP", "AAVE", "UNI", "MKR", "LDO", "ENA", "ONDO",
    "PYTH", "JTO", "STRK", "ORDI", "BONK",
]
KOREAN_SYMBOLS = [
    ("ETH", "이더리움"), ("XRP", "리플"), ("SOL", "솔라나"), ("DOGE", "도지코인"),
    ("ADA", "에이다"), ("SUI", "수이"), ("AVAX", "아발란체"), ("LINK", "체인링크"),
    ("SHIB", "시바이누"), ("HBAR", "헤데라"), ("SEI", "세이"), ("ONDO", "온도파이낸스"),
    ("STX", "스택스"), ("ARB", "아비트럼"), ("ENA", "에테나"),
]


def _frame(dates: pd.DatetimeIndex, **columns) -> pd.DataFrame:
    timestamps = (dates - pd.Timestamp("1970-01-01")) // pd.Timedelta(seconds=1)
    return pd.DataFrame({
        "timestamp": np.asarray(timestamps, dtype="int64"),
        "date": dates.strftime("%Y-%m-%d"),
        **columns,
    })


def generate_btc_history(rng: np.random.RandomState, dates: pd.DatetimeIndex) -> pd.DataFrame:
    """4년 주기를 가진 합성 BTC 일봉."""
    n = len(dates)
    t = np.arange(n)
    trend = np.log(15) + 8.2 * (1 - np.exp(-t / 2600))
    cycle = 0.9 * np.sin(2 * np.pi * (t - 200) / CYCLE_DAYS)
    noise = np.cumsum(rng.normal(0, 0.018, n))
    noise -= np.linspace(0, noise[-1], n)   # 랜덤워크 끝점을 0으로 당김
    close = np.exp(trend + cycle + noise)

    high = close * (1 + np.abs(rng.normal(0, 0.015, n)))
    low = close * (1 - np.abs(rng.normal(0, 0.015, n)))
    open_price = close * (1 + rng.normal(0, 0.008, n))
    volume = rng.lognormal(20, 0.6, n)
    return _frame(dates, open=open_price, high=high, low=low, close=close, volume=volume)


class SampleDataSource(StaticDataSource):
    """결정적 합성 데이터를 돌려주는 DataSource."""

    def __init__(self, seed: int = 42, start: str = "2013-01-01", days: int = 4500):
        rng = np.random.RandomState(seed)
        dates = pd.date_range(start=start, periods=days, freq="D")
        btc = generate_btc_history(rng, dates)
        close = btc["close"].to_numpy()
        n = len(dates)
        t = np.arange(n)

        # 해시레이트 (TH/s): 약 2만 → 6억, 3일 간격
        hashrate = 2e4 * np.exp(t * np.log(3e4) / n) * (1 + rng.normal(0, 0.03, n))
        hashrate_df = _frame(dates, hashrate=hashrate).iloc[::3]

        # 스테이블코인: 2017년부터
        stable_mask = dates >= pd.Timestamp("2017-01-01")
        ts = np.arange(stable_mask.sum())
        supply = 1e9 * np.exp(ts * np.log(200) / max(len(ts), 1)) * (1 + 0.08 * np.sin(ts / 120))
        supply_df = _frame(dates[stable_mask], supply=supply)

        binance = close * (1 + rng.normal(0, 0.0005, n))
        coinbase = close * (1 + rng.normal(0.0004, 0.0008, n))
        longs = 35000 + 15000 * np.sin(t / 90) + rng.normal(0, 800, n)
        dvol = np.maximum(20, 55 + 18 * np.sin(t / 45) + rng.normal(0, 2, n))

        realized = pd.Series(close).rolling(500, min_periods=30).mean().to_numpy() * 0.75
        realized_df = _frame(dates, realized_price=realized).iloc[::7].dropna()

        super().__init__(
            series={
                "btc": btc,
                "hashrate": hashrate_df,
                "stablecoin_supply": supply_df,
                "binance": _frame(dates, close=binance),
                "coinbase": _frame(dates, close=coinbase),
                "bitfinex_longs": _frame(dates, longs=longs),
                "dvol": _frame(dates, iv=dvol),
                "realized_price": realized_df,
            },
            options_summary=OptionsSummary(
                put_call_ratio=round(float(rng.uniform(0.35, 0.85)), 3),
                total_open_interest=float(rng.uniform(3e5, 5e5)),
                aggregate_iv=float(dvol[-1]),
                underlying_price=float(close[-1]),
            ),
            altcoin_snapshot=self._altcoin_snapshot_from(rng, dates[-1]),
            korean_quotes=self._korean_quotes_from(rng, float(close[-1])),
        )
        logger.info(f"샘플 데이터 생성: {days}일, seed={seed}")

    @staticmethod
    def _altcoin_snapshot_from(rng: np.random.RandomState, as_of: pd.Timestamp) -> AltcoinSnapshot:
        quotes = []
        for symbol in ALTCOIN_SYMBOLS:
            price = float(np.exp(rng.uniform(-8, 8)))
            oi_base = float(rng.uniform(1e5, 1e8)) / price
            oi_history = list(oi_base * (1 + np.cumsum(rng.normal(0, 0.03, 30))))
            quotes.append(AltcoinQuote(
                symbol=symbol,
                price=price,
                price_change_24h=float(rng.normal(0, 4)),
                price_change_7d=float(rng.normal(0, 12)),
                spot_volume_24h=float(rng.lognormal(18, 1.2)),
                market_cap=float(rng.lognormal(22, 1.0)),
                fdv=float(rng.lognormal(22.5, 1.0)),
                open_interest_base=oi_history[-1],
                oi_history=oi_history,
                funding_rate=float(rng.normal(0.0001, 0.0002)),
                futures_volume_base=float(rng.lognormal(18, 1.0)) / price,
            ))
        return AltcoinSnapshot(
            quotes=quotes,
            btc_change_7d=float(rng.normal(0, 6)),
            as_of=as_of.strftime("%Y-%m-%d"),
        )

    @staticmethod
    def _korean_quotes_from(rng: np.random.RandomState, btc_usd: float) -> list[KoreanQuote]:
        fx = 1380.0
        quotes = [KoreanQuote(
            symbol="BTC",
            name="비트코인",
            krw_price=btc_usd * fx * (1 + rng.normal(0.01, 0.01)),
            usd_price=btc_usd,
            upbit_volume_24h=float(rng.lognormal(26, 0.5)),
            bithumb_volume_24h=float(rng.lognormal(25, 0.5)),
            change_rate_24h=float(rng.normal(0, 0.02)),
            market_cap=btc_usd * 19.8e6,
        )]
        btc_fx = quotes[0].krw_price / btc_usd
        for symbol, name in KOREAN_SYMBOLS:
            usd = float(np.exp(rng.uniform(-5, 8)))
            quotes.append(KoreanQuote(
                symbol=symbol,
                name=name,
                krw_price=usd * btc_fx * (1 + rng.normal(0, 0.01)),
                usd_price=usd,
                upbit_volume_24h=float(rng.lognormal(24, 1.0)),
                bithumb_volume_24h=float(rng.lognormal(23, 1.0)),
                change_rate_24h=float(rng.normal(0, 0.03)),
                market_cap=float(rng.lognormal(22, 1.0)),
            ))
        return quotes
