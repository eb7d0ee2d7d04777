"""
시계열 데이터 제공 추상 클래스 정의.

[ 역할 ]
    지표 계산에 필요한 BTC 일봉 + 보조 시계열 + 스냅샷을 제공하는 인터페이스.
    실제 조회(거래소 API, 온체인 데이터 등)는 외부 협력자의 몫이고,
    코어는 이 인터페이스를 통해 "정리된 DataFrame"만 받는다.

[ 데이터 계약 ]
    BTC 일봉:       timestamp(int 초, UTC 자정), date("YYYY-MM-DD"), open, high, low, close, volume
    보조 시계열:    timestamp, date, <값 컬럼>  (SERIES_COLUMNS 참조)
    모든 프레임은 timestamp 오름차순, RangeIndex.
    조회 실패 시 빈 프레임을 돌려주거나 예외를 던질 수 있다 → 코어는 둘 다 처리.

[ 구현체 ]
    - data/sources.py::StaticDataSource   (메모리 프레임, 테스트용)
    - data/sources.py::CsvDataSource      (CSV 파일)
    - data/sources.py::YahooDataSource    (BTC 일봉만 yfinance)
    - data/sample_data.py::SampleDataSource (합성 데이터)
    - data/market_data.py::CachedDataSource (캐싱 래퍼)

[ 호출하는 곳 ]
    - indicators/*.py 각 지표가 calculate() 안에서 필요한 시계열만 조회
    - dashboard.py가 BTC 일봉을 한 번 조회해 모든 지표에 전달
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field

import pandas as pd

PRICE_COLUMNS = ["timestamp", "date", "open", "high", "low", "close", "volume"]

# 시계열 이름 → 값 컬럼
SERIES_COLUMNS: dict[str, list[str]] = {
    "btc": ["open", "high", "low", "close", "volume"],
    "hashrate": ["hashrate"],                 # TH/s
    "stablecoin_supply": ["supply"],          # USDT + USDC 유통량 (USD)
    "binance": ["close"],                     # BTCUSDT 일봉 종가
    "coinbase": ["close"],                    # BTC-USD 일봉 종가
    "bitfinex_longs": ["longs"],              # BTC 마진 롱 포지션 (BTC)
    "dvol": ["iv"],                           # Deribit DVOL 종가
    "realized_price": ["realized_price"],     # 온체인 실현가격 (USD)
}


# ─── 스냅샷 레코드 ─────────────────────────────────────────────────────────

@dataclass
class OptionsSummary:
    """fetch_options_summary()의 반환값. 과거 이력이 없는 현재 시점 스냅샷."""
    put_call_ratio: float
    total_open_interest: float = 0.0   # 계약 수
    aggregate_iv: float = 0.0          # OI 가중 평균 IV
    underlying_price: float = 0.0


@dataclass
class AltcoinQuote:
    """알트코인 스크리너 입력. 토큰 하나의 원시 시세/파생 데이터."""
    symbol: str
    price: float
    price_change_24h: float = 0.0      # %
    price_change_7d: float = 0.0       # %
    spot_volume_24h: float = 0.0       # USD (CoinGecko)
    market_cap: float = 0.0
    fdv: float = 0.0
    open_interest_base: float = 0.0    # 미결제약정 (기초자산 수량)
    oi_history: list[float] = field(default_factory=list)  # 최근 30일 일별 OI
    funding_rate: float = 0.0          # 8시간 펀딩비 (소수)
    futures_volume_base: float | None = None  # 선물 24h 거래량 (기초자산 수량)


@dataclass
class AltcoinSnapshot:
    """fetch_altcoin_snapshot()의 반환값."""
    quotes: list[AltcoinQuote]
    btc_change_7d: float = 0.0
    as_of: str = ""


@dataclass
class KoreanQuote:
    """한국 거래소 스크리너 입력. BTC 행도 포함되어야 내재 환율을 구할 수 있다."""
    symbol: str
    krw_price: float                   # 업비트 KRW 가격
    usd_price: float                   # 글로벌 USD 가격
    name: str = ""
    upbit_volume_24h: float = 0.0      # KRW
    bithumb_volume_24h: float = 0.0    # KRW
    change_rate_24h: float = 0.0       # 소수 (0.012 = +1.2%)
    market_cap: float = 0.0            # USD


# ─── 프레임 헬퍼 ──────────────────────────────────────────────────────────

def empty_series(name: str) -> pd.DataFrame:
    """빈 시계열 프레임 (컬럼만 존재)."""
    return pd.DataFrame(columns=["timestamp", "date", *SERIES_COLUMNS[name]])


def normalize_series(df: pd.DataFrame | None, name: str) -> pd.DataFrame:
    """외부에서 받은 프레임을 데이터 계약에 맞게 정리.

    - timestamp만 있으면 date를, date만 있으면 timestamp를 채운다.
    - timestamp 오름차순, 같은 날짜는 마지막 값 유지, RangeIndex.
    """
    if df is None or df.empty:
        return empty_series(name)

    out = df.copy()
    if "date" not in out.columns:
        out["date"] = pd.to_datetime(out["timestamp"], unit="s", utc=True).dt.strftime("%Y-%m-%d")
    else:
        out["date"] = pd.to_datetime(out["date"]).dt.strftime("%Y-%m-%d")
    if "timestamp" not in out.columns:
        out["timestamp"] = (
            pd.to_datetime(out["date"]) - pd.Timestamp("1970-01-01")
        ) // pd.Timedelta(seconds=1)

    out["timestamp"] = out["timestamp"].astype("int64")
    out = out.sort_values("timestamp").drop_duplicates(subset="date", keep="last")
    columns = ["timestamp", "date", *SERIES_COLUMNS[name]]
    missing = [c for c in columns if c not in out.columns]
    if missing:
        raise ValueError(f"{name} 시계열에 필요한 컬럼 없음: {missing}")
    for col in SERIES_COLUMNS[name]:
        out[col] = out[col].astype(float)
    return out[columns].reset_index(drop=True)


# ─── 추상 클래스 ────────────────────────────────────────────────────────────

class DataSource(ABC):
    """지표용 데이터 제공 추상 클래스.

    모든 구현체는 아래 메서드를 구현해야 한다. 각 메서드는 빈 프레임을 반환하거나
    예외를 던져 실패를 알릴 수 있다.
    """

    @abstractmethod
    def fetch_btc_history(self) -> pd.DataFrame:
        """BTC 일봉 전체 이력.

        Returns:
            DataFrame with columns: [timestamp, date, open, high, low, close, volume]
        """
        ...

    @abstractmethod
    def fetch_hashrate(self) -> pd.DataFrame:
        """네트워크 해시레이트 (TH/s). 채굴원가 추정 입력."""
        ...

    @abstractmethod
    def fetch_stablecoin_supply(self) -> pd.DataFrame:
        """USDT + USDC 합산 유통량."""
        ...

    @abstractmethod
    def fetch_binance_closes(self, days: int = 1000) -> pd.DataFrame:
        """바이낸스 BTCUSDT 일봉 종가 (최근 days일)."""
        ...

    @abstractmethod
    def fetch_coinbase_closes(self, days: int = 1000) -> pd.DataFrame:
        """코인베이스 BTC-USD 일봉 종가 (최근 days일)."""
        ...

    @abstractmethod
    def fetch_bitfinex_longs(self, days: int = 365) -> pd.DataFrame:
        """비트파이넥스 BTC 마진 롱 포지션 (최근 days일, 일별)."""
        ...

    @abstractmethod
    def fetch_dvol(self, days: int = 730) -> pd.DataFrame:
        """Deribit DVOL 내재변동성 지수 (최근 days일)."""
        ...

    @abstractmethod
    def fetch_options_summary(self) -> OptionsSummary | None:
        """현재 옵션 시장 요약 (풋/콜 OI 비율 등). 없으면 None."""
        ...

    @abstractmethod
    def fetch_realized_price(self) -> pd.DataFrame:
        """온체인 실현가격."""
        ...

    @abstractmethod
    def fetch_altcoin_snapshot(self) -> AltcoinSnapshot:
        """알트코인 스크리너용 횡단면 스냅샷."""
        ...

    @abstractmethod
    def fetch_korean_snapshot(self) -> list[KoreanQuote]:
        """한국 거래소 스크리너용 횡단면 스냅샷."""
        ...
