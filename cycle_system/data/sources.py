"""
DataSource 구현체 모음.

[ 구현체 ]
    StaticDataSource   메모리에 올린 DataFrame/스냅샷을 그대로 돌려줌 (테스트, 노트북)
    CsvDataSource      data_dir/<시계열 이름>.csv 파일을 읽음
    YahooDataSource    CsvDataSource + BTC 일봉만 yfinance로 수집

[ CSV 파일 규칙 (CsvDataSource) ]
    btc.csv, hashrate.csv, stablecoin_supply.csv, binance.csv, coinbase.csv,
    bitfinex_longs.csv, dvol.csv, realized_price.csv
        → timestamp 또는 date 컬럼 + SERIES_COLUMNS의 값 컬럼
    options_summary.json  → OptionsSummary 필드
    altcoins.csv          → AltcoinQuote 필드 (oi_history는 공백 구분 숫자열)
                            symbol이 BTC인 행은 btc_change_7d로만 쓰인다
    korean.csv            → KoreanQuote 필드 (BTC 행 포함)
    파일이 없으면 빈 프레임/None을 돌려준다.
"""

import json
import logging
import math
from dataclasses import fields
from datetime import date
from pathlib import Path
from typing import Any

import pandas as pd

from cycle_system.core.data_source import (
    AltcoinQuote,
    AltcoinSnapshot,
    DataSource,
    KoreanQuote,
    OptionsSummary,
    empty_series,
    normalize_series,
)
from cycle_system.ingestion.yahoo_finance import fetch_btc_history

logger = logging.getLogger("cycle_system.data")


class StaticDataSource(DataSource):
    """미리 준비한 시계열 프레임을 돌려주는 DataSource.

    사용 예:
        source = StaticDataSource(
            {"btc": prices, "dvol": dvol_df},
            options_summary=OptionsSummary(put_call_ratio=0.8),
        )
    """

    def __init__(
        self,
        series: dict[str, pd.DataFrame] | None = None,
        options_summary: OptionsSummary | None = None,
        altcoin_snapshot: AltcoinSnapshot | None = None,
        korean_quotes: list[KoreanQuote] | None = None,
    ):
        self._series = {
            name: normalize_series(df, name) for name, df in (series or {}).items()
        }
        self._options_summary = options_summary
        self._altcoin_snapshot = altcoin_snapshot or AltcoinSnapshot(quotes=[])
        self._korean_quotes = list(korean_quotes or [])

    def _get(self, name: str, days: int | None = None) -> pd.DataFrame:
        df = self._series.get(name)
        if df is None:
            return empty_series(name)
        if days is not None:
            df = df.tail(days).reset_index(drop=True)
        return df.copy()

    def fetch_btc_history(self) -> pd.DataFrame:
        return self._get("btc")

    def fetch_hashrate(self) -> pd.DataFrame:
        return self._get("hashrate")

    def fetch_stablecoin_supply(self) -> pd.DataFrame:
        return self._get("stablecoin_supply")

    def fetch_binance_closes(self, days: int = 1000) -> pd.DataFrame:
        return self._get("binance", days)

    def fetch_coinbase_closes(self, days: int = 1000) -> pd.DataFrame:
        return self._get("coinbase", days)

    def fetch_bitfinex_longs(self, days: int = 365) -> pd.DataFrame:
        return self._get("bitfinex_longs", days)

    def fetch_dvol(self, days: int = 730) -> pd.DataFrame:
        return self._get("dvol", days)

    def fetch_options_summary(self) -> OptionsSummary | None:
        return self._options_summary

    def fetch_realized_price(self) -> pd.DataFrame:
        return self._get("realized_price")

    def fetch_altcoin_snapshot(self) -> AltcoinSnapshot:
        return self._altcoin_snapshot

    def fetch_korean_snapshot(self) -> list[KoreanQuote]:
        return list(self._korean_quotes)


class CsvDataSource(StaticDataSource):
    """data_dir 아래 CSV/JSON 파일을 읽는 DataSource. 파일은 처음 조회할 때 읽는다."""

    def __init__(self, data_dir: str | Path = "data"):
        super().__init__()
        self.data_dir = Path(data_dir)

    def _get(self, name: str, days: int | None = None) -> pd.DataFrame:
        if name not in self._series:
            self._series[name] = self._read_series(name)
        return super()._get(name, days)

    def _read_series(self, name: str) -> pd.DataFrame:
        path = self.data_dir / f"{name}.csv"
        if not path.exists():
            logger.warning(f"{path} 없음 → 빈 시계열")
            return empty_series(name)
        df = pd.read_csv(path)
        logger.info(f"{path} 로드: {len(df)}행")
        return normalize_series(df, name)

    def fetch_options_summary(self) -> OptionsSummary | None:
        path = self.data_dir / "options_summary.json"
        if not path.exists():
            return None
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
        return OptionsSummary(**_known_fields(OptionsSummary, data))

    def fetch_altcoin_snapshot(self) -> AltcoinSnapshot:
        path = self.data_dir / "altcoins.csv"
        if not path.exists():
            return AltcoinSnapshot(quotes=[])

        quotes = []
        btc_change_7d = 0.0
        for record in _read_records(path):
            if str(record["symbol"]).upper() == "BTC":
                btc_change_7d = float(record.get("price_change_7d", 0.0))
                continue
            history = record.get("oi_history", "")
            record["oi_history"] = [float(v) for v in str(history).split()] if history else []
            quotes.append(AltcoinQuote(**_known_fields(AltcoinQuote, record)))

        as_of = date.fromtimestamp(path.stat().st_mtime).isoformat()
        return AltcoinSnapshot(quotes=quotes, btc_change_7d=btc_change_7d, as_of=as_of)

    def fetch_korean_snapshot(self) -> list[KoreanQuote]:
        path = self.data_dir / "korean.csv"
        if not path.exists():
            return []
        return [KoreanQuote(**_known_fields(KoreanQuote, r)) for r in _read_records(path)]


class YahooDataSource(CsvDataSource):
    """BTC 일봉은 yfinance로 수집하고 나머지 시계열은 CSV에서 읽는다."""

    def __init__(
        self,
        data_dir: str | Path = "data",
        history_start: str = "2013-01-01",
        max_retries: int = 3,
        retry_delay: int = 5,
    ):
        super().__init__(data_dir)
        self.history_start = date.fromisoformat(history_start)
        self.max_retries = max_retries
        self.retry_delay = retry_delay

    def fetch_btc_history(self) -> pd.DataFrame:
        if "btc" not in self._series:
            df = fetch_btc_history(
                self.history_start,
                max_retries=self.max_retries,
                retry_delay=self.retry_delay,
            )
            self._series["btc"] = normalize_series(df, "btc")
        return super()._get("btc")


def _read_records(path: Path) -> list[dict[str, Any]]:
    df = pd.read_csv(path)
    records = df.to_dict(orient="records")
    # 빈 칸(NaN)은 dataclass 기본값을 쓰도록 제거
    return [
        {k: v for k, v in r.items() if not (isinstance(v, float) and math.isnan(v))}
        for r in records
    ]


def _known_fields(cls: type, data: dict[str, Any]) -> dict[str, Any]:
    names = {f.name for f in fields(cls)}
    return {k: v for k, v in data.items() if k in names}
