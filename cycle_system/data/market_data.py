"""
시장 데이터 캐싱 모듈.

[ 역할 ]
    DataSource를 감싸서 캐싱 레이어 제공.
    복합 지표와 단독 지표가 같은 보조 시계열을 조회하므로
    한 번의 대시보드 실행 안에서 동일 조회는 캐시에서 즉시 반환.

[ 의존성 ]
    - core/data_source.py::DataSource (데이터 소스 추상화)

[ 호출하는 곳 ]
    - run_dashboard.py에서 선택한 소스를 감싸 Dashboard에 전달

[ 주의 ]
    조회 중 예외는 캐시하지 않고 그대로 전파한다. (재호출 시 다시 시도)
    DataFrame은 복사본을 돌려주므로 호출자가 수정해도 캐시는 그대로다.
"""

import logging
from typing import Any, Callable

import pandas as pd

from cycle_system.core.data_source import AltcoinSnapshot, DataSource, KoreanQuote, OptionsSummary

logger = logging.getLogger("cycle_system.data")


class CachedDataSource(DataSource):
    """DataSource 위에 캐싱 레이어를 추가한 래퍼.

    사용 예:
        source = CachedDataSource(CsvDataSource("data"))
        dashboard = Dashboard(build_indicators(source), source)
    """

    def __init__(self, source: DataSource):
        self.source = source
        self._cache: dict[str, Any] = {}  # "메서드_인자" → 결과

    def _cached(self, name: str, fetch: Callable[..., Any], *args: Any) -> Any:
        cache_key = "_".join([name, *map(str, args)])
        if cache_key not in self._cache:
            self._cache[cache_key] = fetch(*args)
            logger.debug(f"캐시 저장: {cache_key}")
        value = self._cache[cache_key]
        return value.copy() if isinstance(value, pd.DataFrame) else value

    def fetch_btc_history(self) -> pd.DataFrame:
        return self._cached("btc", self.source.fetch_btc_history)

    def fetch_hashrate(self) -> pd.DataFrame:
        return self._cached("hashrate", self.source.fetch_hashrate)

    def fetch_stablecoin_supply(self) -> pd.DataFrame:
        return self._cached("stablecoin_supply", self.source.fetch_stablecoin_supply)

    def fetch_binance_closes(self, days: int = 1000) -> pd.DataFrame:
        return self._cached("binance", self.source.fetch_binance_closes, days)

    def fetch_coinbase_closes(self, days: int = 1000) -> pd.DataFrame:
        return self._cached("coinbase", self.source.fetch_coinbase_closes, days)

    def fetch_bitfinex_longs(self, days: int = 365) -> pd.DataFrame:
        return self._cached("bitfinex_longs", self.source.fetch_bitfinex_longs, days)

    def fetch_dvol(self, days: int = 730) -> pd.DataFrame:
        return self._cached("dvol", self.source.fetch_dvol, days)

    def fetch_options_summary(self) -> OptionsSummary | None:
        return self._cached("options_summary", self.source.fetch_options_summary)

    def fetch_realized_price(self) -> pd.DataFrame:
        return self._cached("realized_price", self.source.fetch_realized_price)

    def fetch_altcoin_snapshot(self) -> AltcoinSnapshot:
        return self._cached("altcoins", self.source.fetch_altcoin_snapshot)

    def fetch_korean_snapshot(self) -> list[KoreanQuote]:
        return self._cached("korean", self.source.fetch_korean_snapshot)

    def clear_cache(self) -> None:
        """캐시 초기화."""
        self._cache.clear()
