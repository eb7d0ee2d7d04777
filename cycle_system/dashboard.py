"""
대시보드 실행 모듈.

[ 역할 ]
    BTC 일봉을 한 번 조회해 모든 지표에 전달하고 결과를 모은다.
    지표 하나가 실패해도 나머지는 계속 계산된다.

[ 실행 흐름 ]
    Dashboard.run() 호출 시:
        1. source.fetch_btc_history() (실패하면 빈 프레임)
        2. 지표 목록 순서대로 indicator.calculate(prices)
           → 예외 발생 시 traceback 로그, 해당 지표의 empty_result()로 대체,
             failures[id]에 메시지 기록
        3. DashboardReport(results, failures, last_updated) 반환

[ 의존성 ]
    - core/indicator.py::Indicator
    - core/data_source.py::DataSource

[ 호출하는 곳 ]
    - run_dashboard.py (진입점)
"""

import logging
from dataclasses import dataclass, field
from typing import Any

import pandas as pd

from cycle_system.core.data_source import PRICE_COLUMNS, DataSource
from cycle_system.core.indicator import Indicator, IndicatorResult

logger = logging.getLogger("cycle_system.dashboard")


@dataclass
class DashboardReport:
    """Dashboard.run()의 반환값."""
    results: list[IndicatorResult] = field(default_factory=list)
    failures: dict[str, str] = field(default_factory=dict)   # 지표 id → 오류 메시지
    last_updated: str = ""                                    # 최신 BTC 일봉 날짜

    def get(self, indicator_id: str) -> IndicatorResult | None:
        return next((r for r in self.results if r.id == indicator_id), None)

    def to_dict(self) -> dict[str, Any]:
        return {
            "indicators": [r.to_dict() for r in self.results],
            "failures": dict(self.failures),
            "last_updated": self.last_updated,
        }

    def summary(self) -> str:
        """지표별 현재값/시그널 요약 문자열."""
        width = max([len(r.name) for r in self.results] + [10]) + 2
        lines = [
            "=" * (width + 42),
            f"BTC 사이클 대시보드 (기준일 {self.last_updated or 'N/A'})",
            "=" * (width + 42),
        ]
        for r in self.results:
            mark = " !" if r.id in self.failures else ""
            lines.append(
                f"{r.name:<{width}}{r.current_value_label:>28}  {r.signal.value.upper():<8}{mark}"
            )
        if self.failures:
            lines.append("-" * (width + 42))
            for indicator_id, message in self.failures.items():
                lines.append(f"[실패] {indicator_id}: {message}")
        lines.append("=" * (width + 42))
        return "\n".join(lines)


class Dashboard:
    """지표 목록 실행기. run()으로 전체 결과를 얻는다."""

    def __init__(self, indicators: list[Indicator], source: DataSource):
        self.indicators = indicators
        self.source = source

    def load_prices(self) -> pd.DataFrame:
        try:
            prices = self.source.fetch_btc_history()
        except Exception:
            logger.exception("BTC 일봉 조회 실패")
            return pd.DataFrame(columns=PRICE_COLUMNS)
        if prices is None:
            return pd.DataFrame(columns=PRICE_COLUMNS)
        return prices

    def run(self) -> DashboardReport:
        prices = self.load_prices()
        logger.info(f"BTC 일봉 {len(prices)}일, 지표 {len(self.indicators)}개 계산 시작")

        report = DashboardReport(
            last_updated=str(prices["date"].iat[-1]) if not prices.empty else "",
        )
        for indicator in self.indicators:
            try:
                result = indicator.calculate(prices)
            except Exception as e:
                logger.exception(f"[{indicator.id}] 계산 실패")
                report.failures[indicator.id] = str(e) or type(e).__name__
                result = indicator.empty_result()
            report.results.append(result)
            logger.info(
                f"[{indicator.id}] {result.current_value_label} / {result.signal.value} "
                f"(백테스트 {len(result.backtest_rows)}건)"
            )

        return report
