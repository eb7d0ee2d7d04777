"""
지표 추상 클래스 정의.

[ 역할 ]
    모든 사이클 지표의 공통 인터페이스와 결과 계약(IndicatorResult)을 정의.
    BTC 일봉(+ 필요 시 DataSource에서 조회한 보조 시계열)을 받아
    현재값, 매수/중립/매도 시그널, 차트 데이터, 백테스트 표를 만든다.

[ 구현체 ]
    - indicators/mayer_multiple.py::MayerMultiple
    - indicators/two_hundred_wma.py::TwoHundredWMA
    - indicators/stablecoin_supply.py::StablecoinSupply
    - indicators/exchange_gap.py::BinanceCoinbaseGap
    - indicators/bitfinex_longs.py::BitfinexLongs
    - indicators/deribit_options.py::DeribitOptions
    - indicators/mining_cost.py::MiningCost
    - indicators/realized_price.py::RealizedPrice
    - indicators/cycle_composite.py::CycleComposite

[ 호출하는 곳 ]
    - dashboard.py::Dashboard.run()이 지표 목록을 순회하며 calculate() 호출

[ 데이터 흐름 ]
    prices(BTC 일봉 DataFrame) → calculate() → IndicatorResult
    보조 시계열 조회 실패 / 데이터 부족 → empty_result() (예외를 던지지 않음)
"""

import logging
import math
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Callable

import pandas as pd

from cycle_system.core.data_source import DataSource

logger = logging.getLogger("cycle_system.indicators")


class Signal(Enum):
    """지표가 반환하는 3단계 시그널."""
    BUY = "buy"
    NEUTRAL = "neutral"
    SELL = "sell"

    @property
    def vote(self) -> int:
        """복합 점수용 투표값 (+1 / 0 / -1)."""
        return {"buy": 1, "neutral": 0, "sell": -1}[self.value]


def classify(
    value: float,
    buy: Callable[[float], bool],
    sell: Callable[[float], bool],
) -> Signal:
    """최신 값 + 고정 임계값으로 시그널 분류. NaN은 항상 중립."""
    if value is None or math.isnan(value):
        return Signal.NEUTRAL
    if buy(value):
        return Signal.BUY
    if sell(value):
        return Signal.SELL
    return Signal.NEUTRAL


# ─── 차트 / 결과 Dataclass ──────────────────────────────────────────────────

@dataclass
class ChartPoint:
    time: str
    value: float


@dataclass
class ChartLine:
    label: str
    color: str
    data: list[ChartPoint] = field(default_factory=list)


@dataclass
class ChartBar:
    time: str
    value: float
    color: str


@dataclass
class ChartMarker:
    time: str
    label: str
    color: str


@dataclass
class ChartDataSet:
    """차트 페이로드. 지표마다 lines / bars / markers 중 필요한 것만 채운다."""
    lines: list[ChartLine] = field(default_factory=list)
    bars: list[ChartBar] = field(default_factory=list)
    markers: list[ChartMarker] = field(default_factory=list)


@dataclass
class ChartConfig:
    """type: "line" | "bar" | "line+line" | "line+histogram"."""
    type: str = "line"
    log_scale: bool = False


@dataclass
class IndicatorResult:
    """calculate()의 반환값. 렌더링 계층에 넘기는 유일한 계약."""
    id: str
    name: str
    description: str
    current_value: float
    current_value_label: str
    signal: Signal
    signal_rules: str
    chart_data: ChartDataSet = field(default_factory=ChartDataSet)
    chart_config: ChartConfig = field(default_factory=ChartConfig)
    backtest_title: str = ""
    backtest_columns: list[str] = field(default_factory=list)
    backtest_rows: list[dict[str, str | float]] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return self.current_value_label == "N/A" and not self.backtest_rows

    def to_dict(self) -> dict[str, Any]:
        """JSON 직렬화 가능한 딕셔너리."""
        data = asdict(self)
        data["signal"] = self.signal.value
        if isinstance(self.current_value, float) and math.isnan(self.current_value):
            data["current_value"] = None
        return data


# ─── 추상 클래스 ────────────────────────────────────────────────────────────

class Indicator(ABC):
    """지표 추상 클래스.

    새 지표를 만들려면 이 클래스를 상속받아 id/name/description을 정하고
    calculate()를 구현하면 된다. 보조 시계열은 self._fetch()로 조회한다.
    """

    id: str = ""
    name: str = ""
    description: str = ""

    # config.yaml의 indicators.<id> 섹션으로 오버라이드 가능한 기본값
    DEFAULT_PARAMS: dict[str, Any] = {}

    def __init__(
        self,
        source: DataSource | None = None,
        params: dict[str, Any] | None = None,
    ):
        self.source = source
        self.params = {**self.DEFAULT_PARAMS, **(params or {})}

    @abstractmethod
    def calculate(self, prices: pd.DataFrame) -> IndicatorResult:
        """지표 계산.

        Args:
            prices: BTC 일봉 DataFrame (timestamp 오름차순)

        Returns:
            IndicatorResult: 데이터가 없으면 empty_result()
        """
        ...

    def empty_result(self, description: str | None = None) -> IndicatorResult:
        """데이터 없음 결과. 시그널은 중립, 차트/백테스트는 비어 있다."""
        return IndicatorResult(
            id=self.id,
            name=self.name,
            description=description or self.description,
            current_value=0.0,
            current_value_label="N/A",
            signal=Signal.NEUTRAL,
            signal_rules="No data available",
            chart_data=ChartDataSet(),
            chart_config=ChartConfig(type="line"),
            backtest_title="No data",
            backtest_columns=[],
            backtest_rows=[],
        )

    def _fetch(self, label: str, fetch: Callable[..., Any], *args: Any) -> Any:
        """DataSource 메서드 호출. 실패하면 경고 로그 후 None 반환."""
        try:
            return fetch(*args)
        except Exception as e:
            logger.warning(f"[{self.id}] {label} 조회 실패: {e}")
            return None

    def _require_source(self) -> DataSource | None:
        if self.source is None:
            logger.warning(f"[{self.id}] DataSource가 주입되지 않았습니다.")
        return self.source

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self.id!r})"
