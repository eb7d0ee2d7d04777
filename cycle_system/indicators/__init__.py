"""
지표 모듈.

[ 지표 등록 방식 ]
    INDICATOR_CLASSES 튜플에 클래스를 넣으면 INDICATOR_REGISTRY(id → 클래스)에 등록된다.
    튜플 순서가 곧 대시보드 표시 순서이며, 실행 중에 바뀌지 않는다.

[ 새 지표 추가 방법 ]
    1. 이 디렉토리에 새 .py 파일 생성
    2. Indicator를 상속받는 클래스 작성 (id, name, description, calculate)
    3. INDICATOR_CLASSES에 원하는 위치로 추가
    4. 필요하면 config.yaml의 indicators.<id>에 파라미터 지정
"""

from typing import Any

from cycle_system.core.data_source import DataSource
from cycle_system.core.indicator import Indicator
from cycle_system.indicators.bitfinex_longs import BitfinexLongs
from cycle_system.indicators.cycle_composite import CycleComposite
from cycle_system.indicators.deribit_options import DeribitOptions
from cycle_system.indicators.exchange_gap import BinanceCoinbaseGap
from cycle_system.indicators.mayer_multiple import MayerMultiple
from cycle_system.indicators.mining_cost import MiningCost
from cycle_system.indicators.realized_price import RealizedPrice
from cycle_system.indicators.stablecoin_supply import StablecoinSupply
from cycle_system.indicators.two_hundred_wma import TwoHundredWMA
from cycle_system.utils.config import Config

# 대시보드 표시 순서
INDICATOR_CLASSES: tuple[type[Indicator], ...] = (
    CycleComposite,
    MayerMultiple,
    TwoHundredWMA,
    StablecoinSupply,
    BinanceCoinbaseGap,
    BitfinexLongs,
    DeribitOptions,
    MiningCost,
    RealizedPrice,
)

# 지표 id → 지표 클래스 매핑
INDICATOR_REGISTRY: dict[str, type[Indicator]] = {cls.id: cls for cls in INDICATOR_CLASSES}

# 채굴원가 모델 파라미터를 받는 지표
_MINING_MODEL_IDS = (MiningCost.id, CycleComposite.id)


def create_indicator(
    indicator_id: str,
    source: DataSource | None = None,
    params: dict[str, Any] | None = None,
) -> Indicator:
    """id로 지표 인스턴스를 생성.

    Args:
        indicator_id: 등록된 지표 id (예: "mayer-multiple", "cycle-composite")
        source: 보조 시계열을 조회할 DataSource
        params: 지표 파라미터 (각 지표의 DEFAULT_PARAMS를 오버라이드)

    Raises:
        ValueError: 등록되지 않은 지표 id
    """
    if indicator_id not in INDICATOR_REGISTRY:
        available = ", ".join(list_indicators())
        raise ValueError(f"알 수 없는 지표: '{indicator_id}'. 사용 가능: {available}")
    return INDICATOR_REGISTRY[indicator_id](source=source, params=params)


def build_indicators(
    source: DataSource | None,
    config: Config | None = None,
    ids: list[str] | None = None,
) -> list[Indicator]:
    """설정을 반영한 지표 인스턴스 목록. ids를 주면 그 순서대로, 없으면 전체."""
    config = config or Config()
    selected = ids or list_indicators()

    indicators = []
    for indicator_id in selected:
        params = dict(config.indicator_params(indicator_id))
        if indicator_id in _MINING_MODEL_IDS:
            params = {
                "joules_per_th": config.mining.joules_per_th,
                "electricity_rate": config.mining.electricity_rate,
                **params,
            }
        indicators.append(create_indicator(indicator_id, source=source, params=params))
    return indicators


def list_indicators() -> list[str]:
    """등록된 지표 id 목록 (표시 순서)."""
    return [cls.id for cls in INDICATOR_CLASSES]
