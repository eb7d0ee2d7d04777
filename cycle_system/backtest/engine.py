"""
백테스트 엔진 모듈.

[ 역할 ]
    과거 시계열을 순회하며 지표별 트리거 조건이 충족된 날을 찾고,
    각 이벤트에 선행 수익률 등 부가 정보를 붙여 표(BacktestTable)로 만든다.
    모든 지표의 백테스트가 이 하나의 알고리즘으로 표현된다.

[ 실행 흐름 ]
    run_backtest() 호출 시:
        1. 인덱스 0..n-1을 순서대로 순회
        2. 직전 이벤트와의 인덱스 거리 < cooldown_periods 이면 건너뜀
        3. config.trigger(frame, i, computed) 호출 → None이면 이벤트 없음
        4. 행이 반환되면 config.enrich(row, i, frame)로 보강 (미래 가격 조회 가능)
        5. rows에 추가하고 last_trigger = i

[ 쿨다운 ]
    인덱스 공간(이벤트 수가 아닌 배열 거리)에서 적용된다.
    인접한 날들이 같은 임계값을 연달아 충족해 이벤트가 뭉치는 것을 막는다.

[ 호출하는 곳 ]
    - indicators/*.py 각 지표의 백테스트
    - frame은 BTC 일봉일 수도, 보조 시계열(갭, 롱 포지션, DVOL 등)일 수도 있다
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Sequence

import numpy as np
import pandas as pd

logger = logging.getLogger("cycle_system.backtest")

BacktestRow = dict[str, str | float]
TriggerFn = Callable[[pd.DataFrame, int, np.ndarray], BacktestRow | None]
EnrichFn = Callable[[BacktestRow, int, pd.DataFrame], BacktestRow]


@dataclass(frozen=True)
class BacktestColumn:
    """백테스트 표의 컬럼 선언. key는 행 dict의 키, label은 표시 이름."""
    key: str
    label: str


@dataclass
class BacktestConfig:
    """지표별 백테스트 설정."""
    title: str
    columns: list[BacktestColumn]
    trigger: TriggerFn
    enrich: EnrichFn | None = None
    cooldown_periods: int = 30


@dataclass
class BacktestTable:
    """run_backtest()의 반환값."""
    title: str
    columns: list[str] = field(default_factory=list)
    rows: list[BacktestRow] = field(default_factory=list)


def columns(*pairs: tuple[str, str]) -> list[BacktestColumn]:
    """(key, label) 쌍 목록 → BacktestColumn 목록."""
    return [BacktestColumn(key, label) for key, label in pairs]


def run_backtest(
    frame: pd.DataFrame,
    computed: Sequence[float] | np.ndarray,
    config: BacktestConfig,
) -> BacktestTable:
    """트리거/쿨다운 스캔 실행.

    Args:
        frame: 순회할 시계열 (BTC 일봉 또는 보조 시계열)
        computed: frame과 같은 길이의 계산값 배열 (NaN 가능)
        config: 트리거/보강/쿨다운 설정

    Returns:
        BacktestTable: 제목, 컬럼 라벨, 이벤트 행 목록
    """
    values = np.asarray(computed, dtype=float)
    if len(values) != len(frame):
        raise ValueError(
            f"computed 길이({len(values)})가 frame 길이({len(frame)})와 다릅니다."
        )

    rows: list[BacktestRow] = []
    last_trigger = -np.inf

    for i in range(len(frame)):
        if i - last_trigger < config.cooldown_periods:
            continue

        row = config.trigger(frame, i, values)
        if row is None:
            continue

        if config.enrich is not None:
            row = config.enrich(row, i, frame)
        rows.append(row)
        last_trigger = i
        logger.debug(f"[{config.title}] 이벤트 #{len(rows)} @ index {i}")

    logger.debug(f"[{config.title}] 스캔 완료: {len(frame)}개 중 {len(rows)}건")
    return BacktestTable(
        title=config.title,
        columns=[c.label for c in config.columns],
        rows=rows,
    )
