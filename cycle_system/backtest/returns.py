"""
선행 수익률 계산 모듈.

[ 역할 ]
    백테스트 이벤트 시점에서 N일 뒤 BTC 수익률을 구한다.
    두 가지 조회 방식이 공존하며, 지표마다 원래 쓰던 방식을 그대로 유지한다.

[ 조회 방식 ]
    배열 오프셋  forward_return()          prices[i + N] (일봉에 빠진 날이 없다고 가정)
    달력 날짜    forward_return_by_date()  date + N일 문자열로 조회 (빠진 날이 있으면 None)

    두 방식은 데이터에 공백이 있을 때 결과가 달라진다. 하나로 합치면
    기존 백테스트 결과가 조용히 바뀌므로 통일하지 않는다.

[ 호출하는 곳 ]
    - indicators/*.py 백테스트의 enrich 단계
"""

import math
from typing import Mapping

import pandas as pd

from cycle_system.utils.format import format_percent
from cycle_system.utils.timeseries import shift_date

UNKNOWN = "?"


def forward_return(prices: pd.DataFrame, index: int, periods: int) -> float:
    """배열 오프셋 기준 N기간 수익률(%). 범위를 벗어나면 NaN."""
    target = index + periods
    if index < 0 or target >= len(prices):
        return math.nan
    closes = prices["close"]
    start = float(closes.iat[index])
    if start <= 0:
        return math.nan
    return (float(closes.iat[target]) - start) / start * 100


def forward_return_by_date(
    close_by_date: Mapping[str, float],
    date_str: str,
    days: int,
) -> float:
    """달력 날짜 기준 N일 수익률(%). 시작일/목표일 가격이 없으면 NaN."""
    start = close_by_date.get(date_str)
    end = close_by_date.get(shift_date(date_str, days))
    if not start or not end:
        return math.nan
    return (end - start) / start * 100


def format_return(value: float, decimals: int = 1) -> str:
    """수익률 표기. 계산 불가이면 "?"."""
    if math.isnan(value):
        return UNKNOWN
    return format_percent(value, decimals)


def close_by_date(prices: pd.DataFrame) -> dict[str, float]:
    """BTC 일봉 → {date: close} 조회 테이블."""
    return dict(zip(prices["date"], prices["close"].astype(float)))


def index_by_date(prices: pd.DataFrame) -> dict[str, int]:
    """BTC 일봉 → {date: 배열 인덱스} 조회 테이블."""
    return {d: i for i, d in enumerate(prices["date"])}
