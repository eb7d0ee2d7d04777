"""
시계열 기본 연산 모듈.

[ 역할 ]
    모든 지표가 공통으로 쓰는 순수 함수 모음.
    입력 길이와 같은 길이의 배열을 반환하며, 계산 불가 구간은 NaN으로 표시한다.
    (0으로 채우거나 생략하면 날짜 정렬이 조용히 어긋나므로 금지)

[ 제공 함수 ]
    sma()              단순이동평균 (러닝섬, O(n))
    rate_of_change()   N기간 변화율 (%)
    z_score()          마지막 값의 모집단 z-score (5개 미만/분산 0 → 0)
    resample_weekly()  일봉 → 주봉 (epoch 기준 7일 버킷의 마지막 값)
    align_to_dates()   날짜 기준 조인 (+ 선택적 forward-fill)
    shift_date()       "YYYY-MM-DD" 달력일 이동

[ 호출하는 곳 ]
    - indicators/*.py 전 지표
    - screeners/altcoins.py (OI z-score)
"""

import math
from datetime import date, timedelta
from typing import Iterable, Mapping, Sequence

import numpy as np
import pandas as pd

SECONDS_PER_WEEK = 7 * 24 * 60 * 60
ZSCORE_MIN_POINTS = 5


def sma(values: Sequence[float] | np.ndarray | pd.Series, period: int) -> np.ndarray:
    """단순이동평균.

    i번째 값은 i에서 끝나는 최근 period개 값의 산술평균.
    i + 1 < period 인 구간은 NaN.
    """
    if period < 1:
        raise ValueError(f"period는 1 이상이어야 합니다: {period}")

    data = np.asarray(values, dtype=float)
    result = np.full(len(data), np.nan)
    running = 0.0

    for i in range(len(data)):
        running += data[i]
        if i >= period:
            running -= data[i - period]
        if i >= period - 1:
            result[i] = running / period

    return result


def rate_of_change(values: Sequence[float] | np.ndarray | pd.Series, period: int) -> np.ndarray:
    """N기간 변화율(%). (v[i] - v[i-period]) / v[i-period] * 100

    i < period 이거나 분모가 0 이하이면 NaN.
    """
    if period < 1:
        raise ValueError(f"period는 1 이상이어야 합니다: {period}")

    data = np.asarray(values, dtype=float)
    result = np.full(len(data), np.nan)
    for i in range(period, len(data)):
        base = data[i - period]
        if base > 0:
            result[i] = (data[i] - base) / base * 100
    return result


def z_score(window: Sequence[float] | np.ndarray) -> float:
    """윈도우 마지막 값의 z-score. 모집단 표준편차(N으로 나눔) 사용.

    데이터가 5개 미만이거나 표준편차가 0이면 0을 반환 (중립 처리).
    """
    data = np.asarray(window, dtype=float)
    if len(data) < ZSCORE_MIN_POINTS:
        return 0.0

    mean = float(np.mean(data))
    std = float(np.std(data))
    if std == 0:
        return 0.0
    return (float(data[-1]) - mean) / std


def resample_weekly(prices: pd.DataFrame) -> pd.DataFrame:
    """일봉 → 주봉.

    Unix epoch 기준 연속 주 번호(timestamp // 604800)로 버킷을 나누고,
    각 버킷에서 마지막으로 본 일봉 행을 남긴다. 연도 경계에서 주가 쪼개지지 않는다.
    """
    if prices.empty:
        return prices.copy()

    week = prices["timestamp"].astype("int64") // SECONDS_PER_WEEK
    # 연속된 같은 버킷의 마지막 행만 유지 (정렬된 입력 가정)
    is_last = week.ne(week.shift(-1))
    return prices[is_last.to_numpy()].reset_index(drop=True)


def align_to_dates(
    dates: Iterable[str],
    values_by_date: Mapping[str, float],
    forward_fill: bool = False,
) -> np.ndarray:
    """날짜 목록에 맞춰 값을 정렬.

    forward_fill=True이면 마지막으로 확인된 양수 값을 다음 날짜로 이어 쓴다.
    (채굴원가, 실현가격처럼 샘플링 간격이 듬성한 시계열용)
    아직 값이 없는 구간은 NaN.
    """
    result = []
    last_known = math.nan
    for d in dates:
        value = values_by_date.get(d)
        if forward_fill:
            if value is not None and value > 0:
                last_known = float(value)
            result.append(last_known)
        else:
            result.append(float(value) if value is not None else math.nan)
    return np.asarray(result, dtype=float)


def shift_date(date_str: str, days: int) -> str:
    """"YYYY-MM-DD" 문자열을 달력일 기준으로 이동."""
    return (date.fromisoformat(date_str) + timedelta(days=days)).isoformat()
