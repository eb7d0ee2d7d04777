"""
표시용 숫자/날짜 포맷 모듈.

[ 역할 ]
    지표 결과(IndicatorResult)와 백테스트 행에 들어갈 문자열을 만든다.
    포맷은 지표 모듈 안에서 끝내고, 엔진/렌더링 계층은 문자열을 그대로 쓴다.

[ 규칙 ]
    통화:    1000 미만 소수 2자리, 1000 이상 천단위 구분 정수   ($512.35 / $43,120)
    퍼센트:  항상 부호 표시, 고정 소수 자릿수                  (+12.5% / -3.0%)
    축약:    1e3/1e6/1e9/1e12 기준 K/M/B/T                    ($152.3B)
    날짜:    "Mon YYYY"                                         (Jan 2024)
"""

import math
from datetime import date

NOT_AVAILABLE = "N/A"


def round_half_up(value: float) -> int:
    """정수 반올림 (0.5는 올림). 파이썬 round()의 은행가 반올림을 쓰지 않는다."""
    return int(math.floor(value + 0.5))


def format_currency(value: float) -> str:
    """달러 표기. 1000 이상은 정수, 미만은 소수 2자리."""
    if math.isnan(value):
        return NOT_AVAILABLE
    if value >= 1000:
        return f"${value:,.0f}"
    return f"${value:,.2f}"


def format_percent(value: float, decimals: int = 1) -> str:
    """부호가 붙은 퍼센트."""
    if math.isnan(value):
        return NOT_AVAILABLE
    sign = "+" if value >= 0 else ""
    return f"{sign}{value:,.{decimals}f}%"


def format_number(value: float, decimals: int = 2) -> str:
    """천단위 구분 + 고정 소수 자릿수."""
    if math.isnan(value):
        return NOT_AVAILABLE
    return f"{value:,.{decimals}f}"


def format_compact(value: float, prefix: str = "", suffix: str = "", decimals: int = 1) -> str:
    """큰 수를 K/M/B/T 단위로 축약."""
    if math.isnan(value):
        return NOT_AVAILABLE
    for threshold, unit in ((1e12, "T"), (1e9, "B"), (1e6, "M"), (1e3, "K")):
        if abs(value) >= threshold:
            return f"{prefix}{value / threshold:.{decimals}f}{unit}{suffix}"
    return f"{prefix}{value:.0f}{suffix}"


def format_signed_int(value: int) -> str:
    """점수 표기 (+2 / -1 / +0)."""
    return f"+{value}" if value >= 0 else f"{value}"


def format_date(date_str: str) -> str:
    """"2024-01-15" → "Jan 2024"."""
    return date.fromisoformat(date_str).strftime("%b %Y")
