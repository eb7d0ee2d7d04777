"""
Yahoo Finance BTC 일봉 수집 모듈.

[ 역할 ]
    yfinance로 BTC-USD 일봉을 받아 일봉 프레임 계약(core/data_source.py::PRICE_COLUMNS)으로 변환.
    네트워크 오류는 지정 횟수만큼 재시도하고, 끝내 실패하면 None을 돌려준다.

[ 호출하는 곳 ]
    - data/sources.py::YahooDataSource.fetch_btc_history()
"""
import time
import logging
from datetime import date, timedelta
from typing import Optional

import pandas as pd
import yfinance as yf

from cycle_system.core.data_source import PRICE_COLUMNS

logger = logging.getLogger("cycle_system.ingestion")

BTC_TICKER = "BTC-USD"

YF_COLUMNS = {
    'Date': 'date',
    'Open': 'open',
    'High': 'high',
    'Low': 'low',
    'Close': 'close',
    'Volume': 'volume',
}


def fetch_btc_history(
    start_date: date,
    end_date: Optional[date] = None,
    ticker: str = BTC_TICKER,
    max_retries: int = 3,
    retry_delay: int = 5
) -> Optional[pd.DataFrame]:
    """
    BTC 일봉 전체 이력을 수집합니다.

    Args:
        start_date: 시작 날짜
        end_date: 종료 날짜 (None이면 오늘, 당일 포함)
        ticker: yfinance 티커
        max_retries: 최대 시도 횟수
        retry_delay: 재시도 간 대기 시간 (초)

    Returns:
        일봉 프레임 [timestamp, date, open, high, low, close, volume]
        빈 응답 / 검증 실패 / 재시도 소진 시 None
    """
    end_date = end_date or date.today()

    for attempt in range(1, max_retries + 1):
        try:
            logger.info(f"{ticker} 일봉 요청 {start_date} ~ {end_date} ({attempt}/{max_retries})")
            raw = yf.Ticker(ticker).history(
                start=start_date,
                end=end_date + timedelta(days=1),
                auto_adjust=False,
                actions=False
            )
        except Exception as e:
            logger.error(f"{ticker} 요청 실패 ({attempt}/{max_retries}): {e}")
            if attempt == max_retries:
                logger.error(f"{ticker} 재시도 횟수 소진")
                return None
            time.sleep(retry_delay)
            continue

        if raw.empty:
            logger.warning(f"{ticker} 응답이 비어 있음")
            return None

        frame = to_price_frame(raw)
        if not validate_data(frame, ticker):
            return None
        logger.info(f"{ticker} {len(frame)}일 수집 ({frame['date'].iat[0]} ~ {frame['date'].iat[-1]})")
        return frame

    return None


def to_price_frame(raw: pd.DataFrame) -> pd.DataFrame:
    """
    history() 결과 → 일봉 프레임.

    거래소 시간대가 붙은 날짜 인덱스를 벽시계 날짜로 바꾸고 UTC 자정 timestamp를 만든다.
    같은 날짜가 두 번 오면 나중 행을 쓴다.
    """
    df = raw.reset_index().rename(columns=YF_COLUMNS)

    days = pd.to_datetime(df['date'])
    if days.dt.tz is not None:
        days = days.dt.tz_localize(None)
    days = days.dt.normalize()

    df['date'] = days.dt.strftime('%Y-%m-%d')
    df['timestamp'] = ((days - pd.Timestamp('1970-01-01')) // pd.Timedelta(seconds=1)).astype('int64')
    df = df.sort_values('timestamp').drop_duplicates(subset='date', keep='last')
    return df[PRICE_COLUMNS].reset_index(drop=True)


def validate_data(df: pd.DataFrame, ticker: str) -> bool:
    """
    일봉 프레임 검증.

    컬럼 누락, 0 이하 종가는 실패 (수익률 계산이 깨진다).
    결측치, high < low는 경고만 남긴다.
    """
    if df is None or df.empty:
        logger.warning(f"{ticker}: 빈 프레임")
        return False

    missing = set(PRICE_COLUMNS) - set(df.columns)
    if missing:
        logger.error(f"{ticker}: 컬럼 누락 {sorted(missing)}")
        return False

    bad_close = int((df['close'] <= 0).sum())
    if bad_close:
        logger.error(f"{ticker}: 0 이하 종가 {bad_close}행")
        return False

    nulls = df[PRICE_COLUMNS].isnull().sum()
    if nulls.any():
        logger.warning(f"{ticker}: 결측치 {nulls[nulls > 0].to_dict()}")

    inverted = int((df['high'] < df['low']).sum())
    if inverted:
        logger.warning(f"{ticker}: high < low {inverted}행")

    return True
