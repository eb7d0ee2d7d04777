"""
로깅 모듈.

[ 역할 ]
    cycle_system 루트 로거에 파일/콘솔 핸들러를 붙인다.
    지표 계산 결과, 보조 시계열 조회 실패, 대시보드 실행 요약이 여기로 모인다.

[ 로그 파일 위치 ]
    {log_dir}/{name}_{YYYYMMDD}.log (예: logs/cycle_system_20240601.log)
    log_dir=None이면 파일을 만들지 않는다. (테스트, 노트북)

[ 하위 로거 ]
    cycle_system.indicators   지표 조회 실패 / 복합 점수 요약
    cycle_system.data         CSV 로드, 캐시
    cycle_system.ingestion    yfinance 수집
    cycle_system.dashboard    지표별 실행 결과

[ 호출하는 곳 ]
    - run_dashboard.py에서 setup_logger() 호출
"""

import logging
import sys
from datetime import datetime
from pathlib import Path

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# yfinance 내부 HTTP 로그는 WARNING 이상만
NOISY_LOGGERS = ("yfinance", "urllib3", "peewee")


def _daily_log_file(log_dir: str, name: str) -> Path:
    path = Path(log_dir)
    path.mkdir(parents=True, exist_ok=True)
    return path / f"{name}_{datetime.now():%Y%m%d}.log"


def setup_logger(
    name: str = "cycle_system",
    level: str = "INFO",
    log_dir: str | None = "logs",
    console: bool = True,
) -> logging.Logger:
    """cycle_system 로거 설정. 이미 핸들러가 있으면 레벨만 바꾸고 그대로 반환."""
    logger = logging.getLogger(name)
    logger.setLevel(level.upper())
    for noisy in NOISY_LOGGERS:
        logging.getLogger(noisy).setLevel(logging.WARNING)

    if logger.handlers:
        return logger

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)
    handlers: list[logging.Handler] = []
    if log_dir is not None:
        handlers.append(logging.FileHandler(_daily_log_file(log_dir, name), encoding="utf-8"))
    if console:
        handlers.append(logging.StreamHandler(sys.stdout))

    for handler in handlers:
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    return logger
