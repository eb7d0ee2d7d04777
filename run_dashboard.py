"""
사이클 대시보드 실행 스크립트 (시스템 진입점).

[ 사용법 ]
    # 기본 실행 (샘플 데이터, 전체 지표)
    python run_dashboard.py

    # 지표 지정 (여러 번 지정 가능)
    python run_dashboard.py --indicator cycle-composite --indicator mayer-multiple

    # CSV 데이터 사용 (config.yaml의 data.data_dir)
    python run_dashboard.py --source csv

    # BTC 일봉은 Yahoo Finance, 나머지는 CSV
    python run_dashboard.py --source yahoo

    # 스크리너
    python run_dashboard.py --screener altcoins
    python run_dashboard.py --screener korean

    # 등록된 지표 목록 확인
    python run_dashboard.py --list
"""

import argparse
from pathlib import Path

from cycle_system.core.data_source import DataSource
from cycle_system.core.indicator import IndicatorResult
from cycle_system.dashboard import Dashboard
from cycle_system.data.market_data import CachedDataSource
from cycle_system.data.sample_data import SampleDataSource
from cycle_system.data.sources import CsvDataSource, YahooDataSource
from cycle_system.indicators import INDICATOR_REGISTRY, build_indicators, list_indicators
from cycle_system.screeners.altcoins import build_altcoin_screener
from cycle_system.screeners.korean import build_korean_screener
from cycle_system.utils.config import Config
from cycle_system.utils.logger import setup_logger


def load_source(config: Config, source: str) -> DataSource:
    """데이터 소스 생성. 같은 실행 안의 반복 조회는 캐시된다."""
    if source == "sample":
        print(f"샘플 데이터 생성 중... (seed={config.data.seed})")
        base = SampleDataSource(seed=config.data.seed, start=config.data.history_start)
    elif source == "csv":
        print(f"CSV 데이터 사용: {config.data.data_dir}")
        base = CsvDataSource(config.data.data_dir)
    elif source == "yahoo":
        print(f"Yahoo Finance BTC 일봉 + CSV 보조 데이터: {config.data.data_dir}")
        base = YahooDataSource(
            config.data.data_dir,
            history_start=config.data.history_start,
            max_retries=config.data.max_retries,
            retry_delay=config.data.retry_delay,
        )
    else:
        raise ValueError(f"알 수 없는 데이터 소스: {source}")
    return CachedDataSource(base)


def print_backtest(result: IndicatorResult, max_rows: int):
    """지표 하나의 백테스트 표 출력."""
    print(f"\n[{result.name}] {result.description}")
    print(f"  현재: {result.current_value_label} ({result.signal.value})  ·  {result.signal_rules}")
    if not result.backtest_rows:
        print(f"  {result.backtest_title}: 이벤트 없음")
        return

    print(f"  {result.backtest_title}")
    keys = list(result.backtest_rows[0].keys())
    labels = result.backtest_columns or keys
    widths = [
        max(len(str(label)), *(len(str(row.get(k, ""))) for row in result.backtest_rows)) + 2
        for label, k in zip(labels, keys)
    ]
    print("  " + "".join(f"{label:>{w}}" for label, w in zip(labels, widths)))
    for row in result.backtest_rows[-max_rows:]:
        print("  " + "".join(f"{str(row.get(k, '')):>{w}}" for k, w in zip(keys, widths)))


def main():
    parser = argparse.ArgumentParser(description="BTC 사이클 지표 대시보드")
    parser.add_argument("--config", type=str, default="config.yaml", help="설정 파일 경로")
    parser.add_argument("--source", type=str, default=None, choices=["sample", "csv", "yahoo"], help="데이터 소스 (config.yaml 대신 지정)")
    parser.add_argument("--indicator", action="append", default=[], metavar="ID", help="계산할 지표 id (여러 번 지정 가능)")
    parser.add_argument("--screener", type=str, default=None, choices=["altcoins", "korean"], help="스크리너 실행")
    parser.add_argument("--rows", type=int, default=5, help="지표별 출력할 최근 백테스트 행 수")
    parser.add_argument("--list", action="store_true", help="등록된 지표 목록 출력")
    args = parser.parse_args()

    # 지표 목록 출력
    if args.list:
        print("등록된 지표:")
        for indicator_id in list_indicators():
            print(f"  - {indicator_id:<22} {INDICATOR_REGISTRY[indicator_id].name}")
        return

    # 설정 로드
    config_path = Path(args.config)
    if config_path.exists():
        config = Config.load(config_path)
    else:
        print(f"설정 파일 없음: {config_path}, 기본값 사용")
        config = Config()

    setup_logger(level=config.log_level, log_dir=config.log_dir)
    source = load_source(config, args.source or config.data.source)

    # ─── 스크리너 모드 ───────────────────────────────────────────────────
    if args.screener == "altcoins":
        print(build_altcoin_screener(source.fetch_altcoin_snapshot()).summary())
        return
    if args.screener == "korean":
        print(build_korean_screener(source.fetch_korean_snapshot()).summary())
        return

    # ─── 대시보드 모드 ───────────────────────────────────────────────────
    try:
        indicators = build_indicators(source, config, ids=args.indicator or None)
    except ValueError as e:
        print(f"오류: {e}")
        return

    report = Dashboard(indicators, source).run()
    print(report.summary())
    for result in report.results:
        print_backtest(result, args.rows)


if __name__ == "__main__":
    main()
