"""
=============================================================================
BTC 사이클 지표 시스템 (Cycle System)
=============================================================================

[ 시스템 전체 구조 ]

    run_dashboard.py (진입점)
         │
         ├── utils/config.py        ← config.yaml 설정 로드
         ├── utils/logger.py        ← 로깅
         │
         ├── data/                  ← DataSource 구현체 (샘플 / CSV / Yahoo + 캐시)
         │
         ├── indicators/            ← 사이클 지표 (시그널 + 차트 + 백테스트)
         │     └── cycle_composite.py  (7개 하위 시그널 합산)
         │
         ├── backtest/engine.py     ← 트리거/쿨다운 스캔 엔진
         │     └── backtest/returns.py  ← 선행 수익률 조회
         │
         ├── screeners/             ← 알트코인 / 한국 거래소 스크리너
         │
         └── dashboard.py           ← 지표 일괄 실행, 지표별 실패 격리


[ 핵심 추상 클래스 (core/) - 모든 구현체의 부모 ]

    core/data_source.py  → data/sources.py::StaticDataSource, CsvDataSource, YahooDataSource
                         → data/sample_data.py::SampleDataSource
                         → data/market_data.py::CachedDataSource (캐싱 래퍼)

    core/indicator.py    → indicators/*.py (9개 지표)


[ 데이터 흐름 ]

    1. config.yaml에서 데이터 소스 / 지표 파라미터 로드
    2. DataSource가 BTC 일봉 제공 → Dashboard가 한 번 조회
    3. 각 Indicator가 BTC 일봉 + 필요한 보조 시계열로 IndicatorResult 생성
       (현재값, BUY/NEUTRAL/SELL 시그널, 차트 데이터, 백테스트 표)
    4. CycleComposite가 하위 시그널을 날짜별로 합산해 사이클 점수 계산
    5. 보조 데이터 조회 실패 → 해당 지표만 빈 결과 (예외를 밖으로 던지지 않음)
"""
