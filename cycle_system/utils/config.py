"""
설정 관리 모듈.

[ 역할 ]
    config.yaml (또는 .json) 파일을 파싱하여 Config 객체로 변환.
    데이터 소스, 채굴원가 모델 파라미터, 지표별 파라미터, 로깅 설정을 통합 관리.

[ 설정 파일 구조 (config.yaml) ]
    data:             → DataConfig (데이터 소스 선택 및 조회 파라미터)
    mining:           → MiningCostConfig (채굴원가 추정 모델)
    indicators:       → {지표 id: 파라미터 dict} (각 지표의 DEFAULT_PARAMS 오버라이드)
    log_level:        → "INFO" / "DEBUG"
    log_dir:          → 로그 디렉토리 경로

[ 호출하는 곳 ]
    - run_dashboard.py에서 Config.load()로 로드
    - indicators/__init__.py::build_indicators()가 config.indicators를 지표에 전달
    - 채굴원가 지표/복합 지표 생성 시 config.mining 값을 사용
"""

import json
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any

import yaml


@dataclass
class DataConfig:
    """데이터 소스 설정. config.yaml의 data 섹션에 대응."""
    source: str = "sample"            # sample / csv / yahoo
    data_dir: str = "data"            # csv 소스의 시계열 파일 위치
    seed: int = 42                    # sample 소스 난수 시드
    history_start: str = "2013-01-01"  # BTC 일봉 조회 시작일
    max_retries: int = 3
    retry_delay: int = 5


@dataclass
class MiningCostConfig:
    """채굴원가 추정 모델. config.yaml의 mining 섹션에 대응.

    원가 = 해시레이트(TH/s) × J/TH × 24h × 전기요금($/kWh) ÷ 일일 채굴량
    """
    joules_per_th: float = 25.0       # ASIC 효율 (S21급)
    electricity_rate: float = 0.05    # $/kWh


@dataclass
class Config:
    """전체 설정. load() 또는 from_yaml() / from_json()으로 파일에서 로드."""
    data: DataConfig = field(default_factory=DataConfig)
    mining: MiningCostConfig = field(default_factory=MiningCostConfig)
    indicators: dict[str, dict[str, Any]] = field(default_factory=dict)
    log_level: str = "INFO"
    log_dir: str = "logs"

    @classmethod
    def load(cls, path: str | Path) -> "Config":
        """확장자(.json / 그 외 YAML)에 맞춰 로드."""
        if Path(path).suffix.lower() == ".json":
            return cls.from_json(path)
        return cls.from_yaml(path)

    @classmethod
    def from_yaml(cls, path: str | Path) -> "Config":
        with open(path, "r", encoding="utf-8") as f:
            return cls._from_dict(yaml.safe_load(f) or {})

    @classmethod
    def from_json(cls, path: str | Path) -> "Config":
        with open(path, "r", encoding="utf-8") as f:
            return cls._from_dict(json.load(f) or {})

    @classmethod
    def _from_dict(cls, raw: dict[str, Any]) -> "Config":
        """딕셔너리에서 Config 생성. 알 수 없는 키는 무시."""
        # 지표 id → 파라미터. "mayer-multiple:"처럼 값이 비어 있으면 빈 dict
        indicators = {
            str(indicator_id): dict(params or {})
            for indicator_id, params in (raw.get("indicators") or {}).items()
        }
        return cls(
            data=_section(DataConfig, raw.get("data")),
            mining=_section(MiningCostConfig, raw.get("mining")),
            indicators=indicators,
            log_level=raw.get("log_level", "INFO"),
            log_dir=raw.get("log_dir", "logs"),
        )

    def indicator_params(self, indicator_id: str) -> dict[str, Any]:
        """특정 지표의 오버라이드 파라미터 복사본 (없으면 빈 dict)."""
        return dict(self.indicators.get(indicator_id, {}))

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    def save_yaml(self, path: str | Path) -> None:
        """YAML 파일로 저장. 상위 디렉토리가 없으면 만든다."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            yaml.safe_dump(self.to_dict(), f, allow_unicode=True, sort_keys=False)


def _section(section_cls: type, values: dict[str, Any] | None):
    """config 섹션 dict → dataclass. 모르는 키는 버린다."""
    known = {f.name for f in fields(section_cls)}
    return section_cls(**{k: v for k, v in (values or {}).items() if k in known})
