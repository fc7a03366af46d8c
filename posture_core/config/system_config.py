"""
system_config.py - 시스템 설정 관리

자세 교정 코어의 모든 설정(필터, 트래커, 제어기, 텔레메트리, 로깅)을
통합 관리합니다. 센서 부착 위치가 다른 장치도 같은 코드로 동작하도록
모든 상수는 여기서 주입됩니다.

Version: 1.0
Author: PostureCore Team
"""

import math
import yaml
from pathlib import Path
from dataclasses import dataclass, field, asdict
from typing import Dict, Any, Optional
import logging

from ..exceptions import InvalidConfigError

logger = logging.getLogger(__name__)


BLEND_MULTIPLICATIVE = "multiplicative"
BLEND_ADDITIVE = "additive"

TRACKER_MODES = ("complementary", "integration")
WINDOW_POLICIES = ("clear", "slide")
SMOOTHING_MODES = ("none", "kalman")


def _is_real(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


@dataclass
class FilterConfig:
    """상보 필터 설정"""
    dt: float = 0.1      # 샘플 간 시간 간격 (초)
    gain: float = 0.9    # 자이로 적분 항 가중치 [0, 1]

    # "multiplicative": 장치 펌웨어 공식, "additive": 교과서형 가중합
    blend: str = BLEND_MULTIPLICATIVE

    def validate(self) -> 'FilterConfig':
        if not _is_real(self.dt) or self.dt <= 0:
            raise InvalidConfigError(f"dt must be a positive number, got {self.dt!r}")
        if not _is_real(self.gain) or not 0.0 <= self.gain <= 1.0:
            raise InvalidConfigError(f"gain must be within [0, 1], got {self.gain!r}")
        if self.blend not in (BLEND_MULTIPLICATIVE, BLEND_ADDITIVE):
            raise InvalidConfigError(f"Unknown blend mode: {self.blend!r}")
        return self


@dataclass
class TrackerConfig:
    """굽힘 각도 트래커 설정"""
    mode: str = "complementary"    # "complementary" (Variant A) or "integration" (Variant B)

    # Variant A: 최종 각도 배율 (9/32 = 과거 장치 펌웨어 호환)
    angle_scale: float = 1.0

    # Variant B: Simpson 적분 시간 간격 및 윈도우 정책
    integration_dt: float = 0.1
    window_policy: str = "clear"   # "clear" or "slide"

    # 선택적 각도 스무딩
    smoothing: str = "none"        # "none" or "kalman"
    smoothing_process_noise: float = 1.0
    smoothing_measurement_noise: float = 4.0

    def validate(self) -> 'TrackerConfig':
        if self.mode not in TRACKER_MODES:
            raise InvalidConfigError(f"Unknown tracker mode: {self.mode!r}")
        if self.window_policy not in WINDOW_POLICIES:
            raise InvalidConfigError(f"Unknown window policy: {self.window_policy!r}")
        if self.smoothing not in SMOOTHING_MODES:
            raise InvalidConfigError(f"Unknown smoothing mode: {self.smoothing!r}")
        # Variant B는 샘플이 3개 미만이면 누적 각도를 그대로 유지해야 함
        if self.smoothing != "none" and self.mode == "integration":
            raise InvalidConfigError(
                f"smoothing={self.smoothing!r} is only supported in complementary mode"
            )
        if not _is_real(self.angle_scale):
            raise InvalidConfigError(f"angle_scale must be a finite number, got {self.angle_scale!r}")
        if not _is_real(self.integration_dt) or self.integration_dt <= 0:
            raise InvalidConfigError(
                f"integration_dt must be a positive number, got {self.integration_dt!r}"
            )
        for name in ('smoothing_process_noise', 'smoothing_measurement_noise'):
            value = getattr(self, name)
            if not _is_real(value) or value <= 0:
                raise InvalidConfigError(f"{name} must be a positive number, got {value!r}")
        return self


@dataclass
class ControllerConfig:
    """히스테리시스 제어기 설정"""
    engage_threshold: float = 25.0     # 작동 시작 각도 차 (도)
    release_threshold: float = -5.0    # 해제 각도 차 (도), engage보다 작아야 함
    debounce_delay_ms: float = 5000.0  # 작동 확인 지연 (ms)

    def validate(self) -> 'ControllerConfig':
        for name in ('engage_threshold', 'release_threshold', 'debounce_delay_ms'):
            value = getattr(self, name)
            if not _is_real(value):
                raise InvalidConfigError(f"{name} must be a finite number, got {value!r}")
        if self.release_threshold >= self.engage_threshold:
            raise InvalidConfigError(
                f"release_threshold ({self.release_threshold}) must be below "
                f"engage_threshold ({self.engage_threshold})"
            )
        if self.debounce_delay_ms < 0:
            raise InvalidConfigError(
                f"debounce_delay_ms must be non-negative, got {self.debounce_delay_ms}"
            )
        return self


@dataclass
class TelemetryConfig:
    """텔레메트리 출력 설정"""
    format_angles: bool = True   # True면 각도를 소수점 2자리 문자열로 출력
    precision: int = 2


@dataclass
class LoggingConfig:
    """로깅 설정"""
    log_level: str = "INFO"
    log_format: str = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


@dataclass
class SystemConfig:
    """posture_core 전체 설정"""
    filter: FilterConfig = field(default_factory=FilterConfig)
    tracker: TrackerConfig = field(default_factory=TrackerConfig)
    controller: ControllerConfig = field(default_factory=ControllerConfig)
    telemetry: TelemetryConfig = field(default_factory=TelemetryConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def validate(self) -> 'SystemConfig':
        """모든 섹션 검증"""
        self.filter.validate()
        self.tracker.validate()
        self.controller.validate()
        return self

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def save(self, filepath: str):
        """설정을 YAML 파일로 저장"""
        with open(filepath, 'w') as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False)

        logger.info(f"Config saved to {filepath}")

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> 'SystemConfig':
        """딕셔너리에서 설정 생성"""
        if not isinstance(d, dict):
            raise InvalidConfigError(
                f"Config must be a mapping of sections, got {type(d).__name__}"
            )
        try:
            return cls(
                filter=FilterConfig(**d.get('filter', {})),
                tracker=TrackerConfig(**d.get('tracker', {})),
                controller=ControllerConfig(**d.get('controller', {})),
                telemetry=TelemetryConfig(**d.get('telemetry', {})),
                logging=LoggingConfig(**d.get('logging', {}))
            )
        except TypeError as e:
            raise InvalidConfigError(f"Invalid config section: {e}") from e


def load_config(filepath: str) -> SystemConfig:
    """
    YAML 파일에서 설정 로드

    Args:
        filepath: 설정 파일 경로

    Returns:
        SystemConfig: 로드 및 검증된 설정
    """
    path = Path(filepath)

    if not path.exists():
        logger.warning(f"Config file not found: {filepath}, using defaults")
        return SystemConfig()

    with open(path, 'r') as f:
        config_dict = yaml.safe_load(f)

    if config_dict is None:
        return SystemConfig()

    return SystemConfig.from_dict(config_dict).validate()


def create_default_config(save_path: Optional[str] = None) -> SystemConfig:
    """
    기본 설정 생성

    Args:
        save_path: 저장 경로 (None이면 저장 안함)

    Returns:
        SystemConfig: 기본 설정
    """
    config = SystemConfig()

    if save_path:
        config.save(save_path)

    return config
