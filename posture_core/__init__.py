"""
posture_core - 웨어러블 자세 교정 장치의 각도 추정 및 액추에이터 제어 코어

주요 특징:
- 상보 필터 기반 세그먼트 기울기 추정 (가속도계 + 자이로)
- 짐벌 락 안전 쿼터니언 굽힘 각도 추출
- 세그먼트별 굽힘 각도 트래커 (상보 필터 / Simpson 적분)
- 디바운스 + 히스테리시스 펌프/솔레노이드 제어
- 세션 단위 상태 격리

Version: 1.0
Author: PostureCore Team
"""

__version__ = "1.0.0"
__author__ = "PostureCore Team"

from .config.system_config import (
    SystemConfig,
    FilterConfig,
    TrackerConfig,
    ControllerConfig,
    load_config
)

from .estimation.attitude_estimator import AttitudeEstimator
from .estimation.quaternion_converter import (
    QuaternionConverter,
    Quaternion,
    EulerAngles
)
from .estimation.bend_angle_tracker import (
    ComplementaryBendTracker,
    IntegratingBendTracker,
    RollingIntegratorState,
    TrackerMode,
    create_tracker
)

from .control.hysteresis_controller import (
    HysteresisController,
    ControllerState,
    ActuatorState
)
from .control.debounce_timer import (
    DebounceTimer,
    VirtualScheduler
)

from .exceptions import (
    ShapeMismatchError,
    DegenerateInputError,
    InvalidConfigError,
    AngleRangeError,
    StaleTimerFired
)

from .messages import TickRecord, DecisionRecord, ActuatorCommand
from .gateway import ActuatorGateway, TelemetryGateway
from .main import PostureSession, SessionRegistry

__all__ = [
    # Config
    'SystemConfig',
    'FilterConfig',
    'TrackerConfig',
    'ControllerConfig',
    'load_config',
    # Estimation
    'AttitudeEstimator',
    'QuaternionConverter',
    'Quaternion',
    'EulerAngles',
    'ComplementaryBendTracker',
    'IntegratingBendTracker',
    'RollingIntegratorState',
    'TrackerMode',
    'create_tracker',
    # Control
    'HysteresisController',
    'ControllerState',
    'ActuatorState',
    'DebounceTimer',
    'VirtualScheduler',
    # Errors
    'ShapeMismatchError',
    'DegenerateInputError',
    'InvalidConfigError',
    'AngleRangeError',
    'StaleTimerFired',
    # Records / gateways
    'TickRecord',
    'DecisionRecord',
    'ActuatorCommand',
    'ActuatorGateway',
    'TelemetryGateway',
    # Session
    'PostureSession',
    'SessionRegistry',
]
