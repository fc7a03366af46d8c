"""
estimation 모듈 - 세그먼트 기울기 및 굽힘 각도 추정

주요 기능:
- 상보 필터 기반 2축 기울기 추정 (가속도계 + 자이로)
- 오일러 -> 쿼터니언 변환 및 짐벌 락 안전 굽힘 각도 추출
- 세그먼트별 굽힘 각도 트래커 (상보 필터 / Simpson 적분)
- 선택적 1차원 Kalman 스무딩
"""

from .attitude_estimator import AttitudeEstimator
from .quaternion_converter import (
    QuaternionConverter,
    Quaternion,
    EulerAngles
)
from .bend_angle_tracker import (
    BendAngleTracker,
    ComplementaryBendTracker,
    IntegratingBendTracker,
    RollingIntegratorState,
    TrackerMode,
    create_tracker,
    format_angle
)
from .angle_smoother import AngleKalmanSmoother

__all__ = [
    'AttitudeEstimator',
    'QuaternionConverter',
    'Quaternion',
    'EulerAngles',
    'BendAngleTracker',
    'ComplementaryBendTracker',
    'IntegratingBendTracker',
    'RollingIntegratorState',
    'TrackerMode',
    'create_tracker',
    'format_angle',
    'AngleKalmanSmoother',
]
