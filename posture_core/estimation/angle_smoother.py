"""
angle_smoother.py - 굽힘 각도용 1차원 Kalman Filter

상태 벡터: [angle, angle_rate]
측정: [angle]

가속도계 단독 기울기는 진동/충격에 민감하므로, 필요할 때
히스테리시스 판단 전에 각도를 스무딩합니다 (TrackerConfig.smoothing="kalman").

Version: 1.0
Author: PostureCore Team
"""

import numpy as np
from filterpy.kalman import KalmanFilter
from typing import Tuple
import logging

logger = logging.getLogger(__name__)


class AngleKalmanSmoother:
    """
    등각속도 모델 기반 각도 스무더

    Example:
        >>> smoother = AngleKalmanSmoother(dt=0.1)
        >>> filtered = smoother.smooth(measured_angle)
    """

    def __init__(
        self,
        dt: float = 0.1,
        process_noise: float = 1.0,
        measurement_noise: float = 4.0
    ):
        """
        Args:
            dt: 틱 간 시간 간격 (초)
            process_noise: 프로세스 노이즈 (각속도 변화 허용 정도)
            measurement_noise: 측정 노이즈 분산 (도²)
        """
        self.dt = dt
        self._pn = process_noise
        self._mn = measurement_noise

        self.kf = KalmanFilter(dim_x=2, dim_z=1)

        # 상태 전이 행렬 F (등각속도 모델)
        self.kf.F = np.array([
            [1.0, dt],
            [0.0, 1.0]
        ])

        # 측정 행렬 H
        self.kf.H = np.array([[1.0, 0.0]])

        self.kf.Q = np.diag([self._pn * dt, self._pn])
        self.kf.R = np.array([[self._mn]])

        self._initialized = False

        logger.debug(f"AngleKalmanSmoother initialized: dt={dt}, q={process_noise}, r={measurement_noise}")

    def smooth(self, angle: float) -> float:
        """
        예측 + 업데이트 한번에

        첫 측정값으로 필터를 초기화하고 그대로 반환합니다.
        """
        if not self._initialized:
            self.kf.x = np.array([[angle], [0.0]])
            self.kf.P = np.diag([self._mn, self._pn])
            self._initialized = True
            return float(angle)

        self.kf.predict()
        self.kf.update(np.array([[angle]]))

        return float(self.kf.x[0, 0])

    def snapshot(self) -> Tuple[np.ndarray, np.ndarray, bool]:
        """현재 상태 복사본"""
        return self.kf.x.copy(), self.kf.P.copy(), self._initialized

    def restore(self, snapshot: Tuple[np.ndarray, np.ndarray, bool]):
        """snapshot() 시점으로 복원"""
        x, P, initialized = snapshot
        self.kf.x = x.copy()
        self.kf.P = P.copy()
        self._initialized = initialized

    def reset(self):
        """필터 리셋"""
        self.kf.x = np.zeros((2, 1))
        self.kf.P = np.eye(2)
        self._initialized = False

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    @property
    def rate(self) -> float:
        """추정 각속도 (도/s)"""
        return float(self.kf.x[1, 0])
