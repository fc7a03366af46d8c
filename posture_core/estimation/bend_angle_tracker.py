"""
bend_angle_tracker.py - 세그먼트별 굽힘 각도 추적

두 가지 방식 지원:
1. COMPLEMENTARY (Variant A): 틱마다 상보 필터 -> 쿼터니언 -> 굽힘 각도
2. INTEGRATION (Variant B): 스칼라 각속도를 3칸 윈도우에 쌓고
   Simpson 적분으로 누적 각도 갱신

세그먼트(물리적 센서 스트림)마다 트래커 인스턴스 하나가
RollingIntegratorState 하나를 소유합니다.

Version: 1.0
Author: PostureCore Team
"""

import copy
import math
import numpy as np
from scipy.integrate import simpson
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Deque, Optional
import logging

from ..config.system_config import FilterConfig, TrackerConfig
from ..exceptions import DegenerateInputError
from .angle_smoother import AngleKalmanSmoother
from .attitude_estimator import AttitudeEstimator
from .quaternion_converter import EulerAngles, QuaternionConverter

logger = logging.getLogger(__name__)


WINDOW_SIZE = 3


class TrackerMode(Enum):
    """굽힘 각도 추적 방식"""
    COMPLEMENTARY = "complementary"  # Variant A
    INTEGRATION = "integration"      # Variant B


def format_angle(angle: float, precision: int = 2) -> str:
    """각도를 고정 소수점 문자열로 변환"""
    return f"{angle:.{precision}f}"


@dataclass
class RollingIntegratorState:
    """
    세그먼트별 적분 상태

    Attributes:
        cumulative_angle: 마지막 누적 각도 (도)
        window: 최근 각속도 샘플 (최신이 앞, 최대 3개)
        integrations: 완료된 적분 횟수
        last_angle: 마지막으로 출력한 각도
    """
    cumulative_angle: float = 0.0
    window: Deque[float] = field(default_factory=lambda: deque(maxlen=WINDOW_SIZE))
    integrations: int = 0
    last_angle: float = 0.0

    @property
    def has_integrated(self) -> bool:
        return self.integrations > 0

    def reset(self):
        """초기 상태로 리셋 (스트림 종료 시)"""
        self.cumulative_angle = 0.0
        self.window.clear()
        self.integrations = 0
        self.last_angle = 0.0


class BendAngleTracker:
    """
    굽힘 각도 트래커 기본 클래스

    서브클래스는 update()에서 각도를 계산한 뒤 _emit()으로 마무리합니다.
    """

    mode: TrackerMode

    def __init__(self, smoother: Optional[AngleKalmanSmoother] = None):
        self.state = RollingIntegratorState()
        self._smoother = smoother

    def _emit(self, angle: float) -> float:
        if self._smoother is not None:
            angle = self._smoother.smooth(angle)
        self.state.last_angle = angle
        return angle

    @property
    def angle(self) -> float:
        """마지막 출력 각도 (도)"""
        return self.state.last_angle

    def formatted_angle(self, precision: int = 2) -> str:
        return format_angle(self.state.last_angle, precision)

    def snapshot(self):
        """
        틱 처리 전 상태 복사본

        한 틱에서 세그먼트 1은 성공하고 세그먼트 2가 실패하면
        세션이 restore()로 세그먼트 1 상태를 되돌립니다.
        """
        smoother_state = self._smoother.snapshot() if self._smoother is not None else None
        return copy.deepcopy(self.state), smoother_state

    def restore(self, snapshot):
        state, smoother_state = snapshot
        self.state = state
        if self._smoother is not None and smoother_state is not None:
            self._smoother.restore(smoother_state)

    def reset(self):
        """스트림 종료 시 상태 리셋"""
        self.state.reset()
        if self._smoother is not None:
            self._smoother.reset()


class ComplementaryBendTracker(BendAngleTracker):
    """
    Variant A: 틱마다 상보 필터로 굽힘 각도 계산

    트래커 자체는 이력을 보관하지 않습니다. 다중 행 배열이 들어오면
    AttitudeEstimator가 해당 배열 안에서만 시간 융합을 수행합니다.
    """

    mode = TrackerMode.COMPLEMENTARY

    def __init__(
        self,
        filter_config: Optional[FilterConfig] = None,
        angle_scale: float = 1.0,
        smoother: Optional[AngleKalmanSmoother] = None,
        converter: Optional[QuaternionConverter] = None
    ):
        """
        Args:
            filter_config: 상보 필터 설정
            angle_scale: 최종 각도 배율
            smoother: 선택적 각도 스무더
            converter: 쿼터니언 변환기
        """
        super().__init__(smoother)
        self._converter = converter or QuaternionConverter()
        self._estimator = AttitudeEstimator(filter_config, self._converter)
        self.angle_scale = angle_scale

    def update(self, gyro, acc) -> float:
        """
        Args:
            gyro: (N, 3) 각속도, 스트리밍에서는 N = 1
            acc: (N, 3) 가속도

        Returns:
            굽힘 각도 (도)
        """
        W = self._estimator.estimate(gyro, acc)
        quat = self._converter.euler_to_quaternion(EulerAngles.from_estimate(W[-1]))
        angle = self.angle_scale * self._converter.bend_angle(quat)

        logger.debug(f"Complementary tick: pitch={W[-1, 0]:.4f}, roll={W[-1, 1]:.4f}, angle={angle:.2f}")

        return self._emit(angle)


class IntegratingBendTracker(BendAngleTracker):
    """
    Variant B: 각속도 Simpson 적분

    cumulative += (dt/3) * (r0 + 4*r1 + r2)

    윈도우에 샘플이 3개 미만이면 이전 누적 각도를 그대로 반환합니다
    (첫 적분 전에는 0.0, 포맷 시 "0.00").

    window_policy:
        "clear": 적분 후 윈도우를 비움 (갱신마다 새 샘플 3개 필요)
        "slide": 진짜 슬라이딩 윈도우 (3개가 찬 뒤로는 매 틱 갱신)

    유지 틱의 출력이 누적 각도와 같아야 하므로 스무더를 받지 않습니다.
    """

    mode = TrackerMode.INTEGRATION

    def __init__(self, dt: float = 0.1, window_policy: str = "clear"):
        super().__init__()
        self.dt = dt
        self.window_policy = window_policy

    def update(self, rate) -> float:
        """
        Args:
            rate: 스칼라 각속도 (도/s)

        Returns:
            누적 굽힘 각도 (도)
        """
        try:
            rate = float(rate)
        except (TypeError, ValueError) as e:
            raise DegenerateInputError(f"Angular rate must be a real number, got {rate!r}") from e
        if not math.isfinite(rate):
            raise DegenerateInputError(f"Angular rate must be finite, got {rate!r}")

        self.state.window.appendleft(rate)

        if len(self.state.window) < WINDOW_SIZE:
            return self._emit(self.state.cumulative_angle)

        # 대칭 공식이므로 윈도우 순서(최신이 앞)는 결과에 영향 없음
        step = float(simpson(np.array(self.state.window), dx=self.dt))
        self.state.cumulative_angle += step
        self.state.integrations += 1

        if self.window_policy == "clear":
            self.state.window.clear()

        logger.debug(f"Integration step {self.state.integrations}: +{step:.4f} -> {self.state.cumulative_angle:.4f}")

        return self._emit(self.state.cumulative_angle)


def create_tracker(
    tracker_config: Optional[TrackerConfig] = None,
    filter_config: Optional[FilterConfig] = None
) -> BendAngleTracker:
    """
    설정에서 트래커 생성

    Args:
        tracker_config: 트래커 설정 (mode, 스무딩 등)
        filter_config: 상보 필터 설정 (Variant A에서만 사용)

    Returns:
        BendAngleTracker
    """
    tracker_config = (tracker_config or TrackerConfig()).validate()
    filter_config = (filter_config or FilterConfig()).validate()

    mode = TrackerMode(tracker_config.mode)

    smoother = None
    if tracker_config.smoothing == "kalman":
        smoother = AngleKalmanSmoother(
            dt=filter_config.dt,
            process_noise=tracker_config.smoothing_process_noise,
            measurement_noise=tracker_config.smoothing_measurement_noise
        )

    if mode == TrackerMode.COMPLEMENTARY:
        return ComplementaryBendTracker(
            filter_config=filter_config,
            angle_scale=tracker_config.angle_scale,
            smoother=smoother
        )

    return IntegratingBendTracker(
        dt=tracker_config.integration_dt,
        window_policy=tracker_config.window_policy
    )
