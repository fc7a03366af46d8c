"""
attitude_estimator.py - 상보 필터 기반 기울기 추정

자이로스코프 + 가속도계 샘플 배열(N x 3)에서 행마다 [pitch, roll]을 추정합니다.

1. 가속도계 단독 기울기 (행별, 이력 무관)
   pitch = atan2(a_y, a_z)
   roll  = atan2(-a_x, sqrt(a_y² + a_z²))

2. 시간 융합 (i = 1..N-1, 0번 행은 가속도계 단독 추정값)
   multiplicative: W[i] = (gyro[i]*dt + W[i-1]) * (gain + A[i]*(1-gain))
   additive:       W[i] = gain*(W[i-1] + gyro[i]*dt) + (1-gain)*A[i]

기본값은 multiplicative(장치 펌웨어와 동일한 공식)입니다.
실시간 스트리밍에서는 틱마다 1행 배열이 들어오므로 융합 단계는 실행되지 않고
출력은 가속도계 단독 기울기와 같습니다.

Version: 1.0
Author: PostureCore Team
"""

import numpy as np
from typing import Optional
import logging

from ..config.system_config import FilterConfig, BLEND_ADDITIVE
from ..exceptions import DegenerateInputError, ShapeMismatchError
from .quaternion_converter import EulerAngles, Quaternion, QuaternionConverter

logger = logging.getLogger(__name__)


def as_sample_batch(data, name: str = "samples") -> np.ndarray:
    """
    입력을 (N, 3) float 배열로 변환

    Raises:
        ShapeMismatchError: 2차원이 아니거나, 행이 없거나, 열 수가 3이 아닐 때
    """
    try:
        arr = np.asarray(data, dtype=np.float64)
    except (TypeError, ValueError) as e:
        raise ShapeMismatchError(f"{name} could not be read as a numeric array: {e}") from e

    if arr.ndim != 2:
        raise ShapeMismatchError(f"{name} array expects a 2D array (N, 3): Got {arr.shape} instead")
    if arr.shape[1] != 3:
        raise ShapeMismatchError(
            f"{name} parameter expects dimension (N, 3): Got {arr.shape} instead"
        )
    if arr.shape[0] == 0:
        raise ShapeMismatchError(f"{name} must contain at least one row")
    return arr


def normalize_rows(arr: np.ndarray) -> np.ndarray:
    """행 단위 정규화"""
    if not np.all(np.isfinite(arr)):
        raise DegenerateInputError("Samples contain non-finite values, cannot normalize.")

    norms = np.linalg.norm(arr, axis=1)
    zero_rows = np.flatnonzero(norms == 0)
    if zero_rows.size > 0:
        raise DegenerateInputError(
            f"Norm of row {int(zero_rows[0])} is zero, cannot normalize."
        )
    return arr / norms[:, np.newaxis]


class AttitudeEstimator:
    """
    상보 필터 기반 2축 기울기 추정기

    상태를 갖지 않습니다. 단일 행(스트리밍)과 다중 행(오프라인) 모두
    같은 경로로 처리합니다.

    Example:
        >>> estimator = AttitudeEstimator(FilterConfig(dt=0.1, gain=0.9))
        >>> W = estimator.estimate(gyro, acc)     # (N, 2) [pitch, roll]
        >>> q = estimator.estimate_quaternion(gyro, acc)
    """

    def __init__(
        self,
        config: Optional[FilterConfig] = None,
        converter: Optional[QuaternionConverter] = None
    ):
        """
        Args:
            config: 필터 설정 (dt, gain, blend)
            converter: 쿼터니언 변환기
        """
        self.config = (config or FilterConfig()).validate()
        self._converter = converter or QuaternionConverter()

    def estimate(self, gyro, acc) -> np.ndarray:
        """
        자이로 + 가속도계 배열에서 [pitch, roll] 추정

        Args:
            gyro: (N, 3) 각속도 (rad/s)
            acc: (N, 3) 가속도

        Returns:
            (N, 2) [pitch, roll] 라디안
        """
        gyro = as_sample_batch(gyro, "gyr")
        acc = as_sample_batch(acc, "acc")

        if gyro.shape != acc.shape:
            raise ShapeMismatchError(
                f"gyr and acc parameters must have same dimension: "
                f"gyr dim is {gyro.shape}, acc dim is {acc.shape}"
            )
        if not np.all(np.isfinite(gyro)):
            raise DegenerateInputError("gyr contains non-finite values")

        accel_only = self.accelerometer_tilt(acc)

        W = np.zeros_like(accel_only)
        W[0] = accel_only[0]

        dt = self.config.dt
        gain = self.config.gain
        additive = self.config.blend == BLEND_ADDITIVE

        for i in range(1, len(W)):
            integrated = gyro[i, :2] * dt + W[i - 1]
            if additive:
                W[i] = gain * integrated + (1.0 - gain) * accel_only[i]
            else:
                W[i] = integrated * (gain + accel_only[i] * (1.0 - gain))

        return W

    def accelerometer_tilt(self, acc) -> np.ndarray:
        """
        가속도계 단독 기울기 추정 (행별 독립)

        Args:
            acc: (N, 3) 가속도

        Returns:
            (N, 2) [pitch, roll] 라디안
        """
        a = normalize_rows(as_sample_batch(acc, "acc"))

        pitch = np.arctan2(a[:, 1], a[:, 2])
        roll = np.arctan2(-a[:, 0], np.sqrt(a[:, 1] ** 2 + a[:, 2] ** 2))

        return np.column_stack([pitch, roll])

    def estimate_quaternion(self, gyro, acc) -> Quaternion:
        """
        가장 최근 융합 추정값의 쿼터니언 (yaw = 0)

        단일 행 입력에서는 가속도계 단독 기울기의 쿼터니언과 같습니다.
        """
        W = self.estimate(gyro, acc)
        euler = EulerAngles.from_estimate(W[-1])
        return self._converter.euler_to_quaternion(euler)
