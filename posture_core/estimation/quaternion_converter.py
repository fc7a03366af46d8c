"""
quaternion_converter.py - 오일러 <-> 쿼터니언 변환 및 굽힘 각도 추출

- 정방향: (roll, pitch, yaw) 라디안 -> 단위 쿼터니언 (반각 공식)
- 역방향: 단위 쿼터니언 -> 단일 굽힘 각도 (도)

역방향 추출은 일반적인 쿼터니언-오일러 변환이 아닙니다.
장치의 센서 부착 축에 맞춘 "pitch" 성분 하나만 복원하며,
짐벌 락 경계에서도 NaN이 나오지 않도록 제곱근 인자를 0 이상으로 클램프합니다.

Version: 1.0
Author: PostureCore Team
"""

import math
import numpy as np
from scipy.spatial.transform import Rotation
from dataclasses import dataclass
from typing import Sequence
import logging

from ..exceptions import AngleRangeError, ShapeMismatchError

logger = logging.getLogger(__name__)


ANGLE_LIMIT = 2.0 * math.pi
UNIT_NORM_TOLERANCE = 1e-6


@dataclass
class EulerAngles:
    """
    오일러 각도 (라디안)

    Attributes:
        roll: X축 회전
        pitch: Y축 회전
        yaw: Z축 회전 (가속도계+자이로만으로는 관측 불가, 항상 0)
    """
    roll: float
    pitch: float
    yaw: float = 0.0

    def to_array(self) -> np.ndarray:
        """numpy 배열로 변환 [roll, pitch, yaw]"""
        return np.array([self.roll, self.pitch, self.yaw])

    @classmethod
    def from_estimate(cls, row: Sequence[float]) -> 'EulerAngles':
        """
        AttitudeEstimator 출력 행 [pitch, roll]에서 생성

        추정기의 첫 번째 열(센서 x축 기준 기울기)이 roll 자리에,
        두 번째 열이 pitch 자리에 위치합니다 (장치 부착 규약).
        """
        if len(row) != 2:
            raise ShapeMismatchError(f"Estimate row expects 2 components, got {len(row)}")
        return cls(roll=float(row[0]), pitch=float(row[1]), yaw=0.0)

    def __repr__(self) -> str:
        return f"EulerAngles(R={self.roll:.4f}, P={self.pitch:.4f}, Y={self.yaw:.4f})"


@dataclass(frozen=True)
class Quaternion:
    """
    쿼터니언 (w, x, y, z)

    표현: q = w + xi + yj + zk
    단위 쿼터니언 조건: |q| = 1 (허용 오차 1e-6)
    """
    w: float
    x: float
    y: float
    z: float

    def to_array_wxyz(self) -> np.ndarray:
        """[w, x, y, z] 형식"""
        return np.array([self.w, self.x, self.y, self.z])

    def to_array(self) -> np.ndarray:
        """[x, y, z, w] 형식 (scipy 표준)"""
        return np.array([self.x, self.y, self.z, self.w])

    @property
    def norm(self) -> float:
        """쿼터니언 크기"""
        return float(np.linalg.norm(self.to_array_wxyz()))

    @property
    def is_unit(self) -> bool:
        """단위 쿼터니언 여부"""
        return abs(self.norm - 1.0) < UNIT_NORM_TOLERANCE

    def dot(self, other: 'Quaternion') -> float:
        """내적"""
        return float(np.dot(self.to_array_wxyz(), other.to_array_wxyz()))

    def as_rotation(self) -> Rotation:
        """scipy Rotation 객체로 변환"""
        return Rotation.from_quat(self.to_array())

    def __repr__(self) -> str:
        return f"Quaternion(w={self.w:.4f}, x={self.x:.4f}, y={self.y:.4f}, z={self.z:.4f})"

    @classmethod
    def identity(cls) -> 'Quaternion':
        """단위 쿼터니언 (회전 없음)"""
        return cls(w=1.0, x=0.0, y=0.0, z=0.0)


class QuaternionConverter:
    """
    오일러 각도 <-> 쿼터니언 변환기

    Example:
        >>> converter = QuaternionConverter()
        >>> q = converter.euler_to_quaternion(EulerAngles(roll=0.1, pitch=-0.2))
        >>> angle = converter.bend_angle(q)
    """

    def euler_to_quaternion(self, euler: EulerAngles) -> Quaternion:
        """
        반각 공식으로 오일러 각도를 단위 쿼터니언으로 변환

        Args:
            euler: roll, pitch, yaw (라디안), 각각 [-2pi, 2pi]

        Returns:
            Quaternion
        """
        angles = euler.to_array()
        if not np.all(np.isfinite(angles)) or np.any(np.abs(angles) > ANGLE_LIMIT):
            raise AngleRangeError(
                f"Expected angles must be in range [-2pi, 2pi]. Got {angles.tolist()} instead."
            )

        cy = math.cos(0.5 * euler.yaw)
        sy = math.sin(0.5 * euler.yaw)
        cp = math.cos(0.5 * euler.pitch)
        sp = math.sin(0.5 * euler.pitch)
        cr = math.cos(0.5 * euler.roll)
        sr = math.sin(0.5 * euler.roll)

        return Quaternion(
            w=cy * cp * cr + sy * sp * sr,
            x=cy * cp * sr - sy * sp * cr,
            y=cy * sp * cr + sy * cp * sr,
            z=sy * cp * cr - cy * sp * sr
        )

    def from_rpy(self, angles: Sequence[float]) -> Quaternion:
        """[roll, pitch, yaw] 시퀀스에서 변환"""
        if len(angles) != 3:
            raise ShapeMismatchError(
                f"angles parameter expects dimension (3): Got ({len(angles)}) instead"
            )
        return self.euler_to_quaternion(
            EulerAngles(roll=float(angles[0]), pitch=float(angles[1]), yaw=float(angles[2]))
        )

    def bend_angle_radians(self, quat: Quaternion) -> float:
        """
        쿼터니언에서 굽힘 각도 추출 (라디안)

        sinp, cosp 제곱근 인자를 0 이상으로 클램프하여
        |2(wy - xz)|가 부동소수점 오차로 1을 살짝 넘어도 NaN이 나오지 않습니다.
        """
        if not quat.is_unit:
            logger.debug(f"Non-unit quaternion in bend angle extraction: norm={quat.norm:.8f}")

        s = 2.0 * (quat.w * quat.y - quat.x * quat.z)
        sinp = math.sqrt(max(0.0, 1.0 + s))
        cosp = math.sqrt(max(0.0, 1.0 - s))
        return 2.0 * math.atan2(sinp, cosp) - math.pi / 2

    def bend_angle(self, quat: Quaternion) -> float:
        """쿼터니언에서 굽힘 각도 추출 (도)"""
        return math.degrees(self.bend_angle_radians(quat))
