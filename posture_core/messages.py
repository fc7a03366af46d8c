"""
messages.py - 코어 입출력 레코드

- TickRecord: 틱마다 들어오는 세그먼트 샘플 + 수동 제어 신호 + 굽힘 센서 값
- ActuatorCommand: 펌프/솔레노이드 명령
- DecisionRecord: 텔레메트리로 내보낼 각도 + 굽힘 센서 패스스루

메시지 키는 장치 프로토콜을 따릅니다:
    gyro_1, acc_1, gyro_2, acc_2  (Variant A)
    rate_1, rate_2                (Variant B)
    pump_power, solenoid_power    (수동 제어, 1/0 또는 true/false)
    cflex, tflex, lflex           (경추/흉추/요추 굽힘 센서)

Version: 1.0
Author: PostureCore Team
"""

import json
import numpy as np
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from .exceptions import ShapeMismatchError
from .estimation.bend_angle_tracker import format_angle


def _optional_bool(value: Any) -> Optional[bool]:
    if value is None:
        return None
    return bool(value)


def _optional_batch(value: Any, key: str) -> Optional[np.ndarray]:
    if value is None:
        return None
    try:
        return np.atleast_2d(np.asarray(value, dtype=np.float64))
    except (TypeError, ValueError) as e:
        raise ShapeMismatchError(f"'{key}' is not a numeric sample array: {e}") from e


@dataclass
class FlexReadings:
    """굽힘 센서 값 (해석하지 않고 그대로 전달)"""
    cervical: Any = None
    thoracic: Any = None
    lumbar: Any = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'cflex': self.cervical,
            'tflex': self.thoracic,
            'lflex': self.lumbar
        }


@dataclass
class TickRecord:
    """
    단일 틱 입력

    Attributes:
        gyro_1, acc_1, gyro_2, acc_2: 세그먼트별 (N, 3) 샘플 (Variant A)
        rate_1, rate_2: 세그먼트별 스칼라 각속도 (Variant B)
        manual_pump, manual_solenoid: 수동 요청 (None이면 요청 없음)
        flex: 굽힘 센서 패스스루
    """
    gyro_1: Optional[np.ndarray] = None
    acc_1: Optional[np.ndarray] = None
    gyro_2: Optional[np.ndarray] = None
    acc_2: Optional[np.ndarray] = None
    rate_1: Optional[float] = None
    rate_2: Optional[float] = None
    manual_pump: Optional[bool] = None
    manual_solenoid: Optional[bool] = None
    flex: FlexReadings = field(default_factory=FlexReadings)

    @property
    def has_manual_request(self) -> bool:
        return self.manual_pump is not None or self.manual_solenoid is not None

    @classmethod
    def from_message(cls, message: Dict[str, Any]) -> 'TickRecord':
        """장치 메시지 딕셔너리에서 생성"""
        if not isinstance(message, dict):
            raise ShapeMismatchError(f"Tick message must be an object, got {type(message).__name__}")

        return cls(
            gyro_1=_optional_batch(message.get('gyro_1'), 'gyro_1'),
            acc_1=_optional_batch(message.get('acc_1'), 'acc_1'),
            gyro_2=_optional_batch(message.get('gyro_2'), 'gyro_2'),
            acc_2=_optional_batch(message.get('acc_2'), 'acc_2'),
            rate_1=message.get('rate_1'),
            rate_2=message.get('rate_2'),
            manual_pump=_optional_bool(message.get('pump_power')),
            manual_solenoid=_optional_bool(message.get('solenoid_power')),
            flex=FlexReadings(
                cervical=message.get('cflex'),
                thoracic=message.get('tflex'),
                lumbar=message.get('lflex')
            )
        )

    @classmethod
    def from_json(cls, payload: str) -> 'TickRecord':
        try:
            message = json.loads(payload)
        except json.JSONDecodeError as e:
            raise ShapeMismatchError(f"Tick payload is not valid JSON: {e}") from e
        return cls.from_message(message)


@dataclass
class ActuatorCommand:
    """액추에이터 명령 (None인 채널은 전송하지 않음)"""
    pump: Optional[bool] = None
    solenoid: Optional[bool] = None

    @property
    def is_empty(self) -> bool:
        return self.pump is None and self.solenoid is None

    def to_message(self) -> Dict[str, bool]:
        """장치 프로토콜 메시지 {"pump_power": ..., "solenoid_power": ...}"""
        message = {}
        if self.pump is not None:
            message['pump_power'] = self.pump
        if self.solenoid is not None:
            message['solenoid_power'] = self.solenoid
        return message

    def to_dict(self) -> Dict[str, bool]:
        d = {}
        if self.pump is not None:
            d['pump'] = self.pump
        if self.solenoid is not None:
            d['solenoid'] = self.solenoid
        return d


@dataclass
class DecisionRecord:
    """단일 틱 출력"""
    angle1: float
    angle2: float
    flex: FlexReadings = field(default_factory=FlexReadings)
    actuator_command: Optional[ActuatorCommand] = None

    def to_dict(self, format_angles: bool = True, precision: int = 2) -> Dict[str, Any]:
        """
        Args:
            format_angles: True면 각도를 고정 소수점 문자열로 출력
            precision: 소수점 자릿수
        """
        if format_angles:
            angle1, angle2 = format_angle(self.angle1, precision), format_angle(self.angle2, precision)
        else:
            angle1, angle2 = self.angle1, self.angle2

        d = {'angle1': angle1, 'angle2': angle2}
        d.update(self.flex.to_dict())
        if self.actuator_command is not None and not self.actuator_command.is_empty:
            d['actuator'] = self.actuator_command.to_dict()
        return d

    def to_json(self, **kwargs) -> str:
        return json.dumps(self.to_dict(**kwargs))
