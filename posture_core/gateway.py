"""
gateway.py - 외부 협력 객체 인터페이스

코어는 전송 계층을 알지 못합니다. 액추에이터 명령과 텔레메트리는
아래 인터페이스를 통해서만 내보냅니다.

- ActuatorGateway: 펌프/솔레노이드 명령 전달 (응답 없음)
- TelemetryGateway: 각도 + 굽힘 센서 값 브로드캐스트

Recording* 구현은 오프라인 재생과 테스트에서 사용합니다.
"""

import threading
from abc import ABC, abstractmethod
from typing import Dict, List
import logging

from .messages import ActuatorCommand, DecisionRecord

logger = logging.getLogger(__name__)


class ActuatorGateway(ABC):
    """액추에이터 링크"""

    @property
    @abstractmethod
    def is_connected(self) -> bool:
        """물리 액추에이터 링크 연결 여부"""

    @abstractmethod
    def send(self, message: Dict[str, bool]):
        """명령 메시지 전송 (fire-and-forget)"""

    def send_command(self, command: ActuatorCommand):
        if command.is_empty:
            return
        self.send(command.to_message())


class TelemetryGateway(ABC):
    """텔레메트리 출력"""

    @abstractmethod
    def publish(self, record: DecisionRecord):
        """틱 결과 전달"""


class RecordingActuatorGateway(ActuatorGateway):
    """전송된 명령을 메모리에 기록하는 액추에이터 게이트웨이"""

    def __init__(self, connected: bool = True):
        self._connected = connected
        self._lock = threading.Lock()
        self.sent: List[Dict[str, bool]] = []

    @property
    def is_connected(self) -> bool:
        return self._connected

    def set_connected(self, connected: bool):
        self._connected = connected

    def send(self, message: Dict[str, bool]):
        with self._lock:
            self.sent.append(dict(message))
        logger.debug(f"Actuator message recorded: {message}")


class RecordingTelemetryGateway(TelemetryGateway):
    """발행된 텔레메트리를 메모리에 기록"""

    def __init__(self):
        self._lock = threading.Lock()
        self.records: List[DecisionRecord] = []

    def publish(self, record: DecisionRecord):
        with self._lock:
            self.records.append(record)
