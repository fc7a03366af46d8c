"""
main.py - 장치 세션 단위 통합 처리

세그먼트 샘플 쌍 -> 굽힘 각도 트래커 2개 -> 히스테리시스 제어기
파이프라인을 세션(장치 쌍) 단위로 묶습니다.

파이프라인 (틱마다):
1. 수동 요청 처리 (처리되면 각도 계산 없이 종료, 텔레메트리 없음)
2. 세그먼트별 굽힘 각도 계산 (Variant A 또는 B)
3. 히스테리시스 판단 및 액추에이터 명령
4. 텔레메트리 발행

입력 검증 오류가 난 틱은 버려지며, 세션 상태는 틱 이전으로 유지됩니다.

Version: 1.0
Author: PostureCore Team
"""

import threading
from typing import Dict, Optional, Tuple, Union, Any
import logging

from .config.system_config import SystemConfig
from .control.hysteresis_controller import HysteresisController, ControllerState
from .estimation.bend_angle_tracker import BendAngleTracker, TrackerMode, create_tracker
from .exceptions import ShapeMismatchError, TICK_VALIDATION_ERRORS
from .gateway import ActuatorGateway, TelemetryGateway
from .messages import DecisionRecord, TickRecord

logger = logging.getLogger(__name__)


class PostureSession:
    """
    장치 쌍 하나의 세션 컨텍스트

    세그먼트별 RollingIntegratorState와 ActuatorState를 소유하며,
    다른 세션과 가변 상태를 공유하지 않습니다.
    틱은 도착 순서대로 한 번에 하나씩 처리됩니다.

    Example:
        >>> session = PostureSession("device-1", actuator, telemetry)
        >>> record = session.process_tick(message)
        >>> session.close()
    """

    def __init__(
        self,
        session_id: str,
        actuator: ActuatorGateway,
        telemetry: Optional[TelemetryGateway] = None,
        config: Optional[SystemConfig] = None,
        scheduler=None
    ):
        """
        Args:
            session_id: 세션 식별자
            actuator: 액추에이터 게이트웨이
            telemetry: 텔레메트리 게이트웨이 (None이면 발행 안함)
            config: 시스템 설정
            scheduler: 디바운스 타이머 스케줄러
        """
        self.session_id = session_id
        self.config = (config or SystemConfig()).validate()
        self.telemetry = telemetry

        self.tracker_1 = create_tracker(self.config.tracker, self.config.filter)
        self.tracker_2 = create_tracker(self.config.tracker, self.config.filter)
        self.controller = HysteresisController(self.config.controller, actuator, scheduler)

        self._lock = threading.RLock()
        self._tick_count = 0
        self._dropped_count = 0
        self._closed = False

        logger.info(f"PostureSession opened: id={session_id}, tracker={self.config.tracker.mode}")

    def process_tick(
        self,
        tick: Union[TickRecord, Dict[str, Any]]
    ) -> Optional[DecisionRecord]:
        """
        단일 틱 처리

        Args:
            tick: TickRecord 또는 장치 메시지 딕셔너리

        Returns:
            DecisionRecord, 수동 요청 틱이나 버려진 틱이면 None
        """
        with self._lock:
            if self._closed:
                raise RuntimeError(f"Session {self.session_id} is closed")

            tick_idx = self._tick_count
            self._tick_count += 1

            try:
                if not isinstance(tick, TickRecord):
                    tick = TickRecord.from_message(tick)
            except TICK_VALIDATION_ERRORS as e:
                return self._drop(tick_idx, e)

            # 1. 수동 요청
            manual = self.controller.handle_manual(tick.manual_pump, tick.manual_solenoid)
            if manual is not None:
                return None

            # 2. 굽힘 각도
            try:
                angle1, angle2 = self._compute_angles(tick)
            except TICK_VALIDATION_ERRORS as e:
                return self._drop(tick_idx, e)

            # 3. 히스테리시스 판단
            decision = self.controller.evaluate(angle1, angle2)

            record = DecisionRecord(
                angle1=angle1,
                angle2=angle2,
                flex=tick.flex,
                actuator_command=decision.command
            )

            # 4. 텔레메트리
            if self.telemetry is not None:
                self.telemetry.publish(record)

            logger.debug(
                f"Tick {tick_idx}: angle1={angle1:.2f}, angle2={angle2:.2f}, "
                f"state={decision.state.value}"
            )

            return record

    def _compute_angles(self, tick: TickRecord) -> Tuple[float, float]:
        """두 세그먼트 각도 계산 (하나라도 실패하면 둘 다 틱 이전 상태로 복원)"""
        trackers = (self.tracker_1, self.tracker_2)
        snapshots = [tracker.snapshot() for tracker in trackers]

        try:
            angle1 = self._update_tracker(self.tracker_1, tick, 1)
            angle2 = self._update_tracker(self.tracker_2, tick, 2)
        except TICK_VALIDATION_ERRORS:
            for tracker, snapshot in zip(trackers, snapshots):
                tracker.restore(snapshot)
            raise

        return angle1, angle2

    def _update_tracker(self, tracker: BendAngleTracker, tick: TickRecord, segment: int) -> float:
        if tracker.mode == TrackerMode.INTEGRATION:
            rate = getattr(tick, f'rate_{segment}')
            if rate is None:
                raise ShapeMismatchError(f"Tick is missing rate_{segment}")
            return tracker.update(rate)

        gyro = getattr(tick, f'gyro_{segment}')
        acc = getattr(tick, f'acc_{segment}')
        if gyro is None or acc is None:
            raise ShapeMismatchError(f"Tick is missing gyro_{segment}/acc_{segment}")
        return tracker.update(gyro, acc)

    def _drop(self, tick_idx: int, error: Exception) -> None:
        self._dropped_count += 1
        logger.warning(f"Session {self.session_id}: dropping tick {tick_idx}: {error}")
        return None

    def close(self):
        """
        스트림 종료 처리

        대기 중인 타이머를 취소하고 트래커/액추에이터 상태를 리셋하여
        재연결 시 초기 상태에서 시작하도록 합니다.
        """
        with self._lock:
            if self._closed:
                return
            self.controller.reset()
            self.tracker_1.reset()
            self.tracker_2.reset()
            self._closed = True

        logger.info(
            f"PostureSession closed: id={self.session_id}, "
            f"ticks={self._tick_count}, dropped={self._dropped_count}"
        )

    @property
    def is_closed(self) -> bool:
        return self._closed

    @property
    def tick_count(self) -> int:
        return self._tick_count

    @property
    def dropped_count(self) -> int:
        return self._dropped_count

    @property
    def state(self) -> ControllerState:
        return self.controller.state

    @classmethod
    def from_config(
        cls,
        session_id: str,
        config: SystemConfig,
        actuator: ActuatorGateway,
        telemetry: Optional[TelemetryGateway] = None,
        scheduler=None
    ) -> 'PostureSession':
        return cls(session_id, actuator, telemetry, config=config, scheduler=scheduler)


class SessionRegistry:
    """
    동시 세션 관리

    세션끼리는 독립적이며, 레지스트리는 세션 목록만 보호합니다.
    """

    def __init__(self, config: Optional[SystemConfig] = None, scheduler=None):
        self.config = (config or SystemConfig()).validate()
        self.scheduler = scheduler
        self._sessions: Dict[str, PostureSession] = {}
        self._lock = threading.Lock()

    def open(
        self,
        session_id: str,
        actuator: ActuatorGateway,
        telemetry: Optional[TelemetryGateway] = None
    ) -> PostureSession:
        """
        세션 생성 (같은 ID의 기존 세션은 닫고 교체)
        """
        session = PostureSession(
            session_id, actuator, telemetry, config=self.config, scheduler=self.scheduler
        )
        with self._lock:
            previous = self._sessions.get(session_id)
            self._sessions[session_id] = session

        if previous is not None:
            logger.info(f"Replacing existing session: id={session_id}")
            previous.close()

        return session

    def get(self, session_id: str) -> Optional[PostureSession]:
        with self._lock:
            return self._sessions.get(session_id)

    def close(self, session_id: str) -> bool:
        """
        세션 종료 후 제거

        Returns:
            세션이 존재했으면 True
        """
        with self._lock:
            session = self._sessions.get(session_id)
        if session is None:
            return False

        # 상태 리셋과 타이머 취소가 끝난 뒤에 목록에서 제거
        session.close()
        with self._lock:
            if self._sessions.get(session_id) is session:
                del self._sessions[session_id]
        return True

    def close_all(self):
        with self._lock:
            session_ids = list(self._sessions)
        for session_id in session_ids:
            self.close(session_id)

    def __contains__(self, session_id: str) -> bool:
        with self._lock:
            return session_id in self._sessions

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)
