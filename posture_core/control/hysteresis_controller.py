"""
hysteresis_controller.py - 디바운스 + 히스테리시스 액추에이터 제어기

상태: QUIET -> DEBOUNCING(deadline) -> CORRECTING

판단 순서 (틱마다):
1. 수동 요청 (펌프/솔레노이드) - 처리되면 해당 틱의 나머지 판단 생략
   - 액추에이터 링크가 끊겨 있으면 조용히 버림
   - "on": 즉시 CORRECTING, 수동 플래그 설정, 디바운스 없이 명령 전송
   - "off": 보정 중일 때만 플래그 해제 후 QUIET, "off" 명령 전송
2. 자동 판단 (delta = angle1 - angle2)
   - delta >= engage, QUIET: DEBOUNCING 진입, 확인 타이머 무장
   - 타이머 발화 시 여전히 DEBOUNCING이면 CORRECTING (자동), 펌프 "on"
   - delta < release, DEBOUNCING: 타이머 취소, QUIET (명령 없음)
   - delta < release, 자동 CORRECTING: 펌프 "off", QUIET

engage/release 임계값을 분리하여 한 지점 근처에서의 반복 on/off를 막고,
확인 지연으로 단일 샘플 노이즈에 의한 작동을 막습니다.

Version: 1.0
Author: PostureCore Team
"""

import threading
from dataclasses import dataclass
from enum import Enum
from typing import Optional
import logging

from ..config.system_config import ControllerConfig
from ..exceptions import StaleTimerFired
from ..gateway import ActuatorGateway
from ..messages import ActuatorCommand
from .debounce_timer import DebounceTimer, TimerHandle

logger = logging.getLogger(__name__)


class ControllerState(Enum):
    """제어기 상태"""
    QUIET = "quiet"
    DEBOUNCING = "debouncing"
    CORRECTING = "correcting"


@dataclass
class ActuatorState:
    """액추에이터 플래그"""
    pump_manual: bool = False
    pump_auto: bool = False
    solenoid: bool = False

    @property
    def correction_active(self) -> bool:
        return self.pump_manual or self.pump_auto or self.solenoid

    def reset(self):
        self.pump_manual = False
        self.pump_auto = False
        self.solenoid = False


@dataclass
class ControlDecision:
    """
    틱 판단 결과

    Attributes:
        state: 판단 후 제어기 상태
        command: 이번 틱에 전송한 명령 (없으면 None)
        broadcast: 텔레메트리 발행 여부
        manual: 수동 요청으로 처리된 틱 여부
        dropped: 링크 단절로 버려진 수동 요청 여부
        delta: angle1 - angle2 (자동 판단 시)
    """
    state: ControllerState
    command: Optional[ActuatorCommand] = None
    broadcast: bool = True
    manual: bool = False
    dropped: bool = False
    delta: Optional[float] = None


class HysteresisController:
    """
    쌍을 이루는 두 세그먼트의 굽힘 각도로 액추에이터를 제어

    틱 처리와 타이머 발화는 같은 락으로 직렬화되며,
    액추에이터 게이트웨이에 명령을 쓰는 유일한 주체입니다.

    Example:
        >>> controller = HysteresisController(ControllerConfig(), actuator)
        >>> decision = controller.process(angle1, angle2, manual_pump=None)
    """

    def __init__(
        self,
        config: Optional[ControllerConfig],
        actuator: ActuatorGateway,
        scheduler=None
    ):
        """
        Args:
            config: 임계값 및 확인 지연 설정
            actuator: 액추에이터 게이트웨이
            scheduler: 디바운스 타이머 스케줄러 (None이면 threading.Timer)
        """
        self.config = (config or ControllerConfig()).validate()
        self.actuator = actuator

        self._lock = threading.RLock()
        self._timer = DebounceTimer(self.config.debounce_delay_ms, scheduler)
        self._pending: Optional[TimerHandle] = None
        self._state = ControllerState.QUIET
        self.actuator_state = ActuatorState()

        logger.info(
            f"HysteresisController initialized: engage={self.config.engage_threshold}, "
            f"release={self.config.release_threshold}, delay={self.config.debounce_delay_ms}ms"
        )

    def process(
        self,
        angle1: float,
        angle2: float,
        manual_pump: Optional[bool] = None,
        manual_solenoid: Optional[bool] = None,
        actuator_link_up: Optional[bool] = None
    ) -> ControlDecision:
        """
        수동 요청 + 자동 판단 한번에

        Args:
            angle1: 세그먼트 1 굽힘 각도 (도)
            angle2: 세그먼트 2 굽힘 각도 (도)
            manual_pump: 수동 펌프 요청
            manual_solenoid: 수동 솔레노이드 요청
            actuator_link_up: 링크 상태 (None이면 게이트웨이 상태 사용)

        Returns:
            ControlDecision
        """
        with self._lock:
            decision = self.handle_manual(manual_pump, manual_solenoid, actuator_link_up)
            if decision is not None:
                return decision
            return self.evaluate(angle1, angle2)

    def handle_manual(
        self,
        manual_pump: Optional[bool] = None,
        manual_solenoid: Optional[bool] = None,
        actuator_link_up: Optional[bool] = None
    ) -> Optional[ControlDecision]:
        """
        수동 요청 처리

        Returns:
            ControlDecision, 수동 처리 대상이 아니면 None (자동 판단으로 진행)
        """
        if manual_pump is None and manual_solenoid is None:
            return None

        with self._lock:
            link_up = self._link_up(actuator_link_up)
            if not link_up:
                logger.warning("Dropping manual actuator request: actuator link is down")
                return ControlDecision(
                    state=self._state, broadcast=False, manual=True, dropped=True
                )

            flags = self.actuator_state
            command = ActuatorCommand()
            was_active = flags.correction_active

            if manual_pump:
                flags.pump_manual = True
                command.pump = True
            elif manual_pump is not None and was_active:
                flags.pump_manual = False
                flags.pump_auto = False
                command.pump = False

            if manual_solenoid:
                flags.solenoid = True
                command.solenoid = True
            elif manual_solenoid is not None and was_active:
                flags.solenoid = False
                command.solenoid = False

            if command.is_empty:
                # 보정 중이 아닐 때의 "off"는 자동 판단으로 진행
                return None

            self._cancel_pending()
            self._state = ControllerState.CORRECTING if flags.correction_active else ControllerState.QUIET

            logger.info(f"Manual actuator command: {command.to_message()} -> {self._state.value}")
            self.actuator.send_command(command)

            return ControlDecision(
                state=self._state, command=command, broadcast=False, manual=True
            )

    def evaluate(self, angle1: float, angle2: float) -> ControlDecision:
        """
        자동 히스테리시스 판단

        Args:
            angle1: 세그먼트 1 굽힘 각도 (도)
            angle2: 세그먼트 2 굽힘 각도 (도)
        """
        with self._lock:
            delta = angle1 - angle2
            command = None
            cfg = self.config

            if self._state == ControllerState.QUIET:
                if delta >= cfg.engage_threshold and not self.actuator_state.correction_active:
                    self._pending = self._timer.arm(self._on_confirmed)
                    self._state = ControllerState.DEBOUNCING
                    logger.info(
                        f"Threshold exceeded (delta={delta:.2f}), "
                        f"confirming for {cfg.debounce_delay_ms:.0f}ms"
                    )

            elif self._state == ControllerState.DEBOUNCING:
                if delta < cfg.release_threshold:
                    self._cancel_pending()
                    self._state = ControllerState.QUIET
                    logger.info(f"Posture returned to normal (delta={delta:.2f}), countdown stopped")

            elif self._state == ControllerState.CORRECTING:
                if self.actuator_state.pump_auto and delta < cfg.release_threshold:
                    self.actuator_state.pump_auto = False
                    command = ActuatorCommand(pump=False)
                    self._state = (
                        ControllerState.CORRECTING
                        if self.actuator_state.correction_active
                        else ControllerState.QUIET
                    )
                    logger.info(f"Turning off pumps because bad posture has been corrected (delta={delta:.2f})")
                    self.actuator.send_command(command)

            return ControlDecision(state=self._state, command=command, delta=delta)

    def _on_confirmed(self, handle: TimerHandle):
        """확인 타이머 발화 (타이머 스레드 또는 가상 시계에서 호출)"""
        try:
            with self._lock:
                if self._state != ControllerState.DEBOUNCING or self._pending is not handle:
                    raise StaleTimerFired(f"Confirmation timer superseded: {handle!r}")

                self._pending = None

                if not self._link_up(None):
                    logger.warning("Consistent bad posture confirmed but actuator link is down")
                    self._state = ControllerState.QUIET
                    return

                self.actuator_state.pump_auto = True
                self._state = ControllerState.CORRECTING
                logger.info("Turning on pumps because consistent bad posture has been detected")
                self.actuator.send_command(ActuatorCommand(pump=True))
        except StaleTimerFired as e:
            logger.debug(str(e))

    def _cancel_pending(self):
        if self._pending is not None:
            self._timer.cancel()
            self._pending = None

    def _link_up(self, override: Optional[bool]) -> bool:
        if override is not None:
            return override
        return self.actuator.is_connected

    def reset(self):
        """스트림 종료 시 리셋 (대기 타이머 취소, 플래그 초기화)"""
        with self._lock:
            self._cancel_pending()
            self._timer.cancel()
            self._state = ControllerState.QUIET
            self.actuator_state.reset()
        logger.debug("HysteresisController reset")

    @property
    def state(self) -> ControllerState:
        with self._lock:
            return self._state

    @property
    def deadline(self) -> Optional[float]:
        """대기 중인 확인 타이머의 데드라인 (없으면 None)"""
        with self._lock:
            return self._pending.deadline if self._pending is not None else None
