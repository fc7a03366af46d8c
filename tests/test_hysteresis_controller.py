#!/usr/bin/env python3
"""
test_hysteresis_controller.py - HysteresisController 단위 테스트

모든 시간 진행은 VirtualScheduler로 제어합니다.

Author: PostureCore Team
"""

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parents[1]))

import pytest

from posture_core.config.system_config import ControllerConfig
from posture_core.control.debounce_timer import VirtualScheduler
from posture_core.control.hysteresis_controller import ControllerState, HysteresisController
from posture_core.exceptions import InvalidConfigError
from posture_core.gateway import RecordingActuatorGateway


PUMP_ON = {'pump_power': True}
PUMP_OFF = {'pump_power': False}


@pytest.fixture
def scheduler():
    return VirtualScheduler()


@pytest.fixture
def actuator():
    return RecordingActuatorGateway()


@pytest.fixture
def controller(scheduler, actuator):
    return HysteresisController(ControllerConfig(), actuator, scheduler)


class TestEngage:
    """작동 확인 테스트"""

    def test_confirmed_after_delay(self, controller, scheduler, actuator):
        decision = controller.evaluate(30.0, 0.0)

        assert decision.state == ControllerState.DEBOUNCING
        assert decision.command is None
        assert controller.deadline == 5.0

        # 틱마다 계속 나쁜 자세: 재무장 없음
        for _ in range(9):
            scheduler.advance(0.5)
            controller.evaluate(30.0, 0.0)

        assert actuator.sent == []
        assert controller.state == ControllerState.DEBOUNCING

        scheduler.advance(0.5)

        assert actuator.sent == [PUMP_ON]
        assert controller.state == ControllerState.CORRECTING
        assert controller.actuator_state.pump_auto
        assert controller.deadline is None

    def test_not_before_deadline(self, controller, scheduler, actuator):
        controller.evaluate(25.0, 0.0)
        scheduler.advance(4.75)

        assert actuator.sent == []
        assert controller.state == ControllerState.DEBOUNCING

    def test_below_engage_stays_quiet(self, controller, scheduler, actuator):
        controller.evaluate(24.99, 0.0)
        scheduler.advance(10.0)

        assert controller.state == ControllerState.QUIET
        assert actuator.sent == []

    def test_between_thresholds_keeps_countdown(self, controller, scheduler, actuator):
        """release <= delta < engage 구간에서는 카운트다운 유지"""
        controller.evaluate(30.0, 0.0)
        scheduler.advance(2.0)
        controller.evaluate(10.0, 0.0)
        controller.evaluate(-5.0, 0.0)
        scheduler.advance(3.0)

        assert actuator.sent == [PUMP_ON]

    def test_delta_uses_both_segments(self, controller):
        decision = controller.evaluate(40.0, 20.0)

        assert decision.delta == 20.0
        assert decision.state == ControllerState.QUIET


class TestNoChatter:
    """반복 on/off 방지 테스트"""

    def test_short_excursion(self, controller, scheduler, actuator):
        controller.evaluate(30.0, 0.0)
        scheduler.advance(4.5)
        decision = controller.evaluate(-10.0, 0.0)

        assert decision.state == ControllerState.QUIET
        assert controller.deadline is None

        scheduler.advance(10.0)

        assert actuator.sent == []
        assert scheduler.pending == 0

    def test_oscillation_below_engage(self, controller, scheduler, actuator):
        for delta in [24.0, -10.0] * 20:
            controller.evaluate(delta, 0.0)
            scheduler.advance(0.5)

        assert actuator.sent == []
        assert controller.state == ControllerState.QUIET

    def test_oscillation_while_correcting(self, controller, scheduler, actuator):
        controller.evaluate(30.0, 0.0)
        scheduler.advance(5.0)

        for delta in [24.0, -5.0, 0.0, 30.0] * 5:
            controller.evaluate(delta, 0.0)
            scheduler.advance(0.5)

        assert actuator.sent == [PUMP_ON]
        assert controller.state == ControllerState.CORRECTING


class TestRelease:
    """해제 테스트"""

    def test_auto_release(self, controller, scheduler, actuator):
        controller.evaluate(30.0, 0.0)
        scheduler.advance(5.0)

        decision = controller.evaluate(-6.0, 0.0)

        assert decision.command.pump is False
        assert decision.state == ControllerState.QUIET
        assert actuator.sent == [PUMP_ON, PUMP_OFF]
        assert not controller.actuator_state.pump_auto

    def test_reengage_after_release(self, controller, scheduler, actuator):
        controller.evaluate(30.0, 0.0)
        scheduler.advance(5.0)
        controller.evaluate(-6.0, 0.0)

        controller.evaluate(30.0, 0.0)
        scheduler.advance(5.0)

        assert actuator.sent == [PUMP_ON, PUMP_OFF, PUMP_ON]

    def test_manual_correction_not_auto_released(self, controller, actuator):
        controller.handle_manual(manual_pump=True)

        decision = controller.evaluate(-30.0, 0.0)

        assert decision.command is None
        assert controller.state == ControllerState.CORRECTING
        assert actuator.sent == [PUMP_ON]


class TestManual:
    """수동 요청 테스트"""

    def test_manual_on_is_immediate(self, controller, actuator):
        decision = controller.process(0.0, 0.0, manual_pump=True)

        assert decision.manual
        assert not decision.broadcast
        assert decision.state == ControllerState.CORRECTING
        assert controller.actuator_state.pump_manual
        assert actuator.sent == [PUMP_ON]

    def test_manual_on_cancels_countdown(self, controller, scheduler, actuator):
        controller.evaluate(30.0, 0.0)
        scheduler.advance(2.0)

        controller.handle_manual(manual_pump=True)
        scheduler.advance(5.0)

        assert actuator.sent == [PUMP_ON]
        assert scheduler.pending == 0
        assert not controller.actuator_state.pump_auto

    def test_manual_off_after_auto(self, controller, scheduler, actuator):
        controller.evaluate(30.0, 0.0)
        scheduler.advance(5.0)

        decision = controller.handle_manual(manual_pump=False)

        assert decision.command.pump is False
        assert decision.state == ControllerState.QUIET
        assert actuator.sent == [PUMP_ON, PUMP_OFF]
        assert not controller.actuator_state.pump_auto
        assert not controller.actuator_state.pump_manual

    def test_manual_off_when_idle_falls_through(self, controller, actuator):
        assert controller.handle_manual(manual_pump=False) is None

        decision = controller.process(30.0, 0.0, manual_pump=False)

        assert not decision.manual
        assert decision.state == ControllerState.DEBOUNCING
        assert actuator.sent == []

    def test_solenoid(self, controller, actuator):
        controller.handle_manual(manual_solenoid=True)
        assert controller.state == ControllerState.CORRECTING

        controller.handle_manual(manual_solenoid=False)

        assert controller.state == ControllerState.QUIET
        assert actuator.sent == [{'solenoid_power': True}, {'solenoid_power': False}]

    def test_no_request(self, controller):
        assert controller.handle_manual() is None

    def test_link_down_drops_request(self, controller, actuator):
        actuator.set_connected(False)

        decision = controller.handle_manual(manual_pump=True)

        assert decision.dropped
        assert decision.command is None
        assert controller.state == ControllerState.QUIET
        assert not controller.actuator_state.pump_manual
        assert actuator.sent == []

    def test_link_override(self, controller, actuator):
        decision = controller.process(0.0, 0.0, manual_pump=True, actuator_link_up=False)

        assert decision.dropped
        assert actuator.sent == []


class TestTimerEdgeCases:
    """타이머 경계 조건 테스트"""

    def test_link_down_at_fire(self, controller, scheduler, actuator):
        controller.evaluate(30.0, 0.0)
        actuator.set_connected(False)

        scheduler.advance(5.0)

        assert controller.state == ControllerState.QUIET
        assert actuator.sent == []
        assert not controller.actuator_state.pump_auto

    def test_stale_confirmation_ignored(self, controller, actuator):
        controller.evaluate(30.0, 0.0)
        stale = controller._pending
        controller.evaluate(-10.0, 0.0)

        controller._on_confirmed(stale)

        assert controller.state == ControllerState.QUIET
        assert actuator.sent == []

    def test_reset_cancels_pending(self, controller, scheduler, actuator):
        controller.evaluate(30.0, 0.0)

        controller.reset()
        scheduler.advance(10.0)

        assert controller.state == ControllerState.QUIET
        assert scheduler.pending == 0
        assert actuator.sent == []

    def test_zero_delay(self, scheduler, actuator):
        controller = HysteresisController(
            ControllerConfig(debounce_delay_ms=0.0), actuator, scheduler
        )
        controller.evaluate(30.0, 0.0)
        scheduler.advance(0.0)

        assert actuator.sent == [PUMP_ON]


class TestControllerConfig:
    """제어기 설정 검증"""

    @pytest.mark.parametrize("kwargs", [
        {'engage_threshold': 10.0, 'release_threshold': 10.0},
        {'engage_threshold': 0.0, 'release_threshold': 5.0},
        {'debounce_delay_ms': -1.0},
        {'engage_threshold': float('nan')},
    ])
    def test_invalid(self, kwargs, actuator):
        with pytest.raises(InvalidConfigError):
            HysteresisController(ControllerConfig(**kwargs), actuator, VirtualScheduler())

    def test_defaults(self):
        config = ControllerConfig().validate()

        assert config.engage_threshold == 25.0
        assert config.release_threshold == -5.0
        assert config.debounce_delay_ms == 5000.0


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
