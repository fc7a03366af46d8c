#!/usr/bin/env python3
"""
test_session.py - PostureSession / SessionRegistry 통합 테스트

Author: PostureCore Team
"""

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parents[1]))

import json
import math

import numpy as np
import pytest

from posture_core.config.system_config import SystemConfig, TrackerConfig
from posture_core.control.debounce_timer import VirtualScheduler
from posture_core.control.hysteresis_controller import ControllerState
from posture_core.gateway import RecordingActuatorGateway, RecordingTelemetryGateway
from posture_core.main import PostureSession, SessionRegistry
from posture_core.messages import DecisionRecord, TickRecord


def tilted(degrees: float) -> list:
    theta = math.radians(degrees)
    return [[-math.sin(theta) * 9.8, 0.0, math.cos(theta) * 9.8]]


def imu_message(angle1: float = 0.0, angle2: float = 0.0, **extra) -> dict:
    message = {
        'gyro_1': [[0.0, 0.0, 0.0]],
        'acc_1': tilted(angle1),
        'gyro_2': [[0.0, 0.0, 0.0]],
        'acc_2': tilted(angle2),
        'cflex': 512,
        'tflex': 498,
        'lflex': 530,
    }
    message.update(extra)
    return message


@pytest.fixture
def scheduler():
    return VirtualScheduler()


@pytest.fixture
def actuator():
    return RecordingActuatorGateway()


@pytest.fixture
def telemetry():
    return RecordingTelemetryGateway()


@pytest.fixture
def session(actuator, telemetry, scheduler):
    return PostureSession("device-1", actuator, telemetry, scheduler=scheduler)


@pytest.fixture
def rate_session(actuator, telemetry, scheduler):
    config = SystemConfig(tracker=TrackerConfig(mode="integration"))
    return PostureSession("device-2", actuator, telemetry, config=config, scheduler=scheduler)


class TestComplementarySession:
    """Variant A 세션 테스트"""

    def test_device_sample(self, session, telemetry):
        message = {
            'gyro_1': [[0.0257, -0.0202, -0.277]],
            'acc_1': (np.array([[0.0199, -0.0550, 1.0256]]) * 9.8).tolist(),
            'gyro_2': [[0.0257, -0.0202, -0.277]],
            'acc_2': (np.array([[0.0199, -0.0550, 1.0256]]) * 9.8).tolist(),
            'cflex': 1, 'tflex': 2, 'lflex': 3,
        }

        record = session.process_tick(message)
        d = record.to_dict()

        assert d['angle1'] == "-1.11"
        assert d['angle2'] == "-1.11"
        assert (d['cflex'], d['tflex'], d['lflex']) == (1, 2, 3)
        assert 'actuator' not in d
        assert telemetry.records == [record]

    def test_json_payload(self, session):
        tick = TickRecord.from_json(json.dumps(imu_message(30.0, 0.0)))

        record = session.process_tick(tick)

        assert record.angle1 == pytest.approx(30.0, abs=1e-9)
        assert record.angle2 == pytest.approx(0.0, abs=1e-9)

    def test_bad_posture_engages_pump(self, session, scheduler, actuator, telemetry):
        for _ in range(10):
            session.process_tick(imu_message(30.0, 0.0))
            scheduler.advance(0.5)

        assert actuator.sent == [{'pump_power': True}]
        assert session.state == ControllerState.CORRECTING

        record = session.process_tick(imu_message(-10.0, 0.0))

        assert record.actuator_command.pump is False
        assert record.to_dict()['actuator'] == {'pump': False}
        assert actuator.sent == [{'pump_power': True}, {'pump_power': False}]
        assert len(telemetry.records) == 11

    def test_flex_passthrough_unchanged(self, session):
        record = session.process_tick(imu_message(cflex="raw", tflex=None, lflex=[1, 2]))

        assert record.flex.cervical == "raw"
        assert record.flex.thoracic is None
        assert record.flex.lumbar == [1, 2]


class TestDroppedTicks:
    """잘못된 틱 처리 테스트"""

    def test_degenerate_tick_dropped(self, session, telemetry):
        session.process_tick(imu_message(20.0, 10.0))

        bad = imu_message(0.0, 0.0)
        bad['acc_2'] = [[0.0, 0.0, 0.0]]
        result = session.process_tick(bad)

        assert result is None
        assert session.dropped_count == 1
        assert session.tick_count == 2
        assert len(telemetry.records) == 1
        assert session.tracker_1.angle == pytest.approx(20.0, abs=1e-9)

    def test_shape_mismatch_dropped(self, session):
        bad = imu_message()
        bad['gyro_1'] = [[0.0, 0.0]]

        assert session.process_tick(bad) is None
        assert session.dropped_count == 1

    def test_missing_segment_dropped(self, session):
        bad = imu_message()
        del bad['acc_2']

        assert session.process_tick(bad) is None

    def test_non_dict_message_dropped(self, session):
        assert session.process_tick(["not", "a", "message"]) is None
        assert session.dropped_count == 1

    def test_non_numeric_samples_dropped(self, session):
        bad = imu_message()
        bad['acc_1'] = [["x", "y", "z"]]

        assert session.process_tick(bad) is None

    def test_session_continues_after_drop(self, session):
        bad = imu_message()
        bad['acc_1'] = [[0.0, 0.0, 0.0]]
        session.process_tick(bad)

        record = session.process_tick(imu_message(15.0, 5.0))

        assert record.angle1 == pytest.approx(15.0, abs=1e-9)


class TestIntegrationSession:
    """Variant B 세션 테스트"""

    def test_cold_start(self, rate_session):
        record = rate_session.process_tick({'rate_1': 1.0, 'rate_2': 1.0})

        assert record.to_dict() == {
            'angle1': "0.00", 'angle2': "0.00",
            'cflex': None, 'tflex': None, 'lflex': None
        }

    def test_integrates_per_segment(self, rate_session):
        for _ in range(3):
            record = rate_session.process_tick({'rate_1': 3.0, 'rate_2': 0.0})

        assert record.to_dict()['angle1'] == "0.60"
        assert record.to_dict()['angle2'] == "0.00"

    def test_half_failed_tick_rolls_back(self, rate_session):
        """세그먼트 2 실패 시 세그먼트 1 윈도우도 틱 이전 상태"""
        rate_session.process_tick({'rate_1': 1.0, 'rate_2': 1.0})

        result = rate_session.process_tick({'rate_1': 1.0, 'rate_2': float('nan')})

        assert result is None
        assert list(rate_session.tracker_1.state.window) == [1.0]
        assert list(rate_session.tracker_2.state.window) == [1.0]

    def test_missing_rate_dropped(self, rate_session):
        assert rate_session.process_tick({'rate_1': 1.0}) is None
        assert len(rate_session.tracker_1.state.window) == 0


class TestManualTicks:
    """수동 요청 틱 테스트"""

    def test_manual_tick_not_broadcast(self, session, actuator, telemetry):
        result = session.process_tick(imu_message(pump_power=1))

        assert result is None
        assert actuator.sent == [{'pump_power': True}]
        assert telemetry.records == []
        assert session.state == ControllerState.CORRECTING

    def test_manual_off_when_idle_processes_angles(self, session, actuator, telemetry):
        record = session.process_tick(imu_message(10.0, 0.0, pump_power=0))

        assert isinstance(record, DecisionRecord)
        assert actuator.sent == []
        assert len(telemetry.records) == 1

    def test_manual_dropped_when_link_down(self, session, actuator):
        actuator.set_connected(False)

        assert session.process_tick(imu_message(pump_power=True)) is None
        assert actuator.sent == []
        assert session.state == ControllerState.QUIET


class TestSessionLifecycle:
    """세션 종료 테스트"""

    def test_close_cancels_pending_timer(self, session, scheduler, actuator):
        session.process_tick(imu_message(30.0, 0.0))
        assert session.state == ControllerState.DEBOUNCING

        session.close()
        scheduler.advance(10.0)

        assert actuator.sent == []
        assert session.is_closed
        assert session.state == ControllerState.QUIET

    def test_closed_session_rejects_ticks(self, session):
        session.close()
        session.close()

        with pytest.raises(RuntimeError):
            session.process_tick(imu_message())

    def test_close_resets_trackers(self, rate_session):
        for _ in range(3):
            rate_session.process_tick({'rate_1': 3.0, 'rate_2': 3.0})

        rate_session.close()

        assert rate_session.tracker_1.state.cumulative_angle == 0.0
        assert rate_session.tracker_2.state.integrations == 0


class TestSessionRegistry:
    """동시 세션 관리 테스트"""

    def test_sessions_are_independent(self, scheduler):
        config = SystemConfig(tracker=TrackerConfig(mode="integration"))
        registry = SessionRegistry(config, scheduler)
        first = registry.open("a", RecordingActuatorGateway())
        second = registry.open("b", RecordingActuatorGateway())

        for _ in range(3):
            first.process_tick({'rate_1': 3.0, 'rate_2': 0.0})

        assert first.tracker_1.state.cumulative_angle == pytest.approx(0.6)
        assert second.tracker_1.state.cumulative_angle == 0.0
        assert len(registry) == 2

    def test_timers_are_per_session(self, scheduler):
        registry = SessionRegistry(scheduler=scheduler)
        actuator_a = RecordingActuatorGateway()
        actuator_b = RecordingActuatorGateway()
        a = registry.open("a", actuator_a)
        registry.open("b", actuator_b)

        a.process_tick(imu_message(30.0, 0.0))
        scheduler.advance(5.0)

        assert actuator_a.sent == [{'pump_power': True}]
        assert actuator_b.sent == []

    def test_close_removes_session(self, scheduler):
        registry = SessionRegistry(scheduler=scheduler)
        actuator = RecordingActuatorGateway()
        session = registry.open("a", actuator)
        session.process_tick(imu_message(30.0, 0.0))

        assert registry.close("a")
        assert "a" not in registry
        assert not registry.close("a")

        scheduler.advance(10.0)
        assert actuator.sent == []

    def test_reopen_starts_cold(self, scheduler):
        config = SystemConfig(tracker=TrackerConfig(mode="integration"))
        registry = SessionRegistry(config, scheduler)
        old = registry.open("a", RecordingActuatorGateway())
        for _ in range(3):
            old.process_tick({'rate_1': 3.0, 'rate_2': 3.0})

        new = registry.open("a", RecordingActuatorGateway())

        assert old.is_closed
        assert registry.get("a") is new
        assert new.process_tick({'rate_1': 1.0, 'rate_2': 1.0}).to_dict()['angle1'] == "0.00"

    def test_close_all(self, scheduler):
        registry = SessionRegistry(scheduler=scheduler)
        sessions = [registry.open(name, RecordingActuatorGateway()) for name in ("a", "b", "c")]

        registry.close_all()

        assert len(registry) == 0
        assert all(s.is_closed for s in sessions)


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
