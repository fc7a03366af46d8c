"""
control 모듈 - 액추에이터 작동 판단

디바운스 타이머와 히스테리시스 상태 기계로
펌프/솔레노이드 명령을 결정합니다.
"""

from .debounce_timer import (
    DebounceTimer,
    TimerHandle,
    ThreadingScheduler,
    VirtualScheduler
)
from .hysteresis_controller import (
    HysteresisController,
    ControllerState,
    ActuatorState,
    ControlDecision
)

__all__ = [
    'DebounceTimer',
    'TimerHandle',
    'ThreadingScheduler',
    'VirtualScheduler',
    'HysteresisController',
    'ControllerState',
    'ActuatorState',
    'ControlDecision',
]
