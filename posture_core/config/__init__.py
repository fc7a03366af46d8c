"""
config 모듈 - 설정 관리
"""

from .system_config import (
    SystemConfig,
    FilterConfig,
    TrackerConfig,
    ControllerConfig,
    TelemetryConfig,
    LoggingConfig,
    load_config,
    create_default_config
)

__all__ = [
    'SystemConfig',
    'FilterConfig',
    'TrackerConfig',
    'ControllerConfig',
    'TelemetryConfig',
    'LoggingConfig',
    'load_config',
    'create_default_config',
]
