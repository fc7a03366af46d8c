#!/usr/bin/env python3
"""
test_system_config.py - SystemConfig 단위 테스트

Author: PostureCore Team
"""

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parents[1]))

import pytest
import yaml

from posture_core.config.system_config import (
    SystemConfig,
    create_default_config,
    load_config
)
from posture_core.exceptions import InvalidConfigError


class TestSystemConfig:
    """설정 로드/저장 테스트"""

    def test_defaults(self):
        config = SystemConfig().validate()

        assert config.filter.dt == 0.1
        assert config.filter.gain == 0.9
        assert config.filter.blend == "multiplicative"
        assert config.tracker.mode == "complementary"
        assert config.tracker.window_policy == "clear"
        assert config.controller.engage_threshold == 25.0
        assert config.telemetry.precision == 2

    def test_save_and_load(self, tmp_path):
        path = tmp_path / "posture.yaml"
        config = SystemConfig()
        config.filter.gain = 0.75
        config.tracker.mode = "integration"
        config.tracker.angle_scale = 9 / 32
        config.controller.debounce_delay_ms = 2500.0

        config.save(str(path))
        loaded = load_config(str(path))

        assert loaded.to_dict() == config.to_dict()

    def test_partial_file(self, tmp_path):
        path = tmp_path / "partial.yaml"
        path.write_text(yaml.dump({'controller': {'engage_threshold': 30.0}}))

        config = load_config(str(path))

        assert config.controller.engage_threshold == 30.0
        assert config.controller.release_threshold == -5.0
        assert config.filter.dt == 0.1

    def test_missing_file_uses_defaults(self, tmp_path):
        config = load_config(str(tmp_path / "missing.yaml"))
        assert config.to_dict() == SystemConfig().to_dict()

    def test_empty_file_uses_defaults(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")

        assert load_config(str(path)).to_dict() == SystemConfig().to_dict()

    @pytest.mark.parametrize("content", [
        {'filter': {'gain': 1.5}},
        {'filter': {'dt': 0}},
        {'tracker': {'mode': "unknown"}},
        {'controller': {'engage_threshold': -10.0}},
        {'filter': {'unknown_key': 1}},
        {'tracker': {'mode': "integration", 'smoothing': "kalman"}},
        [1, 2],
        {'filter': [0.1, 0.9]},
    ])
    def test_invalid_file(self, tmp_path, content):
        path = tmp_path / "invalid.yaml"
        path.write_text(yaml.dump(content))

        with pytest.raises(InvalidConfigError):
            load_config(str(path))

    def test_create_default_config(self, tmp_path):
        path = tmp_path / "default.yaml"

        config = create_default_config(str(path))

        assert path.exists()
        assert load_config(str(path)).to_dict() == config.to_dict()


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
