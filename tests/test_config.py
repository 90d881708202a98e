"""Tests for AnalyticsConfig defaults, validation and loading."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from polisynth.config import AnalyticsConfig


class TestDefaults:
    """Test operator-facing defaults."""

    def test_operator_defaults(self):
        """Operator settings should default to level 3 with auto mode off."""
        config = AnalyticsConfig()
        assert config.intelligence_level == 3
        assert config.adaptive_frequency is True
        assert config.contextual_triggers is True
        assert config.auto_mode is False

    def test_caps_and_intervals(self):
        """Log capacity, caps and interval bounds should use their documented defaults."""
        config = AnalyticsConfig()
        assert config.event_log_capacity == 500
        assert config.resonance_pattern_cap == 20
        assert config.emergent_behavior_cap == 15
        assert config.entangled_pair_cap == 10
        assert config.min_interval_ms == 10_000
        assert config.max_interval_ms == 60_000


class TestValidation:
    """Intelligence level is bounded to 1-5."""

    @pytest.mark.parametrize("level", [0, 6, -1])
    def test_level_out_of_range(self, level):
        """Levels outside 1-5 should raise ValidationError."""
        with pytest.raises(ValidationError):
            AnalyticsConfig(intelligence_level=level)

    @pytest.mark.parametrize("level", [1, 5])
    def test_level_bounds_accepted(self, level):
        """Levels 1 and 5 should be accepted."""
        assert AnalyticsConfig(intelligence_level=level).intelligence_level == level


class TestOverrides:
    """Test environment and YAML overrides."""

    def test_environment_prefix(self, monkeypatch):
        """POLISYNTH_ prefixed variables should override defaults."""
        monkeypatch.setenv("POLISYNTH_INTELLIGENCE_LEVEL", "5")
        monkeypatch.setenv("POLISYNTH_AUTO_MODE", "true")
        config = AnalyticsConfig()
        assert config.intelligence_level == 5
        assert config.auto_mode is True

    def test_from_yaml(self, tmp_path):
        """from_yaml() should apply file values and keep other defaults."""
        path = tmp_path / "settings.yaml"
        path.write_text("intelligence_level: 4\nseed: 7\nevent_log_capacity: 50\n")

        config = AnalyticsConfig.from_yaml(str(path))

        assert config.intelligence_level == 4
        assert config.seed == 7
        assert config.event_log_capacity == 50
        assert config.resonance_pattern_cap == 20

    def test_from_empty_yaml(self, tmp_path):
        """An empty YAML file should yield the defaults."""
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert AnalyticsConfig.from_yaml(str(path)).intelligence_level == 3

    def test_from_yaml_missing_file(self, tmp_path):
        """from_yaml() should raise FileNotFoundError for a missing path."""
        with pytest.raises(FileNotFoundError):
            AnalyticsConfig.from_yaml(str(tmp_path / "missing.yaml"))
