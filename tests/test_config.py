"""Tests for configuration loading and validation."""

import pytest

from neurotrend.core.config import ConfigError, load_config
from neurotrend.trend_engine import TrendEngine


class TestLoadConfig:

    def test_defaults(self):
        cfg = load_config()
        assert cfg["buffer"]["window_size"] == 30
        assert cfg["baseline"]["window"] == 10
        assert cfg["thresholds"]["advisory"] == pytest.approx(0.15)
        assert cfg["thresholds"]["critical"] == pytest.approx(0.30)
        assert cfg["timing"]["critical_persist_ms"] == 10000
        assert cfg["composite"]["weights"] == {"face_symmetry": 0.7, "pupil_size": 0.3}

    def test_yaml_file_overrides_defaults(self, tmp_path):
        path = tmp_path / "custom.yaml"
        path.write_text("buffer:\n  window_size: 1800\nthresholds:\n  advisory: 0.25\n  critical: 0.4\n")

        cfg = load_config(str(path))
        assert cfg["buffer"]["window_size"] == 1800
        assert cfg["thresholds"]["advisory"] == pytest.approx(0.25)
        # Chaves não citadas continuam com o padrão
        assert cfg["buffer"]["confidence_threshold"] == pytest.approx(0.6)

    def test_non_mapping_yaml_rejected(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("- just\n- a list\n")
        with pytest.raises(ConfigError):
            load_config(str(path))


class TestEngineOptions:

    def test_flat_options_map_to_sections(self):
        engine = TrendEngine(window_size=5, debounce_ms=1, advisory_threshold=0.1)
        assert engine.cfg["buffer"]["window_size"] == 5
        assert engine.cfg["timing"]["debounce_ms"] == 1
        assert engine.cfg["thresholds"]["advisory"] == pytest.approx(0.1)

    def test_unknown_option(self):
        with pytest.raises(ConfigError):
            TrendEngine(windowSize=5)

    @pytest.mark.parametrize("options", [
        {"window_size": 0},
        {"window_size": 2.5},
        {"baseline_window": -1},
        {"advisory_threshold": 0.4, "critical_threshold": 0.3},
        {"confidence_threshold": 1.5},
        {"debounce_ms": -1},
        {"hysteresis_clear_ms": "soon"},
        {"baseline_statistic": "mode"},
        {"critical_threshold": float("nan")},
    ])
    def test_corrupt_config_raises_at_construction(self, options):
        with pytest.raises(ConfigError):
            TrendEngine(**options)

    def test_composite_primary_must_be_weighted(self):
        cfg = load_config()
        cfg["composite"]["primary"] = "voice_jitter"
        with pytest.raises(ConfigError):
            TrendEngine(cfg)

    def test_absolute_policy_needs_both_thresholds(self):
        cfg = load_config()
        cfg["metrics"]["voice_shimmer"] = {"mode": "absolute", "advisory": 0.05}
        with pytest.raises(ConfigError):
            TrendEngine(cfg)

    def test_config_error_is_value_error(self):
        assert issubclass(ConfigError, ValueError)
