"""Tests for configuration and calibration settings."""

import pytest

from echosense.config import Config
from echosense.settings import (
    BASE_SENSITIVITY_KEY,
    INVERT_GESTURE_KEY,
    MEDIAN_MULTIPLIER_KEY,
    CalibrationParams,
    MemorySettingsStore,
)


class TestConfig:
    """Tests for Config."""

    def test_default_values(self):
        config = Config()
        assert config.sample_interval == 0.02
        assert config.distance_alpha == 0.12
        assert config.velocity_alpha == 0.5
        assert config.history_size == 150
        assert config.log_size == 5000
        assert config.correlation_method == "direct"

    def test_derived_values(self):
        config = Config()
        assert config.tick_rate == pytest.approx(50.0)
        assert config.velocity_window_samples == 50
        assert config.breath_window_samples == 1000
        assert config.min_lag == 85
        assert config.max_lag_limit in (374, 375)

    def test_custom_interval(self):
        config = Config(sample_interval=0.01)
        assert config.velocity_window_samples == 100
        assert config.breath_window_samples == 2000

    @pytest.mark.parametrize("kwargs", [
        {"sample_interval": 0.0},
        {"distance_alpha": 0.0},
        {"velocity_alpha": 1.5},
        {"history_size": 0},
        {"log_size": -1},
        {"breath_eval_every": 0},
        {"correlation_method": "wavelet"},
    ])
    def test_invalid_values(self, kwargs):
        with pytest.raises(ValueError):
            Config(**kwargs)


class TestMemorySettingsStore:
    """Tests for MemorySettingsStore."""

    def test_get_set(self):
        store = MemorySettingsStore()
        assert store.get("missing") is None
        assert store.get("missing", 3) == 3
        store.set("key", 1.5)
        assert store.get("key") == 1.5

    def test_initial_values(self):
        store = MemorySettingsStore({"a": 1})
        assert store.as_dict() == {"a": 1}


class TestCalibrationParams:
    """Tests for CalibrationParams."""

    def test_defaults(self):
        cal = CalibrationParams()
        assert cal.base_sensitivity == 0.001
        assert cal.median_multiplier == 1.0
        assert cal.invert_gesture is False

    def test_from_empty_store(self):
        assert CalibrationParams.from_store(MemorySettingsStore()) == CalibrationParams()

    def test_zero_means_unset(self):
        store = MemorySettingsStore({
            BASE_SENSITIVITY_KEY: 0.0,
            MEDIAN_MULTIPLIER_KEY: 0,
        })
        cal = CalibrationParams.from_store(store)
        assert cal.base_sensitivity == 0.001
        assert cal.median_multiplier == 1.0

    def test_store_round_trip(self):
        store = MemorySettingsStore()
        CalibrationParams(0.005, 1.8, True).to_store(store)
        assert store.get(INVERT_GESTURE_KEY) is True
        assert CalibrationParams.from_store(store) == CalibrationParams(0.005, 1.8, True)

    def test_replace(self):
        cal = CalibrationParams().replace(median_multiplier=2.0)
        assert cal.median_multiplier == 2.0
        assert cal.base_sensitivity == 0.001
