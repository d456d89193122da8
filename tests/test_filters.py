"""Tests for distance and velocity smoothing."""

import pytest

from echosense.config import Config
from echosense.filters import (
    FilterState,
    ema,
    estimate_velocity,
    filter_distance,
    step_filters,
)


class TestEMA:
    """Tests for the ema() step."""

    def test_seeds_to_first_input(self):
        assert ema(None, 0.42, 0.12) == 0.42

    def test_weighted_update(self):
        assert ema(1.0, 2.0, 0.25) == pytest.approx(1.25)

    def test_constant_input_converges_monotonically(self):
        y = 0.0
        target = 1.0
        errors = []
        for _ in range(200):
            y = ema(y, target, 0.12)
            errors.append(abs(target - y))

        assert all(b < a for a, b in zip(errors, errors[1:]))
        assert errors[-1] < 1e-6


class TestFilterState:
    """Tests for FilterState."""

    def test_initially_absent(self):
        state = FilterState()
        assert state.smoothed_distance is None
        assert state.smoothed_velocity is None
        assert not state.is_seeded

    def test_first_sample_seeds_distance_and_zero_velocity(self, config):
        state, distance, velocity = step_filters(FilterState(), 0.5, config)
        assert distance == 0.5
        assert velocity == 0.0
        assert state.is_seeded
        assert state.smoothed_velocity == 0.0

    def test_present_after_first_sample(self, config):
        state = FilterState()
        for x in [0.3, 0.31, 0.29, 0.35]:
            state, _, _ = step_filters(state, x, config)
            assert state.smoothed_distance is not None
            assert state.smoothed_velocity is not None


class TestDistanceFilter:
    """Tests for the distance filter."""

    def test_alpha(self):
        state, y = filter_distance(FilterState(0.3, 0.0), 0.4, 0.12)
        assert y == pytest.approx(0.3 + 0.12 * 0.1)
        assert state.smoothed_distance == y
        assert state.smoothed_velocity == 0.0

    def test_pure(self):
        state = FilterState(0.3, 0.0)
        filter_distance(state, 1.0, 0.12)
        assert state.smoothed_distance == 0.3


class TestVelocityEstimator:
    """Tests for the velocity estimator."""

    def test_finite_difference_smoothed(self):
        state = FilterState(0.312, 0.0)
        state, v = estimate_velocity(state, 0.3, 0.5)
        assert v == pytest.approx(0.006)
        assert state.smoothed_velocity == pytest.approx(0.006)

    def test_step_filters_two_samples(self, config):
        state, _, _ = step_filters(FilterState(), 0.3, config)
        state, distance, velocity = step_filters(state, 0.4, config)
        assert distance == pytest.approx(0.312)
        assert velocity == pytest.approx(0.006)

    def test_velocity_tracks_ramp_slope(self, config):
        state = FilterState()
        velocity = None
        for i in range(300):
            state, _, velocity = step_filters(state, 0.3 + 0.001 * i, config)
        assert velocity == pytest.approx(0.001, rel=1e-3)

    def test_velocity_uses_faster_alpha(self):
        config = Config(distance_alpha=0.12, velocity_alpha=0.5)
        state = FilterState(0.3, 0.01)
        _, v = estimate_velocity(state, 0.3, config.velocity_alpha)
        assert v == pytest.approx(0.005)
