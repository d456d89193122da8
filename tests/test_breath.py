"""Tests for autocorrelation breath estimation."""

import numpy as np
import pytest

from echosense.breath import BreathEstimator, BreathResult, autocorrelation_peak
from echosense.config import Config


def breathing_signal(bpm, seconds, interval=0.02, base=0.3, amplitude=0.005):
    t = np.arange(int(round(seconds / interval))) * interval
    return base + amplitude * np.sin(2 * np.pi * bpm / 60.0 * t)


class TestBreathResult:
    """Tests for BreathResult."""

    def test_empty(self):
        result = BreathResult.empty()
        assert result.rate == 0.0
        assert result.quality == 0.0

    def test_to_dict(self):
        d = BreathResult(rate=15.0, quality=0.8).to_dict()
        assert d == {"rate": 15.0, "quality": 0.8}


class TestAutocorrelationPeak:
    """Tests for autocorrelation_peak()."""

    @pytest.mark.parametrize("method", ["direct", "fft"])
    def test_finds_period(self, method):
        n = np.arange(400)
        samples = np.sin(2 * np.pi * n / 50.0)
        lag, corr = autocorrelation_peak(samples, 30, 80, method=method)
        assert abs(lag - 50) <= 1
        assert corr > 0.8

    def test_matches_explicit_sum(self):
        rng = np.random.default_rng(3)
        samples = rng.normal(size=120)
        samples -= samples.mean()
        energy = float(np.sum(samples ** 2))

        expected = [np.sum(samples[:-l] * samples[l:]) / energy for l in range(10, 60)]
        lag, corr = autocorrelation_peak(samples, 10, 59, method="direct")

        assert lag == 10 + int(np.argmax(expected))
        assert corr == pytest.approx(max(expected))

    def test_ties_keep_smallest_lag(self):
        lag, corr = autocorrelation_peak(np.zeros(50), 5, 20, method="direct")
        assert lag == 5
        assert corr == 0.0

    def test_default_method_breaks_exact_ties_to_smallest_lag(self):
        # Lags 3 and 5 both pair up two spikes
        samples = np.zeros(12)
        samples[[0, 3, 5, 8]] = 1.0
        lag, corr = autocorrelation_peak(samples, 2, 8)
        assert lag == 3
        assert corr == 0.5


class TestBreathEstimator:
    """Tests for BreathEstimator."""

    def test_window_capacity(self, config):
        estimator = BreathEstimator(Config(breath_eval_every=10_000))
        for x in breathing_signal(15, 30):
            estimator.update(float(x))
        assert estimator.window_size == config.breath_window_samples == 1000

    def test_insufficient_samples(self, config):
        estimator = BreathEstimator(config)
        for x in breathing_signal(15, 99 * config.sample_interval):
            result = estimator.update(float(x))
            assert result == BreathResult(0.0, 0.0)
        assert estimator.window_size == 99

    @pytest.mark.parametrize("bpm", [10.0, 15.0, 24.0])
    def test_rate_accuracy(self, config, bpm):
        estimator = BreathEstimator(config)
        result = None
        for x in breathing_signal(bpm, 25):
            result = estimator.update(float(x))

        assert result.rate == pytest.approx(bpm, abs=1.0)
        assert result.quality > 0.05

    def test_rate_accuracy_with_noise(self, config):
        rng = np.random.default_rng(7)
        samples = breathing_signal(12, 25) + rng.normal(0, 0.0005, 1250)
        estimator = BreathEstimator(config)
        for x in samples:
            result = estimator.update(float(x))

        assert result.rate == pytest.approx(12.0, abs=1.0)
        assert result.quality > 0.05

    def test_flat_signal_has_no_rate(self, config):
        estimator = BreathEstimator(config)
        for _ in range(300):
            result = estimator.update(0.3)
        assert result.rate == 0.0
        assert result.quality < 0.05

    def test_quality_in_unit_range(self, config):
        rng = np.random.default_rng(11)
        estimator = BreathEstimator(config)
        for x in rng.normal(0.3, 0.01, 500):
            result = estimator.update(float(x))
            assert 0.0 <= result.quality <= 1.0

    def test_short_lag_range_yields_zero(self):
        config = Config(breath_min_samples=10, breath_window_sec=1.0)
        estimator = BreathEstimator(config)
        for x in breathing_signal(30, 2):
            result = estimator.update(float(x))
        # window of 50 samples cannot reach the 85-sample minimum lag
        assert result == BreathResult(0.0, 0.0)

    def test_decimated_evaluation(self):
        config = Config(breath_eval_every=5)
        estimator = BreathEstimator(config)
        calls = []
        original = estimator.estimate

        def counting_estimate():
            calls.append(estimator.window_size)
            return original()

        estimator.estimate = counting_estimate
        for x in breathing_signal(15, 109 * 0.02):
            estimator.update(float(x))

        assert calls == [100, 105]

    def test_reset(self, config):
        estimator = BreathEstimator(config)
        for x in breathing_signal(15, 10):
            estimator.update(float(x))
        estimator.reset()
        assert estimator.window_size == 0
        assert estimator.last_result == BreathResult.empty()
