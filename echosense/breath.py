"""
Breath rate estimation for EchoSense.

Chest motion modulates the measured distance with a slow periodic component.
The dominant period is found by autocorrelation of the detrended distance
over a sliding window, searching only lags that map to plausible breathing
rates.
"""

import logging
from collections import deque
from dataclasses import dataclass
from typing import Tuple

import numpy as np
from scipy import signal

from .config import Config

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BreathResult:
    """Breath estimate.

    Attributes:
        rate: Breaths per minute (0 when no reliable period was found)
        quality: Normalized correlation at the chosen lag, clamped to [0, 1]
    """
    rate: float
    quality: float

    @classmethod
    def empty(cls) -> "BreathResult":
        return cls(rate=0.0, quality=0.0)

    def to_dict(self):
        return {"rate": self.rate, "quality": self.quality}


def autocorrelation_peak(samples: np.ndarray, min_lag: int, max_lag: int,
                         eps: float = 1e-9,
                         method: str = "direct") -> Tuple[int, float]:
    """
    Find the lag with the highest normalized autocorrelation.

    Args:
        samples: Detrended samples
        min_lag: First lag searched (inclusive)
        max_lag: Last lag searched (inclusive)
        eps: Lower bound on the normalizing energy
        method: scipy.signal.correlate method

    Returns:
        (best_lag, best_normalized_correlation). Ties resolve to the smallest lag.
    """
    n = len(samples)
    energy = max(eps, float(np.dot(samples, samples)))

    full = signal.correlate(samples, samples, mode="full", method=method)
    # Zero lag sits at index n - 1
    lags = full[n - 1 + min_lag:n + max_lag] / energy

    idx = int(np.argmax(lags))
    return min_lag + idx, float(lags[idx])


class BreathEstimator:
    """
    Sliding-window autocorrelation breath estimator.

    Keeps the last `breath_window_sec` of filtered distance. Each update
    detrends the window by its mean and searches lags between 60/max_bpm and
    60/min_bpm seconds. The correlation cost grows with window length times
    lag range, so `breath_eval_every` can thin out re-evaluation.

    Usage:
        estimator = BreathEstimator(config)
        for distance in filtered_stream:
            result = estimator.update(distance)
    """

    def __init__(self, config: Config):
        self.config = config
        self._window = deque(maxlen=config.breath_window_samples)
        self._last = BreathResult.empty()
        self._ready_ticks = 0

    def update(self, distance: float) -> BreathResult:
        """
        Add one filtered distance sample and return the current estimate.

        Args:
            distance: Filtered distance for this tick

        Returns:
            BreathResult; zero until the window holds breath_min_samples
        """
        self._window.append(distance)

        if len(self._window) < self.config.breath_min_samples:
            self._last = BreathResult.empty()
            self._ready_ticks = 0
            return self._last

        if self._ready_ticks % self.config.breath_eval_every == 0:
            self._last = self.estimate()
        self._ready_ticks += 1

        return self._last

    def estimate(self) -> BreathResult:
        """Run the autocorrelation over the current window."""
        n = len(self._window)
        if n < self.config.breath_min_samples:
            return BreathResult.empty()

        samples = np.fromiter(self._window, dtype=float, count=n)
        detrended = samples - samples.mean()

        min_lag = self.config.min_lag
        max_lag = min(n - 1, self.config.max_lag_limit)
        if max_lag <= min_lag:
            return BreathResult.empty()

        best_lag, best_corr = autocorrelation_peak(
            detrended, min_lag, max_lag,
            eps=self.config.breath_energy_eps,
            method=self.config.correlation_method,
        )

        quality = float(np.clip(best_corr, 0.0, 1.0))
        if quality > self.config.breath_quality_floor:
            rate = 60.0 / (best_lag * self.config.sample_interval)
        else:
            rate = 0.0

        logger.debug("Breath lag=%d corr=%.3f rate=%.2f bpm", best_lag, best_corr, rate)
        return BreathResult(rate=rate, quality=quality)

    @property
    def window_size(self) -> int:
        return len(self._window)

    @property
    def last_result(self) -> BreathResult:
        return self._last

    def reset(self):
        """Empty the window and forget the last estimate."""
        self._window.clear()
        self._last = BreathResult.empty()
        self._ready_ticks = 0
