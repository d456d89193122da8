"""
Gesture classification module for EchoSense.

Classifies hand motion above the device from the smoothed velocity using an
adaptive threshold and a three-state hysteresis machine.
"""

from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Iterable

import numpy as np

from .config import Config
from .settings import CalibrationParams


class GestureState(Enum):
    """Classifier states, valued by their published label."""
    STABLE = "Stable"
    CLOSER = "Moving Closer"
    AWAY = "Moving Away"

    @property
    def label(self) -> str:
        return self.value


@dataclass(frozen=True)
class GestureDecision:
    """Result of one classification step.

    Attributes:
        state: State after this step
        label: Published label (may lag the state inside the dead zone)
        velocity: Velocity the decision was made on (after optional inversion)
        high: Threshold to leave STABLE
        low: Threshold to remain in CLOSER/AWAY
    """
    state: GestureState
    label: str
    velocity: float
    high: float
    low: float


def median(values: Iterable[float]) -> float:
    """Median of values; 0 for an empty sequence."""
    arr = np.asarray(list(values), dtype=float)
    if arr.size == 0:
        return 0.0
    return float(np.median(arr))


class GestureClassifier:
    """
    Hysteresis classifier for approach / retreat motion.

    The threshold follows the median |velocity| over the last second, so it
    adapts to the ambient jitter of each device and room:

    - thrBase = max(base_sensitivity, median_multiplier * median|v|)
    - high = 1.2 * thrBase enters CLOSER/AWAY from STABLE
    - low = 0.9 * thrBase keeps CLOSER/AWAY; falling inside low/2 returns
      to STABLE

    Between low/2 and low the state holds and the published label is left
    as it was.
    """

    def __init__(self, config: Config):
        self.config = config
        self._window = deque(maxlen=config.velocity_window_samples)
        self._state = GestureState.STABLE
        self._label = ""

    def thresholds(self, calibration: CalibrationParams):
        """Current (high, low) thresholds for the given calibration."""
        thr_base = max(calibration.base_sensitivity,
                       calibration.median_multiplier * median(self._window))
        return (self.config.enter_factor * thr_base,
                self.config.exit_factor * thr_base)

    def update(self, velocity: float, calibration: CalibrationParams) -> GestureDecision:
        """
        Classify one smoothed velocity sample.

        Args:
            velocity: Non-inverted smoothed velocity
            calibration: Knobs read for this tick

        Returns:
            GestureDecision with the published label and debug thresholds
        """
        self._window.append(abs(velocity))
        high, low = self.thresholds(calibration)

        sv = -velocity if calibration.invert_gesture else velocity

        if self._state == GestureState.CLOSER:
            if sv < -low:
                self._label = GestureState.CLOSER.label
            elif sv > -low / 2:
                self._state = GestureState.STABLE
                self._label = GestureState.STABLE.label

        elif self._state == GestureState.AWAY:
            if sv > low:
                self._label = GestureState.AWAY.label
            elif sv < low / 2:
                self._state = GestureState.STABLE
                self._label = GestureState.STABLE.label

        else:
            if sv > high:
                self._state = GestureState.AWAY
            elif sv < -high:
                self._state = GestureState.CLOSER
            self._label = self._state.label

        return GestureDecision(
            state=self._state,
            label=self._label,
            velocity=sv,
            high=high,
            low=low,
        )

    @property
    def state(self) -> GestureState:
        return self._state

    @property
    def label(self) -> str:
        return self._label

    @property
    def window_size(self) -> int:
        return len(self._window)

    def reset(self):
        """Clear the velocity window and return to STABLE."""
        self._window.clear()
        self._state = GestureState.STABLE
        self._label = ""
