"""
Per-tick processing pipeline for EchoSense.

raw distance -> distance filter -> velocity estimator
             -> gesture classifier (gesture mode) | breath estimator (breath mode)
             -> snapshot, history buffer, log recorder
"""

import time
from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional

from .breath import BreathEstimator
from .buffers import HistoryBuffer, LogRecorder
from .config import Config
from .filters import FilterState, step_filters
from .gesture import GestureClassifier
from .settings import CalibrationParams

BREATH_MODE_LABEL = "Breath mode"


@dataclass(frozen=True)
class Snapshot:
    """Published output of one tick."""
    distance: float
    gesture_label: str
    breath_rate: float
    breath_quality: float
    is_running: bool
    debug_velocity: float
    debug_high: float
    debug_low: float
    breath_mode: bool = False
    timestamp: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class Pipeline:
    """
    Owns all per-tick processing state.

    Not thread-safe: exactly one caller (the sampling driver's worker) may
    call `process` and `set_breath_mode`.
    """

    def __init__(self, config: Optional[Config] = None):
        self.config = config or Config()

        self.filter_state = FilterState()
        self.classifier = GestureClassifier(self.config)
        self.breath = BreathEstimator(self.config)
        self.history = HistoryBuffer(self.config.history_size)
        self.log = LogRecorder(self.config.log_size,
                               export_dir=self.config.export_dir,
                               prefix=self.config.export_prefix)

        self._breath_mode = False

        # Published values carried between ticks
        self._gesture_label = ""
        self._breath_rate = 0.0
        self._breath_quality = 0.0
        self._debug_velocity = 0.0
        self._debug_high = 0.0
        self._debug_low = 0.0

    @property
    def breath_mode(self) -> bool:
        return self._breath_mode

    def set_breath_mode(self, enabled: bool) -> bool:
        """
        Switch between gesture and breath mode.

        A real switch drops all smoothing and window state so the first
        sample afterwards seeds the filters afresh.

        Returns:
            True if the mode changed
        """
        enabled = bool(enabled)
        if enabled == self._breath_mode:
            return False

        self._breath_mode = enabled
        self.filter_state = FilterState()
        self.classifier.reset()
        self.breath.reset()
        self._breath_quality = 0.0
        return True

    def process(self, raw_distance: float, calibration: CalibrationParams,
                timestamp: Optional[float] = None, is_running: bool = True) -> Snapshot:
        """
        Run one tick.

        Args:
            raw_distance: Latest distance from the ranging engine
            calibration: Calibration read for this tick
            timestamp: Unix time of the tick (time.time() if None)
            is_running: Value published in the snapshot

        Returns:
            Snapshot of all published values
        """
        if timestamp is None:
            timestamp = time.time()

        self.filter_state, distance, velocity = step_filters(
            self.filter_state, float(raw_distance), self.config)

        if self._breath_mode:
            result = self.breath.update(distance)
            self._breath_rate = result.rate
            self._breath_quality = result.quality
            self._gesture_label = BREATH_MODE_LABEL
        else:
            decision = self.classifier.update(velocity, calibration)
            self._gesture_label = decision.label
            self._debug_velocity = decision.velocity
            self._debug_high = decision.high
            self._debug_low = decision.low

        self.history.append(velocity)

        self.log.record(timestamp, distance, self._debug_velocity,
                        self._gesture_label, self._breath_mode, self._breath_rate)

        return Snapshot(
            distance=distance,
            gesture_label=self._gesture_label,
            breath_rate=self._breath_rate,
            breath_quality=self._breath_quality,
            is_running=is_running,
            debug_velocity=self._debug_velocity,
            debug_high=self._debug_high,
            debug_low=self._debug_low,
            breath_mode=self._breath_mode,
            timestamp=timestamp,
        )
