"""
Calibration settings for EchoSense.

Calibration knobs are owned by an external key-value store. The pipeline only
reads them, fresh on every tick.
"""

import threading
from dataclasses import dataclass, replace
from typing import Any, Dict, Optional, Protocol


BASE_SENSITIVITY_KEY = "echosense.baseSensitivity"
MEDIAN_MULTIPLIER_KEY = "echosense.medianMultiplier"
INVERT_GESTURE_KEY = "echosense.invertGesture"

DEFAULT_BASE_SENSITIVITY = 0.001
DEFAULT_MEDIAN_MULTIPLIER = 1.0


class SettingsStore(Protocol):
    """Narrow key-value interface used for calibration."""

    def get(self, key: str, default: Any = None) -> Any:
        ...

    def set(self, key: str, value: Any) -> None:
        ...


class MemorySettingsStore:
    """
    Dict-backed settings store.

    Safe to share between the UI thread writing knobs and the sampling
    worker reading them.
    """

    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self._values: Dict[str, Any] = dict(initial or {})
        self._lock = threading.Lock()

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            return self._values.get(key, default)

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._values[key] = value

    def as_dict(self) -> Dict[str, Any]:
        with self._lock:
            return dict(self._values)


def _positive_or_default(value: Any, default: float) -> float:
    # A stored zero means the knob was never set
    try:
        value = float(value)
    except (TypeError, ValueError):
        return default
    return default if value == 0.0 else value


@dataclass(frozen=True)
class CalibrationParams:
    """Gesture calibration knobs.

    Attributes:
        base_sensitivity: Floor for the adaptive velocity threshold
        median_multiplier: Scale applied to the median |velocity|
        invert_gesture: Flip velocity sign before classification
    """
    base_sensitivity: float = DEFAULT_BASE_SENSITIVITY
    median_multiplier: float = DEFAULT_MEDIAN_MULTIPLIER
    invert_gesture: bool = False

    @classmethod
    def from_store(cls, store: SettingsStore) -> "CalibrationParams":
        """Read calibration from a settings store, falling back to defaults."""
        return cls(
            base_sensitivity=_positive_or_default(
                store.get(BASE_SENSITIVITY_KEY), DEFAULT_BASE_SENSITIVITY),
            median_multiplier=_positive_or_default(
                store.get(MEDIAN_MULTIPLIER_KEY), DEFAULT_MEDIAN_MULTIPLIER),
            invert_gesture=bool(store.get(INVERT_GESTURE_KEY, False)),
        )

    def to_store(self, store: SettingsStore) -> None:
        """Write all knobs to a settings store."""
        store.set(BASE_SENSITIVITY_KEY, self.base_sensitivity)
        store.set(MEDIAN_MULTIPLIER_KEY, self.median_multiplier)
        store.set(INVERT_GESTURE_KEY, self.invert_gesture)

    def replace(self, **changes) -> "CalibrationParams":
        return replace(self, **changes)
