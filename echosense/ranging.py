"""
Ranging engine interface and stand-in engines for EchoSense.

The real engine emits an ultrasonic probe and demodulates echoes into a
distance on its own audio clock. EchoSense only consumes the latest value,
handed over through a lock-protected slot.
"""

import logging
import math
import threading
import time
from typing import Iterable, List, Optional, Protocol

import numpy as np

logger = logging.getLogger(__name__)


class RangingEngine(Protocol):
    """Distance producer. Status 0 means success."""

    def start(self) -> int:
        ...

    def stop(self) -> int:
        ...

    def latest_distance(self) -> Optional[float]:
        ...


class LatestValueSlot:
    """
    Single-value handoff between a producer and the sampling tick.

    The producer overwrites, the consumer reads the most recent value.
    """

    def __init__(self):
        self._value: Optional[float] = None
        self._lock = threading.Lock()
        self._writes = 0

    def put(self, value: float):
        with self._lock:
            self._value = value
            self._writes += 1

    def get(self) -> Optional[float]:
        with self._lock:
            return self._value

    @property
    def write_count(self) -> int:
        with self._lock:
            return self._writes

    def clear(self):
        with self._lock:
            self._value = None


class SimulatedRangingEngine:
    """
    Synthetic distance producer running on its own thread.

    Patterns:
    - "static": constant distance
    - "breathing": sinusoidal chest motion at `bpm`
    - "hand": alternating approach / retreat strokes of `stroke_sec` each,
      separated by pauses of the same length
    """

    PATTERNS = ("static", "breathing", "hand")

    def __init__(self, pattern: str = "hand", base_distance: float = 0.30,
                 amplitude: float = 0.08, bpm: float = 15.0, stroke_sec: float = 0.6,
                 noise_std: float = 0.0, rate_hz: float = 100.0,
                 seed: Optional[int] = None):
        if pattern not in self.PATTERNS:
            raise ValueError(f"Unknown pattern: {pattern}. Choose from: {', '.join(self.PATTERNS)}")

        self.pattern = pattern
        self.base_distance = base_distance
        self.amplitude = amplitude
        self.bpm = bpm
        self.stroke_sec = stroke_sec
        self.noise_std = noise_std
        self.rate_hz = rate_hz

        self._rng = np.random.default_rng(seed)
        self._slot = LatestValueSlot()
        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()
        self._running = False
        self._t0 = 0.0

    def distance_at(self, t: float) -> float:
        """Noise-free distance at `t` seconds after start."""
        if self.pattern == "breathing":
            return self.base_distance + self.amplitude * math.sin(2 * math.pi * self.bpm / 60.0 * t)

        if self.pattern == "hand":
            # approach, pause, retreat, pause
            phase = (t / self.stroke_sec) % 4.0
            if phase < 1.0:
                offset = -phase
            elif phase < 2.0:
                offset = -1.0
            elif phase < 3.0:
                offset = -1.0 + (phase - 2.0)
            else:
                offset = 0.0
            return self.base_distance + self.amplitude * offset

        return self.base_distance

    def _produce(self):
        period = 1.0 / self.rate_hz
        next_time = time.monotonic()
        while not self._stop_event.is_set():
            t = time.monotonic() - self._t0
            value = self.distance_at(t)
            if self.noise_std > 0:
                value += float(self._rng.normal(0.0, self.noise_std))
            self._slot.put(value)

            next_time += period
            self._stop_event.wait(max(0.0, next_time - time.monotonic()))

    def start(self) -> int:
        """Start producing distances."""
        if self._running:
            return 0

        logger.info("Starting simulated ranging (%s) at %.0f Hz", self.pattern, self.rate_hz)
        self._stop_event.clear()
        self._t0 = time.monotonic()
        self._slot.put(self.distance_at(0.0))
        self._thread = threading.Thread(target=self._produce, name="echosense-sim", daemon=True)
        self._thread.start()
        self._running = True
        return 0

    def stop(self) -> int:
        """Stop producing distances."""
        if self._thread is not None:
            self._stop_event.set()
            self._thread.join()
            self._thread = None
        self._running = False
        logger.info("Simulated ranging stopped")
        return 0

    def latest_distance(self) -> Optional[float]:
        return self._slot.get()

    @property
    def is_running(self) -> bool:
        return self._running


class ScriptedRangingEngine:
    """
    Replays a fixed sequence of distances, one per read.

    After the sequence is exhausted the last value repeats. `start_status`
    lets tests simulate an engine that fails to start.
    """

    def __init__(self, values: Iterable[float], start_status: int = 0):
        self._values: List[float] = [float(v) for v in values]
        self._index = 0
        self._lock = threading.Lock()
        self.start_status = start_status
        self.start_calls = 0
        self.stop_calls = 0

    def start(self) -> int:
        self.start_calls += 1
        return self.start_status

    def stop(self) -> int:
        self.stop_calls += 1
        return 0

    def latest_distance(self) -> Optional[float]:
        with self._lock:
            if not self._values:
                return None
            value = self._values[min(self._index, len(self._values) - 1)]
            self._index += 1
            return value

    @property
    def reads(self) -> int:
        with self._lock:
            return self._index
