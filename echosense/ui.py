"""
Console readout for EchoSense.

Prints one status line per snapshot; meant to be subscribed to a
SamplingDriver from the command line.
"""

import sys
import time
from collections import deque
from typing import Optional, TextIO

from .pipeline import Snapshot


class ConsoleUI:
    """
    Simple console-based UI for terminal display.

    Shows a signed velocity bar, the gesture label and, in breath mode, the
    breathing rate with its quality.
    """

    def __init__(self, refresh_interval: float = 0.1, bar_width: int = 30,
                 stream: Optional[TextIO] = None):
        self.refresh_interval = refresh_interval
        self.bar_width = bar_width
        self.stream = stream or sys.stdout
        self._last_print = 0.0
        self._last_label = ""
        self._labels = deque(maxlen=10)

    def velocity_bar(self, velocity: float, scale: float) -> str:
        """Bar centred on zero; left half for approach, right half for retreat."""
        half = self.bar_width // 2
        scale = max(scale, 1e-12)
        n = int(min(abs(velocity) / (scale * 2), 1.0) * half)
        left = " " * half
        right = " " * half
        if velocity < 0:
            left = " " * (half - n) + "█" * n
        elif velocity > 0:
            right = "█" * n + " " * (half - n)
        return f"[{left}|{right}]"

    def format(self, snapshot: Snapshot) -> str:
        if snapshot.breath_mode:
            quality_bar = "█" * int(snapshot.breath_quality * 10)
            return (f"d={snapshot.distance:8.4f}  "
                    f"breath={snapshot.breath_rate:5.1f} /min  "
                    f"q=[{quality_bar:<10}] {snapshot.breath_quality:.2f}")

        bar = self.velocity_bar(snapshot.debug_velocity, snapshot.debug_high)
        return (f"d={snapshot.distance:8.4f}  {bar}  {snapshot.gesture_label:<14}"
                f" v={snapshot.debug_velocity:+.4f} hi={snapshot.debug_high:.4f}"
                f" lo={snapshot.debug_low:.4f}")

    def update(self, snapshot: Snapshot):
        """Observer callback."""
        label_changed = snapshot.gesture_label != self._last_label
        now = time.monotonic()

        if label_changed:
            self._labels.append(snapshot.gesture_label)
            self._last_label = snapshot.gesture_label
        elif now - self._last_print < self.refresh_interval:
            return

        self._last_print = now
        self.stream.write("\r" + self.format(snapshot) + " " * 4)
        self.stream.flush()

    def __call__(self, snapshot: Snapshot):
        self.update(snapshot)

    @property
    def recent_labels(self):
        return list(self._labels)
