"""
Bounded history and log buffers for EchoSense.

The history buffer keeps recent velocity for live plotting; the log recorder
keeps formatted per-tick records that can be exported as CSV.
"""

import contextlib
import logging
import os
import tempfile
import time
from collections import deque
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

import numpy as np

logger = logging.getLogger(__name__)

LOG_HEADER = "timestamp,distance,velocity,gesture,breathMode,breathRate"


class HistoryBuffer:
    """Fixed-capacity FIFO of smoothed (non-inverted) velocity."""

    def __init__(self, capacity: int = 150):
        self._values = deque(maxlen=capacity)

    def append(self, value: float):
        self._values.append(value)

    def values(self) -> np.ndarray:
        """Buffered values, oldest first."""
        return np.array(self._values, dtype=float)

    @property
    def capacity(self) -> int:
        return self._values.maxlen

    def clear(self):
        self._values.clear()

    def __len__(self) -> int:
        return len(self._values)


@dataclass(frozen=True)
class LogRecord:
    """One logged tick."""
    timestamp: float      # Unix epoch seconds
    distance: float       # Filtered distance
    velocity: float       # Velocity as seen by the classifier (sign may be flipped)
    gesture: str
    breath_mode: bool
    breath_rate: float

    def to_row(self) -> str:
        return (f"{self.timestamp:.3f},{self.distance:.6f},{self.velocity:.6f},"
                f"{self.gesture},{1 if self.breath_mode else 0},{self.breath_rate:.3f}")


class LogRecorder:
    """
    Fixed-capacity FIFO of tick records with CSV export.

    Recording is off until `enabled` is set. When full, the oldest records
    are dropped.
    """

    def __init__(self, capacity: int = 5000, export_dir: Optional[str] = None,
                 prefix: str = "acoustic_log"):
        self._records = deque(maxlen=capacity)
        self.enabled = False
        self.export_dir = export_dir
        self.prefix = prefix

    def record(self, timestamp: float, distance: float, velocity: float,
               gesture: str, breath_mode: bool, breath_rate: float) -> Optional[LogRecord]:
        """Append a record if logging is enabled."""
        if not self.enabled:
            return None
        rec = LogRecord(timestamp, distance, velocity, gesture, breath_mode, breath_rate)
        self._records.append(rec)
        return rec

    def records(self) -> List[LogRecord]:
        return list(self._records)

    def rows(self) -> List[str]:
        return [r.to_row() for r in self._records]

    def to_text(self) -> str:
        """Header plus one line per record."""
        return "\n".join([LOG_HEADER] + self.rows())

    def _reserve_path(self, directory: Path) -> Path:
        # Exclusive create claims the name even against concurrent exports
        stamp = int(time.time() * 1000)
        path = directory / f"{self.prefix}_{stamp}.csv"
        n = 1
        while True:
            try:
                with open(path, "x", encoding="utf-8"):
                    return path
            except FileExistsError:
                path = directory / f"{self.prefix}_{stamp}_{n}.csv"
                n += 1

    def export(self, directory: Optional[str] = None) -> Optional[Path]:
        """
        Write the log to a new, uniquely named CSV file.

        Args:
            directory: Destination directory (uses export_dir if None)

        Returns:
            Path of the written file, or None if writing failed
        """
        return self.write_text(self.to_text(), directory, count=len(self._records))

    def write_text(self, text: str, directory: Optional[str] = None,
                   count: Optional[int] = None) -> Optional[Path]:
        """
        Write already-rendered log text; see export().

        The text goes to a temporary file that replaces the reserved name
        once complete, so a failed export leaves nothing behind.
        """
        directory = directory or self.export_dir
        if directory is None:
            logger.warning("No export directory configured")
            return None

        path = tmp = None
        try:
            directory = Path(directory)
            directory.mkdir(parents=True, exist_ok=True)
            path = self._reserve_path(directory)
            fd, tmp = tempfile.mkstemp(dir=directory, prefix=f".{path.stem}_", suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
                f.write(text)
            os.replace(tmp, path)
        except OSError as e:
            logger.warning("Log export failed: %s", e)
            for leftover in (tmp, path):
                if leftover is not None:
                    with contextlib.suppress(OSError):
                        os.unlink(leftover)
            return None

        if count is None:
            count = max(0, text.count("\n"))
        logger.info("Exported %d records to %s", count, path)
        return path

    @property
    def capacity(self) -> int:
        return self._records.maxlen

    def clear(self):
        self._records.clear()

    def __len__(self) -> int:
        return len(self._records)
