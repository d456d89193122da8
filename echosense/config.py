"""
Configuration module for EchoSense.

All tunable parameters in one place for easy experimentation.
"""

import math
import tempfile
from dataclasses import dataclass, field


@dataclass
class Config:
    """EchoSense configuration parameters."""

    # ==========================================================================
    # Sampling
    # ==========================================================================
    sample_interval: float = 0.02         # s - tick period (~50 Hz)

    # ==========================================================================
    # Smoothing
    # ==========================================================================
    distance_alpha: float = 0.12          # EMA alpha for distance (0.1-0.2 typical)
    velocity_alpha: float = 0.5           # EMA alpha for velocity (reacts faster)

    # ==========================================================================
    # Gesture Classification
    # ==========================================================================
    velocity_window_sec: float = 1.0      # Span of |v| history for the median threshold
    enter_factor: float = 1.2             # high = enter_factor * thrBase
    exit_factor: float = 0.9              # low = exit_factor * thrBase

    # ==========================================================================
    # Breath Estimation
    # ==========================================================================
    breath_window_sec: float = 20.0       # Sliding window of filtered distance
    breath_min_samples: int = 100         # ~2s at 50 Hz before any estimate
    breath_min_bpm: float = 8.0           # Plausible breathing range
    breath_max_bpm: float = 35.0
    breath_quality_floor: float = 0.05    # Correlation required to report a rate
    breath_energy_eps: float = 1e-9       # Guards normalization of a flat window
    breath_eval_every: int = 1            # Re-run autocorrelation every N ticks
    correlation_method: str = "direct"    # scipy.signal.correlate: direct / fft / auto

    # ==========================================================================
    # Buffers & Export
    # ==========================================================================
    history_size: int = 150               # ~3s of velocity at 50 Hz
    log_size: int = 5000                  # Max retained log records
    export_dir: str = field(default_factory=tempfile.gettempdir)
    export_prefix: str = "acoustic_log"

    def __post_init__(self):
        if self.sample_interval <= 0:
            raise ValueError(f"sample_interval must be positive, got {self.sample_interval}")
        for name in ("distance_alpha", "velocity_alpha"):
            alpha = getattr(self, name)
            if not 0.0 < alpha <= 1.0:
                raise ValueError(f"{name} must be in (0, 1], got {alpha}")
        for name in ("history_size", "log_size", "breath_min_samples"):
            if getattr(self, name) < 1:
                raise ValueError(f"{name} must be >= 1, got {getattr(self, name)}")
        if self.breath_eval_every < 1:
            raise ValueError(f"breath_eval_every must be >= 1, got {self.breath_eval_every}")
        if self.correlation_method not in ("auto", "direct", "fft"):
            raise ValueError(f"Unknown correlation method: {self.correlation_method}. "
                             f"Choose from: auto, direct, fft")

    # ==========================================================================
    # Derived Properties
    # ==========================================================================
    @property
    def tick_rate(self) -> float:
        """Tick rate in Hz."""
        return 1.0 / self.sample_interval

    @property
    def velocity_window_samples(self) -> int:
        """Capacity of the velocity window in ticks."""
        return max(1, round(self.velocity_window_sec / self.sample_interval))

    @property
    def breath_window_samples(self) -> int:
        """Capacity of the breath window in ticks."""
        return max(1, round(self.breath_window_sec / self.sample_interval))

    @property
    def min_lag(self) -> int:
        """Shortest lag searched, from the fastest plausible breathing rate."""
        return max(1, math.floor((60.0 / self.breath_max_bpm) / self.sample_interval))

    @property
    def max_lag_limit(self) -> int:
        """Longest lag searched, from the slowest plausible rate (before window capping)."""
        return math.floor((60.0 / self.breath_min_bpm) / self.sample_interval)
