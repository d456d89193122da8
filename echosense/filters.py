"""
Smoothing filters for EchoSense.

Exponential moving averages for the raw distance and for the velocity
derived from it. Both filters seed to their first input, so there is no
warm-up transient.
"""

from dataclasses import dataclass
from typing import Optional, Tuple

from .config import Config


def ema(prev: Optional[float], x: float, alpha: float) -> float:
    """
    One exponential moving average step.

    Args:
        prev: Previous output, or None before the first sample
        x: New input
        alpha: Weight of the new input

    Returns:
        (1 - alpha) * prev + alpha * x, or x when there is no previous output
    """
    if prev is None:
        return x
    return (1.0 - alpha) * prev + alpha * x


@dataclass(frozen=True)
class FilterState:
    """Smoothing state carried between ticks."""
    smoothed_distance: Optional[float] = None
    smoothed_velocity: Optional[float] = None

    @property
    def is_seeded(self) -> bool:
        return self.smoothed_distance is not None


def filter_distance(state: FilterState, sample: float,
                    alpha: float) -> Tuple[FilterState, float]:
    """Distance filter: (state, raw sample) -> (state, filtered distance)."""
    y = ema(state.smoothed_distance, sample, alpha)
    return FilterState(y, state.smoothed_velocity), y


def estimate_velocity(state: FilterState, prev_distance: Optional[float],
                      alpha: float) -> Tuple[FilterState, float]:
    """
    Velocity estimator.

    Raw velocity is the finite difference of consecutive filtered distances.
    The tick period is constant, so there is no division by dt.

    Args:
        state: State already holding the current filtered distance
        prev_distance: Filtered distance from the previous tick (None on first)
        alpha: Velocity EMA weight

    Returns:
        (new state, smoothed velocity)
    """
    current = state.smoothed_distance
    raw = 0.0 if prev_distance is None else current - prev_distance
    v = ema(state.smoothed_velocity, raw, alpha)
    return FilterState(current, v), v


def step_filters(state: FilterState, sample: float,
                 config: Config) -> Tuple[FilterState, float, float]:
    """
    Run both filters for one tick.

    Returns:
        (new state, filtered distance, smoothed non-inverted velocity)
    """
    prev_distance = state.smoothed_distance
    state, distance = filter_distance(state, sample, config.distance_alpha)
    state, velocity = estimate_velocity(state, prev_distance, config.velocity_alpha)
    return state, distance, velocity
