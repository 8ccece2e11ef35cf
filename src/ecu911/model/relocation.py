"""Relocation kinematics.

Positions are a pure function of (start, end, start time, duration, now)
so each animation frame recomputes from absolute time and rounding
errors never accumulate.
"""

import math

from ecu911.core.entities import Coordinates


def ease_in_out(t: float) -> float:
    """Quadratic ease-in-out on [0, 1]."""
    t = min(1.0, max(0.0, t))
    if t < 0.5:
        return 2 * t * t
    return 1 - (-2 * t + 2) ** 2 / 2


def progress_at(start_ms: float, duration_ms: float, now_ms: float) -> float:
    """Journey fraction in [0, 1] at `now_ms`."""
    if duration_ms <= 0:
        return 1.0
    return min(1.0, max(0.0, (now_ms - start_ms) / duration_ms))


def interpolate(start: Coordinates, end: Coordinates, progress: float) -> Coordinates:
    """Eased position between `start` and `end`."""
    eased = ease_in_out(progress)
    return Coordinates(
        start.x + (end.x - start.x) * eased,
        start.y + (end.y - start.y) * eased,
    )


def position_at(
    start: Coordinates,
    end: Coordinates,
    start_ms: float,
    duration_ms: float,
    now_ms: float,
) -> Coordinates:
    return interpolate(start, end, progress_at(start_ms, duration_ms, now_ms))


def travel_duration_ms(
    start: Coordinates,
    end: Coordinates,
    ms_per_unit: float,
    min_ms: float,
    max_ms: float,
) -> float:
    """Distance-proportional journey time clamped to [min_ms, max_ms]."""
    distance = math.hypot(end.x - start.x, end.y - start.y)
    return max(min_ms, min(max_ms, distance * ms_per_unit))
