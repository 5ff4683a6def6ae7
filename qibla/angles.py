"""Angle helpers shared by the bearing calculator and the heading tracker."""

import math

from qibla.errors import InvalidSample

FULL_TURN = 360.0
HALF_TURN = 180.0


def normalize_degrees(angle: float) -> float:
    """Map any finite angle into [0, 360)."""
    wrapped = angle % FULL_TURN
    # -1e-20 % 360.0 rounds up to 360.0
    if wrapped >= FULL_TURN:
        return 0.0
    return wrapped


def normalize_signed(angle: float) -> float:
    """Map any finite angle into (-180, 180]."""
    wrapped = normalize_degrees(angle)
    if wrapped > HALF_TURN:
        wrapped -= FULL_TURN
    return wrapped


def shortest_difference(from_angle: float, to_angle: float) -> float:
    """
    Signed rotation that takes from_angle onto to_angle the short way round.

    Positive is clockwise. Result is in (-180, 180].
    """
    return normalize_signed(to_angle - from_angle)


def angular_distance(a: float, b: float) -> float:
    """Unsigned shortest distance between two angles, in [0, 180]."""
    return abs(shortest_difference(a, b))


def step_toward(current: float, target: float, fraction: float) -> float:
    """
    Move current toward target by a fraction of the shorter arc.

    fraction is clamped to [0, 1], so one step never covers more than 180°.
    """
    fraction = min(max(fraction, 0.0), 1.0)
    return normalize_degrees(current + shortest_difference(current, target) * fraction)


def heading_from_magnetometer(x: float, y: float) -> float:
    """
    Convert a raw horizontal magnetometer vector into a heading in [0, 360).

    Raises InvalidSample for a zero or non-finite vector.
    """
    if not (math.isfinite(x) and math.isfinite(y)):
        raise InvalidSample(f"Non-finite magnetometer vector: ({x}, {y})")
    if x == 0 and y == 0:
        raise InvalidSample("Zero magnetometer vector has no direction")
    return normalize_degrees(math.degrees(math.atan2(y, x)))
