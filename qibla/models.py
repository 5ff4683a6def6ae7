"""Value types passed between the location, bearing and tracker modules."""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from qibla.errors import InvalidCoordinates


@dataclass(frozen=True)
class GeoPoint:
    """Immutable geographic position in decimal degrees."""
    latitude: float
    longitude: float

    def __post_init__(self):
        for name, value, limit in (
            ("latitude", self.latitude, 90.0),
            ("longitude", self.longitude, 180.0),
        ):
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise InvalidCoordinates(f"{name} must be a number, got {value!r}")
            if not math.isfinite(value):
                raise InvalidCoordinates(f"{name} must be finite, got {value}")
            if abs(value) > limit:
                raise InvalidCoordinates(f"{name} {value} outside [-{limit:g}, {limit:g}]")


# Kaaba, Masjid al-Haram
KAABA = GeoPoint(21.4225, 39.8262)


class TrackerStatus(Enum):
    UNCALIBRATED = "uncalibrated"  # no target bearing yet
    TRACKING = "tracking"


@dataclass(frozen=True)
class TrackerUpdate:
    """
    Result of feeding one heading sample to a HeadingTracker.

    rotation is the clockwise angle from the device's forward direction to the
    target, in [0, 360). It is None while has_target is False and must not be
    rendered in that state.
    """
    rotation: Optional[float]
    aligned: bool
    has_target: bool
    heading: float
    smoothed_rotation: Optional[float] = None
    offset: Optional[float] = None  # signed, (-180, 180]
    target_bearing: Optional[float] = None  # bearing this update was computed against
