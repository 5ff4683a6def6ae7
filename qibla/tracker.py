"""
Heading fusion: combine a target bearing with a stream of raw compass headings
into a smoothed dial rotation and an "aligned" flag.
"""

import logging
import math
import threading
import time
from typing import Callable, Optional

from qibla.angles import FULL_TURN, angular_distance, normalize_degrees, normalize_signed, step_toward
from qibla.bearing import compute_bearing
from qibla.config import QiblaConfig
from qibla.errors import InvalidSample
from qibla.models import GeoPoint, TrackerStatus, TrackerUpdate

logger = logging.getLogger(__name__)

# Below this the smoothed rotation snaps onto the raw rotation
SNAP_EPSILON_DEGREES = 1e-6


def is_aligned(rotation: float, threshold: float) -> bool:
    """True when rotation (any finite angle) is strictly within threshold of 0°."""
    rotation = normalize_degrees(rotation)
    return min(rotation, FULL_TURN - rotation) < threshold


class HeadingTracker:
    """
    Owns the tracker state for one compass session.

    Two states: UNCALIBRATED until the first set_target(), TRACKING after.
    Target updates and heading samples may come from different threads; all
    state access goes through one lock.

    Args:
        config: QiblaConfig with threshold, settle time and target point.
        clock: monotonic time source in seconds, used for smoothing.
    """

    def __init__(
        self,
        config: Optional[QiblaConfig] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.config = config or QiblaConfig()
        self._clock = clock
        self._lock = threading.Lock()
        self._target_bearing: Optional[float] = None
        self._last_heading: Optional[float] = None
        self._smoothed_rotation: Optional[float] = None
        self._last_sample_time: Optional[float] = None

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def status(self) -> TrackerStatus:
        with self._lock:
            if self._target_bearing is None:
                return TrackerStatus.UNCALIBRATED
            return TrackerStatus.TRACKING

    @property
    def has_target(self) -> bool:
        return self.status is TrackerStatus.TRACKING

    @property
    def target_bearing(self) -> Optional[float]:
        with self._lock:
            return self._target_bearing

    @property
    def last_heading(self) -> Optional[float]:
        with self._lock:
            return self._last_heading

    @property
    def smoothed_rotation(self) -> Optional[float]:
        with self._lock:
            return self._smoothed_rotation

    def reset(self) -> None:
        """Drop the target and all heading history (back to UNCALIBRATED)."""
        with self._lock:
            self._target_bearing = None
            self._last_heading = None
            self._smoothed_rotation = None
            self._last_sample_time = None

    # ------------------------------------------------------------------
    # Inputs
    # ------------------------------------------------------------------

    def set_target(self, bearing: float) -> None:
        """
        Replace the target bearing.

        Heading and smoothed rotation are kept so the dial glides to the new
        target on the next sample instead of jumping.
        """
        if isinstance(bearing, bool) or not isinstance(bearing, (int, float)) or not math.isfinite(bearing):
            raise ValueError(f"Target bearing must be a finite number, got {bearing!r}")
        bearing = normalize_degrees(float(bearing))
        with self._lock:
            previous = self._target_bearing
            self._target_bearing = bearing
        if previous is None:
            logger.debug("Target bearing set to %.2f°, tracking", bearing)
        else:
            logger.debug("Target bearing changed %.2f° -> %.2f°", previous, bearing)

    def set_observer(self, observer: GeoPoint) -> float:
        """Compute the bearing from observer to the configured target and use it."""
        bearing = compute_bearing(observer, self.config.target)
        self.set_target(bearing)
        return bearing

    def ingest(self, sample: float) -> TrackerUpdate:
        """
        Feed one raw heading (degrees clockwise from north) into the tracker.

        Out-of-range values are wrapped into [0, 360). Raises InvalidSample for
        non-finite input, leaving the state untouched.
        """
        if isinstance(sample, bool) or not isinstance(sample, (int, float)):
            raise InvalidSample(f"Heading must be a number, got {sample!r}")
        if not math.isfinite(sample):
            raise InvalidSample(f"Heading must be finite, got {sample}")
        heading = normalize_degrees(float(sample))
        now = self._clock()

        with self._lock:
            self._last_heading = heading
            dt = None if self._last_sample_time is None else now - self._last_sample_time
            self._last_sample_time = now

            target = self._target_bearing
            if target is None:
                return TrackerUpdate(rotation=None, aligned=False, has_target=False, heading=heading)

            rotation = normalize_degrees(target - heading)
            self._smoothed_rotation = self._smooth(rotation, dt)
            return TrackerUpdate(
                rotation=rotation,
                aligned=is_aligned(rotation, self.config.alignment_threshold_degrees),
                has_target=True,
                heading=heading,
                smoothed_rotation=self._smoothed_rotation,
                offset=normalize_signed(target - heading),
                target_bearing=target,
            )

    # ------------------------------------------------------------------
    # Smoothing
    # ------------------------------------------------------------------

    def _smooth(self, rotation: float, dt: Optional[float]) -> float:
        # Caller holds the lock.
        current = self._smoothed_rotation
        tau = self.config.smoothing_time_constant_s
        if current is None or tau <= 0.0:
            return rotation
        if dt is None or dt <= 0.0:
            fraction = 0.0
        else:
            fraction = 1.0 - math.exp(-dt / tau)
        smoothed = step_toward(current, rotation, fraction)
        if angular_distance(smoothed, rotation) < SNAP_EPSILON_DEGREES:
            return rotation
        return smoothed
