"""Great-circle initial bearing from an observer to a fixed point."""

import math

from qibla.angles import normalize_degrees
from qibla.errors import InvalidCoordinates
from qibla.models import KAABA, GeoPoint

# x and y both below this and atan2 has no meaningful direction
_DEGENERATE_EPS = 1e-12


def coerce_point(value) -> GeoPoint:
    """
    Build a GeoPoint from a GeoPoint, a (lat, lon) pair, or a dict with
    "lat"/"lon" (or "latitude"/"longitude") keys.
    """
    if isinstance(value, GeoPoint):
        return value
    if isinstance(value, dict):
        try:
            lat = value["lat"] if "lat" in value else value["latitude"]
            lon = value["lon"] if "lon" in value else value["longitude"]
        except KeyError as exc:
            raise InvalidCoordinates(f"Location is missing {exc.args[0]!r}") from exc
        return GeoPoint(lat, lon)
    if isinstance(value, (tuple, list)) and len(value) == 2:
        return GeoPoint(value[0], value[1])
    raise InvalidCoordinates(f"Cannot interpret {value!r} as a geographic point")


def compute_bearing(observer: GeoPoint, target: GeoPoint) -> float:
    """
    Initial great-circle bearing (forward azimuth) from observer to target.

    Spherical earth, no ellipsoidal correction; good to a fraction of a degree
    which is far below compass noise.

    Returns degrees clockwise from true north in [0, 360).
    Raises InvalidCoordinates if either point is invalid, the observer sits on
    the target or on a pole, or the target is the observer's antipode.
    """
    observer = coerce_point(observer)
    target = coerce_point(target)

    if observer.latitude == target.latitude and (
        normalize_degrees(observer.longitude) == normalize_degrees(target.longitude)
    ):
        raise InvalidCoordinates("Observer coincides with target; bearing is undefined")
    if abs(observer.latitude) == 90.0:
        raise InvalidCoordinates("Bearing is undefined at the poles")

    lat1 = math.radians(observer.latitude)
    lat2 = math.radians(target.latitude)
    d_lon = math.radians(target.longitude - observer.longitude)

    y = math.sin(d_lon) * math.cos(lat2)
    x = math.cos(lat1) * math.sin(lat2) - math.sin(lat1) * math.cos(lat2) * math.cos(d_lon)
    if abs(x) < _DEGENERATE_EPS and abs(y) < _DEGENERATE_EPS:
        raise InvalidCoordinates(
            f"Bearing from {observer} to {target} is undefined (coincident or antipodal)"
        )

    bearing = normalize_degrees(math.degrees(math.atan2(y, x)))
    if not math.isfinite(bearing):
        raise InvalidCoordinates(f"Bearing from {observer} to {target} is not finite")
    return bearing


def qibla_bearing(observer: GeoPoint, target: GeoPoint = KAABA) -> float:
    """Bearing from observer to the Kaaba (or an overridden target)."""
    return compute_bearing(observer, target)
