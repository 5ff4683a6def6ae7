"""Observer position from IP geolocation."""

import logging

import requests

from qibla.bearing import coerce_point
from qibla.models import GeoPoint

logger = logging.getLogger(__name__)

DEFAULT_LOCATION = {
    "city": "Jakarta",
    "region": "Jakarta",
    "country": "ID",
    "lat": -6.2088,
    "lon": 106.8456,
}

IPAPI_URL = "http://ip-api.com/json/"


def get_location(timeout: int = 5) -> dict:
    """
    Detect current location via IP geolocation.

    Returns a dict with: city, region, country, lat, lon.
    Falls back to DEFAULT_LOCATION on failure.
    """
    try:
        resp = requests.get(
            IPAPI_URL,
            params={"fields": "city,regionName,country,lat,lon,status,message"},
            timeout=timeout,
        )
        resp.raise_for_status()
        data = resp.json()
        if not isinstance(data, dict):
            raise ValueError(f"Unexpected geolocation response: {data!r}")
        if data.get("status") == "success":
            return {
                "city": data.get("city", DEFAULT_LOCATION["city"]),
                "region": data.get("regionName", DEFAULT_LOCATION["region"]),
                "country": data.get("country", DEFAULT_LOCATION["country"]),
                "lat": float(data.get("lat", DEFAULT_LOCATION["lat"])),
                "lon": float(data.get("lon", DEFAULT_LOCATION["lon"])),
            }
        logger.warning("IP geolocation failed (%s), using default location", data.get("message"))
    except (requests.RequestException, ValueError, TypeError) as exc:
        logger.warning("IP geolocation unavailable (%s), using default location", exc)
    return dict(DEFAULT_LOCATION)


def observer_from_location(location: dict) -> GeoPoint:
    """Turn a location dict into a validated GeoPoint (raises InvalidCoordinates)."""
    return coerce_point(location)


def describe_location(location: dict) -> str:
    parts = [location.get(k) for k in ("city", "region", "country")]
    return ", ".join(p for p in dict.fromkeys(parts) if p) or "Unknown"
