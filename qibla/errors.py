"""Error types raised by the Qibla core."""


class InvalidCoordinates(ValueError):
    """Latitude/longitude is NaN, out of range, or gives an undefined bearing."""


class InvalidSample(ValueError):
    """A heading sample that cannot be normalized (NaN, infinite, zero vector)."""
