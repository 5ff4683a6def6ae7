"""Tunable settings for the Qibla core and an optional read-only config file."""

import json
import math
import os
from dataclasses import dataclass, field

from qibla.bearing import coerce_point
from qibla.models import KAABA, GeoPoint

ALIGNMENT_THRESHOLD_DEGREES: float = 5.0
SMOOTHING_SETTLE_TIME_MS: float = 300.0

CONFIG_DIR = os.path.join(os.path.expanduser("~"), ".qibla")
CONFIG_FILE = os.path.join(CONFIG_DIR, "config.json")


def _as_number(name: str, value) -> float:
    # JSON null, true, lists and objects all end up here from load_config
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{name} must be a number, got {value!r}")
    return float(value)


@dataclass
class QiblaConfig:
    # Alignment
    alignment_threshold_degrees: float = ALIGNMENT_THRESHOLD_DEGREES  # strict <

    # Smoothing (time for the animated rotation to cover ~98% of a step; 0 = off)
    smoothing_settle_time_ms: float = SMOOTHING_SETTLE_TIME_MS

    # Destination of the bearing
    target: GeoPoint = field(default=KAABA)

    def __post_init__(self):
        threshold = _as_number("alignment_threshold_degrees", self.alignment_threshold_degrees)
        if not math.isfinite(threshold) or not 0.0 < threshold <= 180.0:
            raise ValueError(
                f"alignment_threshold_degrees must be in (0, 180], got {self.alignment_threshold_degrees}"
            )
        settle = _as_number("smoothing_settle_time_ms", self.smoothing_settle_time_ms)
        if not math.isfinite(settle) or settle < 0.0:
            raise ValueError(
                f"smoothing_settle_time_ms must be >= 0, got {self.smoothing_settle_time_ms}"
            )
        self.alignment_threshold_degrees = threshold
        self.smoothing_settle_time_ms = settle
        self.target = coerce_point(self.target)

    @property
    def smoothing_time_constant_s(self) -> float:
        """Exponential time constant; four of them make up the settle time."""
        return self.smoothing_settle_time_ms / 1000.0 / 4.0

    @staticmethod
    def from_dict(d: dict) -> "QiblaConfig":
        known = ("alignment_threshold_degrees", "smoothing_settle_time_ms", "target")
        unknown = set(d) - set(known)
        if unknown:
            raise ValueError(f"Unknown config keys: {', '.join(sorted(unknown))}")
        return QiblaConfig(**{k: d[k] for k in known if k in d})


def load_config(path: str = None) -> QiblaConfig:
    """
    Load settings from a JSON file, or return defaults if the file is absent.

    Raises ValueError for malformed JSON or out-of-range values.
    """
    path = path or CONFIG_FILE
    if not os.path.isfile(path):
        return QiblaConfig()
    with open(path, "r", encoding="utf-8") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as exc:
            raise ValueError(f"Invalid config file {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} must contain a JSON object")
    return QiblaConfig.from_dict(data)
