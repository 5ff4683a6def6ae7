#!/usr/bin/env python3
"""
Qibla Compass (console)
Reads compass headings from stdin, one per line, and prints for each:
  - Qibla bearing and current heading
  - Clockwise rotation from the device's forward direction to the Qibla
  - Whether the device is aligned with the Qibla
The location fix is resolved on a background thread (manual --lat/--lon or
IP geolocation) while headings are already being read.
"""

import argparse
import dataclasses
import logging
import sys
import threading

from qibla.angles import heading_from_magnetometer
from qibla.config import load_config
from qibla.errors import InvalidCoordinates, InvalidSample
from qibla.location import describe_location, get_location, observer_from_location
from qibla.log_config import setup_logging
from qibla.models import GeoPoint, TrackerUpdate
from qibla.tracker import HeadingTracker

logger = logging.getLogger("qibla.app")

WAITING_TEXT = "waiting for location fix"
LOCATION_TIMEOUT_S = 5


def format_update(update: TrackerUpdate) -> str:
    """Status line for one tracker update."""
    if not update.has_target:
        return f"Heading: {update.heading:.1f}°  |  {WAITING_TEXT}"
    state = "ALIGNED" if update.aligned else "rotate until aligned"
    return (
        f"Qibla: {update.target_bearing:.1f}°  |  Heading: {update.heading:.1f}°  |  "
        f"Rotation: {update.smoothed_rotation:.1f}°  |  {state}"
    )


def parse_sample(line: str, magnetometer: bool = False) -> float:
    """
    Parse one input line into a heading.

    Plain mode expects a single number in degrees; magnetometer mode expects
    "x y" (extra components such as z are ignored).
    """
    fields = line.replace(",", " ").split()
    try:
        values = [float(v) for v in fields]
    except ValueError as exc:
        raise InvalidSample(f"Not a number: {line.strip()!r}") from exc
    if magnetometer:
        if len(values) < 2:
            raise InvalidSample(f"Expected 'x y', got {line.strip()!r}")
        return heading_from_magnetometer(values[0], values[1])
    if len(values) != 1:
        raise InvalidSample(f"Expected one heading, got {line.strip()!r}")
    return values[0]


# ──────────────────────────────────────────────────────────────────────────────
# Session
# ──────────────────────────────────────────────────────────────────────────────
class QiblaSession:
    def __init__(self, tracker: HeadingTracker, out=None):
        self.tracker = tracker
        self.out = out if out is not None else sys.stdout
        self.location_error = ""
        self.location_failed = threading.Event()

    def start_location(self, manual: GeoPoint = None, timeout: int = 5) -> threading.Thread:
        t = threading.Thread(target=self._load_location, args=(manual, timeout), daemon=True)
        t.start()
        return t

    def _load_location(self, manual: GeoPoint = None, timeout: int = 5):
        try:
            if manual is not None:
                observer, label = manual, "manual location"
            else:
                loc = get_location(timeout=timeout)
                observer, label = observer_from_location(loc), describe_location(loc)
            bearing = self.tracker.set_observer(observer)
            logger.info(
                "📍 %s (%.4f, %.4f): Qibla bearing %.1f°",
                label, observer.latitude, observer.longitude, bearing,
            )
        except InvalidCoordinates as exc:
            self.location_error = str(exc)
            self.location_failed.set()
            logger.error("Cannot compute Qibla bearing: %s", exc)

    def feed(self, lines, magnetometer: bool = False) -> int:
        """
        Ingest every line until input ends or the location fix fails.

        Returns the number of samples accepted.
        """
        accepted = 0
        for line in lines:
            if self.location_failed.is_set():
                break
            if not line.strip():
                continue
            try:
                update = self.tracker.ingest(parse_sample(line, magnetometer))
            except InvalidSample as exc:
                logger.warning("Skipping sample: %s", exc)
                continue
            accepted += 1
            print(format_update(update), file=self.out)
        return accepted


# ──────────────────────────────────────────────────────────────────────────────
# Entry point
# ──────────────────────────────────────────────────────────────────────────────
def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Console Qibla compass")
    parser.add_argument("--lat", type=float, help="observer latitude (skips IP lookup)")
    parser.add_argument("--lon", type=float, help="observer longitude (skips IP lookup)")
    parser.add_argument("--threshold", type=float, help="alignment threshold in degrees")
    parser.add_argument("--settle-ms", type=float, help="smoothing settle time in ms (0 = off)")
    parser.add_argument("--config", help="path to config JSON (default ~/.qibla/config.json)")
    parser.add_argument("--magnetometer", action="store_true", help="input lines are 'x y' vectors")
    parser.add_argument("--log-level", default="INFO")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging("qibla", level=args.log_level, color="cyan")

    if (args.lat is None) != (args.lon is None):
        logger.error("--lat and --lon must be given together")
        return 2

    try:
        overrides = {}
        if args.threshold is not None:
            overrides["alignment_threshold_degrees"] = args.threshold
        if args.settle_ms is not None:
            overrides["smoothing_settle_time_ms"] = args.settle_ms
        config = dataclasses.replace(load_config(args.config), **overrides)
        manual = GeoPoint(args.lat, args.lon) if args.lat is not None else None
    except ValueError as exc:
        logger.error("%s", exc)
        return 2

    session = QiblaSession(HeadingTracker(config))
    locating = session.start_location(manual, timeout=LOCATION_TIMEOUT_S)
    try:
        session.feed(sys.stdin, magnetometer=args.magnetometer)
    except KeyboardInterrupt:
        pass
    # stdin may end before the lookup does
    locating.join(LOCATION_TIMEOUT_S + 1)
    return 1 if session.location_error else 0


if __name__ == "__main__":
    sys.exit(main())
