"""Tests for the tracker module."""

import math
import threading
import unittest

from qibla.angles import angular_distance
from qibla.config import QiblaConfig
from qibla.errors import InvalidCoordinates, InvalidSample
from qibla.models import GeoPoint, TrackerStatus
from qibla.tracker import HeadingTracker, is_aligned


class FakeClock:
    def __init__(self, start: float = 100.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_tracker(settle_ms: float = 300.0, threshold: float = 5.0):
    clock = FakeClock()
    config = QiblaConfig(alignment_threshold_degrees=threshold, smoothing_settle_time_ms=settle_ms)
    return HeadingTracker(config, clock=clock), clock


class TestUncalibrated(unittest.TestCase):
    def test_ingest_before_target_has_no_rotation(self):
        tracker, _ = make_tracker()
        update = tracker.ingest(0.0)
        self.assertFalse(update.has_target)
        self.assertFalse(update.aligned)
        self.assertIsNone(update.rotation)
        self.assertIsNone(update.smoothed_rotation)
        self.assertEqual(tracker.status, TrackerStatus.UNCALIBRATED)

    def test_heading_is_still_recorded(self):
        tracker, _ = make_tracker()
        tracker.ingest(-30.0)
        self.assertAlmostEqual(tracker.last_heading, 330.0)

    def test_set_target_moves_to_tracking(self):
        tracker, _ = make_tracker()
        tracker.set_target(120.0)
        self.assertEqual(tracker.status, TrackerStatus.TRACKING)
        self.assertTrue(tracker.has_target)

    def test_reset_returns_to_uncalibrated(self):
        tracker, _ = make_tracker()
        tracker.set_target(120.0)
        tracker.ingest(100.0)
        tracker.reset()
        self.assertEqual(tracker.status, TrackerStatus.UNCALIBRATED)
        self.assertIsNone(tracker.last_heading)
        self.assertIsNone(tracker.smoothed_rotation)
        self.assertFalse(tracker.ingest(100.0).has_target)


class TestRotationAndAlignment(unittest.TestCase):
    def test_wraparound(self):
        tracker, _ = make_tracker()
        tracker.set_target(2.0)
        update = tracker.ingest(358.0)
        self.assertAlmostEqual(update.rotation, 4.0)
        self.assertAlmostEqual(update.offset, 4.0)
        self.assertTrue(update.aligned)

    def test_rotation_just_below_full_turn_is_aligned(self):
        tracker, _ = make_tracker()
        tracker.set_target(0.0)
        update = tracker.ingest(2.0)
        self.assertAlmostEqual(update.rotation, 358.0)
        self.assertAlmostEqual(update.offset, -2.0)
        self.assertTrue(update.aligned)

    def test_threshold_is_strict(self):
        tracker, _ = make_tracker()
        tracker.set_target(5.0)
        self.assertFalse(tracker.ingest(0.0).aligned)
        tracker.set_target(4.999)
        self.assertTrue(tracker.ingest(0.0).aligned)

    def test_not_aligned_when_facing_away(self):
        tracker, _ = make_tracker()
        tracker.set_target(90.0)
        update = tracker.ingest(270.0)
        self.assertAlmostEqual(update.rotation, 180.0)
        self.assertFalse(update.aligned)

    def test_out_of_range_sample_is_normalized(self):
        tracker, _ = make_tracker()
        tracker.set_target(10.0)
        update = tracker.ingest(-350.0)
        self.assertAlmostEqual(update.heading, 10.0)
        self.assertAlmostEqual(update.rotation, 0.0)
        self.assertTrue(update.aligned)

    def test_configurable_threshold(self):
        tracker, _ = make_tracker(threshold=15.0)
        tracker.set_target(10.0)
        self.assertTrue(tracker.ingest(0.0).aligned)

    def test_is_aligned_handles_unnormalized_input(self):
        self.assertTrue(is_aligned(-2.0, 5.0))
        self.assertTrue(is_aligned(722.0, 5.0))
        self.assertFalse(is_aligned(-10.0, 5.0))

    def test_set_observer_uses_configured_target(self):
        tracker, _ = make_tracker()
        bearing = tracker.set_observer(GeoPoint(40.7128, -74.0060))
        self.assertAlmostEqual(bearing, 58.5, delta=0.5)
        self.assertAlmostEqual(tracker.target_bearing, bearing)

    def test_set_observer_rejects_degenerate_point(self):
        tracker, _ = make_tracker()
        with self.assertRaises(InvalidCoordinates):
            tracker.set_observer(tracker.config.target)
        self.assertFalse(tracker.has_target)


class TestInvalidInput(unittest.TestCase):
    def test_nan_sample_rejected_without_touching_state(self):
        tracker, _ = make_tracker()
        tracker.set_target(10.0)
        tracker.ingest(20.0)
        with self.assertRaises(InvalidSample):
            tracker.ingest(math.nan)
        with self.assertRaises(InvalidSample):
            tracker.ingest(math.inf)
        self.assertAlmostEqual(tracker.last_heading, 20.0)

    def test_non_numeric_sample_rejected(self):
        tracker, _ = make_tracker()
        with self.assertRaises(InvalidSample):
            tracker.ingest("north")

    def test_bad_target_rejected(self):
        tracker, _ = make_tracker()
        with self.assertRaises(ValueError):
            tracker.set_target(math.nan)
        self.assertFalse(tracker.has_target)


class TestSmoothing(unittest.TestCase):
    def test_first_tracked_sample_snaps(self):
        tracker, _ = make_tracker()
        tracker.set_target(90.0)
        update = tracker.ingest(0.0)
        self.assertAlmostEqual(update.smoothed_rotation, 90.0)

    def test_converges_to_fixed_point(self):
        tracker, clock = make_tracker()
        tracker.set_target(90.0)
        tracker.ingest(0.0)
        tracker.set_target(120.0)
        for _ in range(200):
            clock.advance(0.1)
            update = tracker.ingest(0.0)
        self.assertEqual(update.smoothed_rotation, 120.0)
        clock.advance(0.1)
        self.assertEqual(tracker.ingest(0.0).smoothed_rotation, 120.0)

    def test_moves_monotonically_toward_target(self):
        tracker, clock = make_tracker()
        tracker.set_target(0.0)
        tracker.ingest(0.0)
        tracker.set_target(60.0)
        previous = 0.0
        for _ in range(10):
            clock.advance(0.02)
            smoothed = tracker.ingest(0.0).smoothed_rotation
            self.assertGreaterEqual(smoothed, previous)
            self.assertLessEqual(smoothed, 60.0)
            previous = smoothed

    def test_mostly_settled_after_settle_time(self):
        tracker, clock = make_tracker(settle_ms=300.0)
        tracker.set_target(0.0)
        tracker.ingest(0.0)
        tracker.set_target(100.0)
        clock.advance(0.3)
        smoothed = tracker.ingest(0.0).smoothed_rotation
        self.assertGreater(smoothed, 95.0)
        self.assertLess(smoothed, 100.0)

    def test_shortest_arc_across_boundary(self):
        tracker, clock = make_tracker()
        tracker.set_target(0.0)
        tracker.ingest(10.0)  # rotation 350
        previous = tracker.smoothed_rotation
        for heading in (350.0, 340.0, 20.0, 200.0, 15.0):
            clock.advance(0.05)
            update = tracker.ingest(heading)
            self.assertLessEqual(angular_distance(previous, update.smoothed_rotation), 180.0)
            # never further from the new rotation than where it started
            self.assertLessEqual(
                angular_distance(update.smoothed_rotation, update.rotation),
                angular_distance(previous, update.rotation) + 1e-9,
            )
            previous = update.smoothed_rotation

    def test_wrap_path_goes_through_zero(self):
        tracker, clock = make_tracker()
        tracker.set_target(0.0)
        tracker.ingest(10.0)  # rotation 350
        clock.advance(0.05)
        smoothed = tracker.ingest(350.0).smoothed_rotation  # rotation 10
        # between 350 and 10 via 0, not via 180
        self.assertTrue(smoothed > 350.0 or smoothed < 10.0)

    def test_target_change_keeps_smoothed_rotation(self):
        tracker, clock = make_tracker()
        tracker.set_target(0.0)
        tracker.ingest(0.0)
        tracker.set_target(90.0)
        self.assertEqual(tracker.smoothed_rotation, 0.0)
        clock.advance(0.01)
        update = tracker.ingest(0.0)
        self.assertAlmostEqual(update.rotation, 90.0)
        self.assertGreater(update.smoothed_rotation, 0.0)
        self.assertLess(update.smoothed_rotation, 90.0)

    def test_zero_settle_time_disables_smoothing(self):
        tracker, clock = make_tracker(settle_ms=0.0)
        tracker.set_target(0.0)
        tracker.ingest(0.0)
        tracker.set_target(90.0)
        self.assertAlmostEqual(tracker.ingest(0.0).smoothed_rotation, 90.0)

    def test_alignment_uses_raw_heading(self):
        tracker, clock = make_tracker()
        tracker.set_target(180.0)
        tracker.ingest(0.0)
        clock.advance(0.001)
        update = tracker.ingest(179.0)
        self.assertTrue(update.aligned)
        self.assertGreater(angular_distance(update.smoothed_rotation, 0.0), 5.0)


class TestConcurrency(unittest.TestCase):
    def test_target_and_samples_from_separate_threads(self):
        tracker = HeadingTracker(QiblaConfig())
        errors = []

        def feed_targets():
            try:
                for i in range(500):
                    tracker.set_target(float(i % 360))
            except Exception as exc:
                errors.append(exc)

        def feed_samples():
            try:
                for i in range(500):
                    update = tracker.ingest(float((i * 7) % 360))
                    if update.has_target:
                        self.assertGreaterEqual(update.rotation, 0.0)
                        self.assertLess(update.rotation, 360.0)
            except Exception as exc:
                errors.append(exc)

        threads = [threading.Thread(target=feed_targets), threading.Thread(target=feed_samples)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        self.assertEqual(errors, [])
        self.assertTrue(tracker.has_target)


if __name__ == "__main__":
    unittest.main()
