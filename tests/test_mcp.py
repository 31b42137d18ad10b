from __future__ import annotations

import sys
import unittest
from pathlib import Path

import numpy as np
from shapely.geometry import LineString, Polygon


TESTS_DIR = Path(__file__).resolve().parent
REPO_ROOT = TESTS_DIR.parent
for p in (REPO_ROOT, TESTS_DIR):
    if str(p) not in sys.path:
        sys.path.insert(0, str(p))

from estimators.mcp import cumulative_mcps, mcp_hull, samples_to_frame, track_mcps  # noqa: E402
from fixes import normalize_fixes  # noqa: E402
from synthetic import CRS, line_track, logistic_area, pooled, sigmoid_track, square_track  # noqa: E402


COORDS = ("UTM_X", "UTM_Y")


def _table(df):
    return normalize_fixes(df, COORDS, "ID", "DateTime", CRS)


class RecordingProgress:
    def __init__(self) -> None:
        self.advanced = []

    def advance(self, individual_id=None) -> None:
        self.advanced.append(individual_id)


class McpHullTests(unittest.TestCase):
    def test_square_hull_area(self) -> None:
        hull = mcp_hull([(0, 0), (10, 0), (10, 10), (0, 10), (5, 5)])
        self.assertIsInstance(hull, Polygon)
        self.assertAlmostEqual(hull.area, 100.0)

    def test_two_points_give_a_line(self) -> None:
        hull = mcp_hull([(0, 0), (3, 4)])
        self.assertIsInstance(hull, LineString)
        self.assertEqual(hull.area, 0.0)


class TrackMcpsTests(unittest.TestCase):
    def test_expanding_square_areas_and_days(self) -> None:
        track = _table(square_track("A")).tracks[0]
        samples = track_mcps(track, days_origin="first_fix")
        self.assertEqual([s.k for s in samples], [2, 3, 4, 5])
        np.testing.assert_allclose([s.area_km2 for s in samples], [0.0, 0.5, 1.0, 2.0])
        self.assertEqual([s.days for s in samples], [2.5, 5.0, 7.5, 10.0])
        self.assertEqual(samples[-1].timestamp, track.fixes[-1].timestamp)

    def test_default_origin_starts_at_zero(self) -> None:
        track = _table(square_track("A")).tracks[0]
        samples = track_mcps(track)
        self.assertEqual([s.days for s in samples], [0.0, 2.5, 5.0, 7.5])

    def test_unknown_days_origin_rejected(self) -> None:
        track = _table(square_track("A")).tracks[0]
        with self.assertRaises(ValueError):
            track_mcps(track, days_origin="release")

    def test_areas_follow_the_constructed_curve(self) -> None:
        track = _table(sigmoid_track("A", n_fixes=12)).tracks[0]
        samples = track_mcps(track)
        self.assertEqual(len(samples), 11)
        expected = logistic_area(np.arange(2, 12))
        np.testing.assert_allclose([s.area_km2 for s in samples[1:]], expected, rtol=1e-9)

    def test_area_and_days_are_non_decreasing(self) -> None:
        track = _table(sigmoid_track("A", n_fixes=25)).tracks[0]
        samples = track_mcps(track)
        areas = np.array([s.area_km2 for s in samples])
        days = np.array([s.days for s in samples])
        self.assertTrue(np.all(np.diff(areas) >= 0))
        self.assertTrue(np.all(np.diff(days) >= 0))
        self.assertTrue(np.all(days >= 0))

    def test_collinear_track_has_zero_area(self) -> None:
        track = _table(line_track("L")).tracks[0]
        samples = track_mcps(track)
        self.assertEqual(len(samples), 5)
        self.assertTrue(all(s.area_km2 == 0.0 for s in samples))

    def test_invalid_fix_is_removed_before_the_loop(self) -> None:
        df = square_track("A")
        df.loc[2, "UTM_Y"] = np.inf
        track = _table(df).tracks[0]
        samples = track_mcps(track)
        self.assertEqual(len(samples), 3)
        self.assertEqual([s.k for s in samples], [2, 3, 4])

    def test_transient_invalid_step_is_skipped_not_fatal(self) -> None:
        track = _table(sigmoid_track("A", n_fixes=6)).tracks[0]
        flaky_row = track.fixes[3].row
        calls = {"n": 0}

        def validator(fix) -> bool:
            if fix.row != flaky_row:
                return fix.is_valid
            calls["n"] += 1
            return calls["n"] != 2  # passes the first filter, fails once inside the loop

        samples = track_mcps(track, point_is_valid=validator)
        self.assertEqual([s.k for s in samples], [2, 3, 5, 6])

    def test_too_few_valid_fixes_gives_no_samples(self) -> None:
        df = square_track("A").iloc[:4].copy()
        df.loc[[0, 1, 2], "UTM_X"] = np.nan
        track = _table(df).tracks[0]
        self.assertEqual(track_mcps(track), [])


class CumulativeMcpsTests(unittest.TestCase):
    def test_short_individual_absent_long_one_fully_present(self) -> None:
        df = pooled(sigmoid_track("short", n_fixes=3), sigmoid_track("long", n_fixes=6))
        samples = cumulative_mcps(_table(df))
        self.assertEqual({s.individual_id for s in samples}, {"long"})
        self.assertEqual(len(samples), 5)

    def test_sample_count_bounded_by_track_length(self) -> None:
        df = pooled(square_track("A"), sigmoid_track("B", n_fixes=9), line_track("C", n_fixes=4))
        table = _table(df)
        samples = cumulative_mcps(table)
        for track in table.tracks:
            n = sum(1 for s in samples if s.individual_id == track.individual_id)
            self.assertEqual(n, len(track) - 1)

    def test_output_ordered_by_individual_then_time(self) -> None:
        df = pooled(sigmoid_track("b", n_fixes=5), square_track("a"), sigmoid_track("c", n_fixes=5))
        frame = samples_to_frame(cumulative_mcps(_table(df)))
        expected = frame.sort_values(["individual_id", "timestamp"], kind="mergesort").reset_index(drop=True)
        self.assertTrue(frame.equals(expected))
        self.assertEqual(list(frame["individual_id"].unique()), ["a", "b", "c"])

    def test_thread_pool_gives_identical_series(self) -> None:
        df = pooled(*(sigmoid_track(f"id{i}", n_fixes=10 + i, x_off=5000.0 * i) for i in range(4)))
        table = _table(df)
        serial = samples_to_frame(cumulative_mcps(table))
        threaded = samples_to_frame(cumulative_mcps(table, max_workers=3))
        self.assertTrue(serial.equals(threaded))

    def test_progress_advanced_once_per_individual(self) -> None:
        df = pooled(square_track("A"), square_track("B"))
        progress = RecordingProgress()
        cumulative_mcps(_table(df), progress=progress)
        self.assertEqual(progress.advanced, ["A", "B"])

    def test_frame_columns(self) -> None:
        samples = cumulative_mcps(_table(square_track("A")))
        self.assertEqual(list(samples_to_frame(samples).columns), ["individual_id", "timestamp", "area_km2", "days"])
        with_geom = samples_to_frame(samples, include_geometry=True)
        self.assertEqual(list(with_geom.columns)[-2:], ["k", "geometry"])


if __name__ == "__main__":
    unittest.main()
