# estimators/mcp.py
"""
Minimum convex polygons, grown one fix at a time.

For every individual the hull of fixes 1..k is rebuilt from scratch for
k = 2..n, giving a time-indexed series of cumulative home-range areas.
"""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Sequence

import numpy as np
import pandas as pd
from shapely.geometry import MultiPoint
from shapely.geometry.base import BaseGeometry

from fixes import Fix, FixTable, Track
from progress import NullProgress

logger = logging.getLogger(__name__)

M2_PER_KM2 = 1e6
DAYS_ORIGINS = ("first_fix", "first_sample")


@dataclass(frozen=True)
class CumulativeSample:
    individual_id: Any
    timestamp: pd.Timestamp   # timestamp of fix k, the latest fix in the hull
    k: int
    polygon: BaseGeometry     # Polygon, or LineString/Point for degenerate prefixes
    area_km2: float
    days: float


def mcp_hull(points) -> BaseGeometry:
    """Convex hull of an (n, 2) array of planar points."""
    points = np.asarray(points, dtype=float).reshape(-1, 2)
    return MultiPoint([(x, y) for x, y in points]).convex_hull


def _fix_is_valid(fix: Fix) -> bool:
    return fix.is_valid


def _elapsed_days(ts: pd.Timestamp, origin: pd.Timestamp) -> float:
    return (ts - origin).total_seconds() / 86400.0


def track_mcps(
    track: Track,
    days_origin: str = "first_sample",
    point_is_valid: Optional[Callable[[Fix], bool]] = None,
) -> List[CumulativeSample]:
    """
    Cumulative MCP series for a single track.

    Invalid fixes are removed up front; each prefix is then checked again
    and a step is skipped (no sample) if any of its points fails.
    """
    if days_origin not in DAYS_ORIGINS:
        raise ValueError(f"days_origin must be one of {DAYS_ORIGINS}, got {days_origin!r}")
    if point_is_valid is None:
        point_is_valid = _fix_is_valid

    fixes = [f for f in track.fixes if point_is_valid(f)]
    n_invalid = len(track.fixes) - len(fixes)
    if n_invalid:
        logger.debug("Individual %s: removed %d invalid fix(es)", track.individual_id, n_invalid)
    if len(fixes) < 2:
        return []

    coords = np.array([f.position for f in fixes], dtype=float)

    steps = []
    for k in range(2, len(fixes) + 1):
        prefix = fixes[:k]
        if not all(point_is_valid(f) for f in prefix):
            logger.debug("Individual %s: skipping step k=%d (invalid geometry)", track.individual_id, k)
            continue
        hull = mcp_hull(coords[:k])
        steps.append((k, prefix[-1].timestamp, hull))

    if not steps:
        return []

    origin = fixes[0].timestamp if days_origin == "first_fix" else steps[0][1]
    return [
        CumulativeSample(
            individual_id=track.individual_id,
            timestamp=ts,
            k=k,
            polygon=hull,
            area_km2=float(hull.area) / M2_PER_KM2,
            days=_elapsed_days(ts, origin),
        )
        for k, ts, hull in steps
    ]


def _track_order(tracks: Sequence[Track]) -> List[int]:
    try:
        return sorted(range(len(tracks)), key=lambda i: tracks[i].individual_id)
    except TypeError:
        # IDs of mixed, non-comparable types keep input order
        return list(range(len(tracks)))


def cumulative_mcps(
    fix_table: FixTable,
    days_origin: str = "first_sample",
    max_workers: int = 1,
    progress=None,
    point_is_valid: Optional[Callable[[Fix], bool]] = None,
    log_level: int = logging.DEBUG,
) -> List[CumulativeSample]:
    """
    Build the pooled cumulative-MCP samples for every track in ``fix_table``.

    Tracks are independent, so with ``max_workers > 1`` they are processed in a
    thread pool. The result is always ordered by (individual_id, timestamp).
    ``progress`` is advanced once per individual; it is not closed here.
    """
    if progress is None:
        progress = NullProgress()
    tracks = list(fix_table.tracks)

    def _one(track: Track) -> List[CumulativeSample]:
        return track_mcps(track, days_origin=days_origin, point_is_valid=point_is_valid)

    pool = None
    if max_workers and max_workers > 1 and len(tracks) > 1:
        pool = ThreadPoolExecutor(max_workers=max_workers)
    try:
        results = pool.map(_one, tracks) if pool is not None else map(_one, tracks)
        per_track = []
        for track, samples in zip(tracks, results):
            per_track.append(samples)
            progress.advance(track.individual_id)
            logger.log(log_level, "Individual %s: %d cumulative MCP sample(s)", track.individual_id, len(samples))
    finally:
        if pool is not None:
            pool.shutdown()

    pooled: List[CumulativeSample] = []
    for i in _track_order(tracks):
        pooled.extend(per_track[i])
    return pooled


def samples_to_frame(samples: Sequence[CumulativeSample], include_geometry: bool = False) -> pd.DataFrame:
    """One row per (individual, k) step: individual_id, timestamp, area_km2, days."""
    cols = ["individual_id", "timestamp", "area_km2", "days"]
    if include_geometry:
        cols += ["k", "geometry"]
    rows = []
    for s in samples:
        row = [s.individual_id, s.timestamp, s.area_km2, s.days]
        if include_geometry:
            row += [s.k, s.polygon]
        rows.append(row)
    return pd.DataFrame(rows, columns=cols)
