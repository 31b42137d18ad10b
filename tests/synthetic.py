"""Synthetic fix tables shared by the tests."""
from __future__ import annotations

import numpy as np
import pandas as pd

CRS = "EPSG:32648"
X0, Y0 = 500_000.0, 1_500_000.0
BASE_M = 1000.0  # triangle base length


def logistic_area(days, asymptote=2.0, midpoint=8.0, scale=2.0):
    return asymptote / (1.0 + np.exp((midpoint - np.asarray(days, dtype=float)) / scale))


def sigmoid_track(
    individual_id: str,
    n_fixes: int = 30,
    asymptote: float = 2.0,
    midpoint: float = 8.0,
    scale: float = 2.0,
    start: str = "2024-03-01 06:00",
    x_off: float = 0.0,
) -> pd.DataFrame:
    """
    Fixes one day apart whose cumulative MCP follows a logistic curve.

    Fix 1 and 2 form a 1 km base; every later fix sits above the base midpoint,
    so the hull of fixes 1..k is a triangle with area 0.5 * base * height_k and
    the area at fix k (day k - 1) equals logistic_area(k - 1).
    """
    t0 = pd.Timestamp(start)
    rows = [
        (individual_id, t0, X0 + x_off, Y0),
        (individual_id, t0 + pd.Timedelta(days=1), X0 + x_off + BASE_M, Y0),
    ]
    for k in range(3, n_fixes + 1):
        day = k - 1
        height = logistic_area(day, asymptote, midpoint, scale) * 1e6 / (0.5 * BASE_M)
        rows.append((individual_id, t0 + pd.Timedelta(days=day), X0 + x_off + BASE_M / 2, Y0 + height))
    return pd.DataFrame(rows, columns=["ID", "DateTime", "UTM_X", "UTM_Y"])


def square_track(individual_id: str, start: str = "2024-05-01") -> pd.DataFrame:
    """Five fixes over ten days whose hull grows 0 -> 0.5 -> 1 -> 2 km²."""
    t0 = pd.Timestamp(start)
    pts = [(0, 0), (1000, 0), (1000, 1000), (0, 1000), (2000, 2000)]
    rows = [
        (individual_id, t0 + pd.Timedelta(days=2.5 * i), X0 + x, Y0 + y)
        for i, (x, y) in enumerate(pts)
    ]
    return pd.DataFrame(rows, columns=["ID", "DateTime", "UTM_X", "UTM_Y"])


def line_track(individual_id: str, n_fixes: int = 6, start: str = "2024-05-01") -> pd.DataFrame:
    """Collinear fixes: every cumulative MCP has zero area."""
    t0 = pd.Timestamp(start)
    rows = [
        (individual_id, t0 + pd.Timedelta(days=i), X0 + 100.0 * i, Y0 + 50.0 * i)
        for i in range(n_fixes)
    ]
    return pd.DataFrame(rows, columns=["ID", "DateTime", "UTM_X", "UTM_Y"])


def pooled(*frames: pd.DataFrame) -> pd.DataFrame:
    return pd.concat(frames, ignore_index=True)
