# fixes.py
"""
Fix table normalisation.

Binds the caller's coordinate / ID / timestamp columns to explicit typed
records once, at the boundary, so nothing downstream looks columns up by
name. Individuals with fewer than ``min_fixes`` rows are dropped before any
geometry is attempted.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from pyproj import CRS

from coords_utils import is_valid_xy, looks_like_latlon
from crs_utils import require_metric_crs

logger = logging.getLogger(__name__)

MIN_FIXES = 4


class InputSchemaError(ValueError):
    """Raised when the fix table is missing required columns or has the wrong types."""


@dataclass(frozen=True)
class Fix:
    individual_id: Any
    timestamp: pd.Timestamp
    x: float
    y: float
    row: int  # position in the input table; breaks timestamp ties

    @property
    def position(self) -> Tuple[float, float]:
        return (self.x, self.y)

    @property
    def is_valid(self) -> bool:
        return is_valid_xy(self.x, self.y)


@dataclass(frozen=True)
class Track:
    """All fixes of one individual, ascending by timestamp (stable on ties)."""
    individual_id: Any
    fixes: Tuple[Fix, ...]

    def __len__(self) -> int:
        return len(self.fixes)

    def valid_fixes(self) -> Tuple[Fix, ...]:
        return tuple(f for f in self.fixes if f.is_valid)


@dataclass(frozen=True)
class FixTable:
    tracks: Tuple[Track, ...]
    crs: Optional[CRS] = None
    dropped_ids: Tuple[Any, ...] = ()

    @property
    def empty(self) -> bool:
        return len(self.tracks) == 0

    @property
    def n_fixes(self) -> int:
        return sum(len(t) for t in self.tracks)

    @property
    def individual_ids(self) -> Tuple[Any, ...]:
        return tuple(t.individual_id for t in self.tracks)

    def to_frame(self) -> pd.DataFrame:
        rows = [
            (f.individual_id, f.timestamp, f.x, f.y)
            for t in self.tracks
            for f in t.fixes
        ]
        return pd.DataFrame(rows, columns=["individual_id", "timestamp", "x", "y"])


def _numeric_column(df: pd.DataFrame, col: str) -> np.ndarray:
    s = df[col]
    if pd.api.types.is_bool_dtype(s):
        raise InputSchemaError(f"Coordinate column '{col}' is boolean, expected numbers.")
    if not pd.api.types.is_numeric_dtype(s):
        try:
            s = pd.to_numeric(s, errors="raise")
        except (ValueError, TypeError) as exc:
            raise InputSchemaError(f"Coordinate column '{col}' is not numeric.") from exc
    return s.to_numpy(dtype=float)


def normalize_fixes(
    df: pd.DataFrame,
    coords: Sequence[str],
    id_col: str,
    time_col: str,
    crs,
    min_fixes: int = MIN_FIXES,
) -> FixTable:
    """
    Validate a raw fix table and group it into per-individual tracks.

    Parameters
    ----------
    df : table with at least the coordinate, ID and timestamp columns.
    coords : (x_col, y_col) in a projected, metre-based CRS.
    id_col : individual identifier column.
    time_col : already-parsed datetime column (datetime64 dtype).
    crs : EPSG code / string / pyproj CRS of the coordinates.
    min_fixes : individuals with fewer rows than this are dropped.

    Returns
    -------
    FixTable; ``empty`` is True when no individual has enough fixes.

    Raises
    ------
    InputSchemaError on missing/mistyped columns or an unusable CRS.
    """
    if not isinstance(df, pd.DataFrame):
        raise InputSchemaError(f"Expected a pandas DataFrame, got {type(df).__name__}.")
    if isinstance(coords, str) or len(coords) != 2:
        raise InputSchemaError("coords must name exactly two columns (x, y).")
    if int(min_fixes) < 1:
        raise ValueError("min_fixes must be at least 1.")

    x_col, y_col = coords
    missing = [c for c in (x_col, y_col, id_col, time_col) if c not in df.columns]
    if missing:
        raise InputSchemaError(f"Missing required columns: {missing}. Available: {list(df.columns)}")

    xs = _numeric_column(df, x_col)
    ys = _numeric_column(df, y_col)

    if not pd.api.types.is_datetime64_any_dtype(df[time_col]):
        raise InputSchemaError(
            f"Timestamp column '{time_col}' must already be parsed to datetimes "
            f"(got dtype {df[time_col].dtype})."
        )

    try:
        target_crs = require_metric_crs(crs)
    except ValueError as exc:
        raise InputSchemaError(str(exc)) from exc

    frame = pd.DataFrame({
        "individual_id": df[id_col].reset_index(drop=True),
        "timestamp": df[time_col].reset_index(drop=True),
        "x": xs,
        "y": ys,
        "row": np.arange(len(df)),
    })

    incomplete = frame["individual_id"].isna() | frame["timestamp"].isna()
    if incomplete.any():
        logger.warning("Dropping %d fixes without an ID or timestamp", int(incomplete.sum()))
        frame = frame.loc[~incomplete]

    if looks_like_latlon(frame["x"], frame["y"]):
        logger.warning(
            "Coordinates in '%s'/'%s' look like lon/lat degrees; areas assume %s metres.",
            x_col, y_col, target_crs.to_string(),
        )

    counts = frame.groupby("individual_id", sort=False).size()
    too_few = counts[counts < min_fixes]
    if len(too_few):
        logger.info(
            "Dropping %d individual(s) with fewer than %d fixes: %s",
            len(too_few), min_fixes, ", ".join(map(str, too_few.index)),
        )
    keep = frame["individual_id"].isin(counts[counts >= min_fixes].index)
    frame = frame.loc[keep]

    if frame.empty:
        logger.warning("No valid IDs with at least %d records.", min_fixes)
        return FixTable(tracks=(), crs=target_crs, dropped_ids=tuple(too_few.index))

    tracks = []
    for animal, sub in frame.groupby("individual_id", sort=False):
        sub = sub.sort_values(["timestamp", "row"], kind="mergesort")
        fixes = tuple(
            Fix(individual_id=animal, timestamp=r.timestamp, x=float(r.x), y=float(r.y), row=int(r.row))
            for r in sub.itertuples(index=False)
        )
        tracks.append(Track(individual_id=animal, fixes=fixes))

    return FixTable(tracks=tuple(tracks), crs=target_crs, dropped_ids=tuple(too_few.index))
