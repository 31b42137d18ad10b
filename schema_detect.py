# schema_detect.py
"""
Guess the ID / timestamp columns of a raw CSV when the user did not name them.
Only the command line uses this; library calls always bind columns explicitly.
"""
import re
from typing import List, Optional

import pandas as pd

# ---- Candidate name lists (case-insensitive) ----
ID_CANDIDATES = [
    "id", "animal_id", "individual_id", "individual", "track_id",
    "subject_id", "tag_id", "collar_id", "name", "animal", "bird_id"
]
TS_CANDIDATES = [
    "datetime", "timestamp", "date_time", "time", "date",
    "fix_time", "acquisition_time", "gmt_datetime", "utc_time", "gps_time"
]
COORD_LIKE = {"lat", "latitude", "lon", "longitude", "x", "y", "easting", "northing", "utm_x", "utm_y"}


def _best_match_by_name(columns: List[str], candidates: List[str]) -> Optional[str]:
    low = [c.lower().strip() for c in columns]
    for c in candidates:
        if c in low:
            return columns[low.index(c)]
    # fuzzy-ish fallback: whole-token match (e.g. "Animal.ID", "tag_id_2")
    for c in candidates:
        pat = re.compile(rf"(?:^|[^a-z0-9]){re.escape(c)}(?:$|[^a-z0-9])")
        for i, col in enumerate(low):
            if col not in COORD_LIKE and pat.search(col):
                return columns[i]
    return None

def _parse_fraction(s: pd.Series) -> float:
    parsed = pd.to_datetime(s, errors="coerce", utc=True, format="mixed")
    return float(parsed.notna().mean()) if len(s) else 0.0

def detect_id_column(df: pd.DataFrame) -> Optional[str]:
    return _best_match_by_name(list(map(str, df.columns)), ID_CANDIDATES)

def detect_timestamp_column(df: pd.DataFrame, min_ok: float = 0.8) -> Optional[str]:
    """
    Detect a timestamp column by name first, then by value profile.
    Numeric columns are never picked by value alone (coordinates parse as epochs).
    """
    cols = list(map(str, df.columns))

    name = _best_match_by_name(cols, TS_CANDIDATES)
    if name is not None:
        if pd.api.types.is_datetime64_any_dtype(df[name]) or _parse_fraction(df[name]) >= 0.5:
            return name

    best, best_score = None, 0.0
    for c in cols:
        s = df[c]
        if c.lower().strip() in COORD_LIKE or pd.api.types.is_numeric_dtype(s) or pd.api.types.is_bool_dtype(s):
            continue
        if pd.api.types.is_datetime64_any_dtype(s):
            return c
        score = _parse_fraction(s)
        if score >= min_ok and score > best_score:
            best, best_score = c, score
    return best

def parse_timestamp_column(df: pd.DataFrame, col: str, fmt: Optional[str] = None, tz: Optional[str] = None) -> pd.DataFrame:
    """
    Return a copy of df with ``col`` parsed to datetimes.
    Naive values are localised to ``tz`` when given. Unparseable cells become NaT.
    """
    out = df.copy()
    if not pd.api.types.is_datetime64_any_dtype(out[col]):
        out[col] = pd.to_datetime(out[col], errors="coerce", format=fmt if fmt else "mixed")
    if tz and getattr(out[col].dt, "tz", None) is None:
        out[col] = out[col].dt.tz_localize(tz)
    return out
