# estimators/dispersal.py
from __future__ import annotations

from typing import Sequence

import numpy as np
import pandas as pd

from fixes import normalize_fixes


def disp_dist(
    x: pd.DataFrame,
    coords: Sequence[str],
    id_col: str,
    time_col: str,
    crs,
) -> pd.DataFrame:
    """
    Dispersal distance per individual: metres from the release location
    (earliest fix) to the centroid of every later fix.

    Returns a DataFrame with columns individual_id and disp_dist (metres).
    Individuals with no valid later fix get NaN. The result can be joined on
    individual_id to metadata such as sex or age class.
    """
    fix_table = normalize_fixes(x, coords, id_col, time_col, crs, min_fixes=1)

    rows = []
    for track in fix_table.tracks:
        release = track.fixes[0]
        later = np.array(
            [f.position for f in track.fixes if f.timestamp > release.timestamp and f.is_valid],
            dtype=float,
        ).reshape(-1, 2)
        if not release.is_valid or len(later) == 0:
            rows.append((track.individual_id, np.nan))
            continue
        cx, cy = later.mean(axis=0)
        rows.append((track.individual_id, float(np.hypot(cx - release.x, cy - release.y))))

    return pd.DataFrame(rows, columns=["individual_id", "disp_dist"])
