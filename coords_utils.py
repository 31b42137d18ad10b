# coords_utils.py
import math

import numpy as np


def looks_like_latlon(x, y) -> bool:
    """True if every finite x/y pair sits inside lon/lat degree bounds."""
    x = np.asarray(x, dtype=float)
    y = np.asarray(y, dtype=float)
    ok = np.isfinite(x) & np.isfinite(y)
    if not ok.any():
        return False
    x, y = x[ok], y[ok]
    as_lonlat = bool(np.all((x >= -180) & (x <= 180) & (y >= -90) & (y <= 90)))
    as_latlon = bool(np.all((x >= -90) & (x <= 90) & (y >= -180) & (y <= 180)))
    return as_lonlat or as_latlon

def is_valid_xy(x: float, y: float) -> bool:
    """A planar point is valid when both coordinates are finite numbers."""
    try:
        return math.isfinite(x) and math.isfinite(y)
    except TypeError:
        return False
