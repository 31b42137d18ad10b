import re

from pyproj import CRS
from pyproj.exceptions import CRSError

_METRE_UNITS = {"metre", "meter", "m"}


def _parse_epsg_literal(s: str):
    s = str(s).strip()
    m = re.search(r'(?i)\bepsg\s*:\s*(\d{4,6})\b', s)
    if m: return int(m.group(1))
    m = re.match(r'^\s*(\d{4,6})\s*$', s)
    if m: return int(m.group(1))
    return None

def _parse_utm_any(s: str):
    txt = str(s).strip()
    patterns = [
        r'(?i)\butm\b[^0-9]*?(\d{1,2})\s*([A-Za-z])?',
        r'(?i)\bzone\s*(\d{1,2})\s*([A-Za-z])?',
        r'\b(\d{1,2})\s*([C-HJ-NP-Xc-hj-np-x])\b',
        r'\b(\d{1,2})\s*([NnSs])\b',
    ]
    m = None
    for p in patterns:
        m = re.search(p, txt)
        if m: break
    if not m: return None
    zone = int(m.group(1))
    if not 1 <= zone <= 60:
        return None
    band = (m.group(2) or '').upper()
    if band in ('N','S'):
        hemi = 'N' if band == 'N' else 'S'
    elif band:
        hemi = 'N' if band >= 'N' else 'S'
    else:
        hemi = 'N'
    return (32600 if hemi == 'N' else 32700) + zone

def resolve_crs(user_input) -> CRS:
    """
    Turn whatever the caller declared into a pyproj CRS.

    Accepts a pyproj CRS, an integer EPSG code, 'EPSG:32648', '32648',
    'UTM 48N', 'zone 48P', or anything CRS.from_user_input understands.
    """
    if isinstance(user_input, CRS):
        return user_input
    if user_input is None or not str(user_input).strip():
        raise ValueError("Empty CRS.")
    if isinstance(user_input, int):
        return CRS.from_epsg(user_input)

    code = _parse_epsg_literal(user_input)
    if code is None:
        code = _parse_utm_any(user_input)
    try:
        if code is not None:
            return CRS.from_epsg(code)
        return CRS.from_user_input(user_input)
    except CRSError as exc:
        raise ValueError(
            f"Invalid CRS {user_input!r}. Try forms like 'EPSG:32648', '32648', 'UTM 48N', or 'zone 48P'."
        ) from exc

def require_metric_crs(user_input) -> CRS:
    """Resolve a CRS and insist it is projected with metre axes (areas in m²)."""
    crs = resolve_crs(user_input)
    if not crs.is_projected:
        raise ValueError(
            f"CRS {crs.to_string()} is geographic; coordinates must be projected "
            "(e.g. UTM) so that areas are measured in metres."
        )
    units = {(ax.unit_name or "").lower() for ax in crs.axis_info}
    if not units or not units <= _METRE_UNITS:
        raise ValueError(f"CRS {crs.to_string()} does not use metre units: {sorted(units)}")
    return crs
