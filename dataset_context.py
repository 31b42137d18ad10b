# dataset_context.py
from datetime import date, datetime
from typing import Any, Dict

import numpy as np
import pandas as pd

from fixes import FixTable


# ---- JSON-safe conversion helpers ------------------------------------------
def _to_json_safe_scalar(x: Any) -> Any:
    """Convert numpy/pandas scalars & datetimes into plain JSON-safe Python types."""
    if isinstance(x, (np.integer,)):
        return int(x)
    if isinstance(x, (np.floating,)):
        v = float(x)
        return v if np.isfinite(v) else None
    if isinstance(x, float):
        return x if np.isfinite(x) else None
    if isinstance(x, (np.bool_,)):
        return bool(x)

    # pd.Timestamp is a datetime subclass; isoformat() keeps any timezone
    if isinstance(x, (pd.Timestamp, datetime, date)):
        return x.isoformat()

    if isinstance(x, np.ndarray):
        return [_to_json_safe_scalar(v) for v in x.tolist()]

    return x


def to_json_safe(obj: Any) -> Any:
    """Recursively convert dicts/lists/tuples/sets to JSON-safe structures."""
    if isinstance(obj, dict):
        return {str(k): to_json_safe(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple, set)):
        return [to_json_safe(v) for v in obj]
    return _to_json_safe_scalar(obj)


# ---- public API -------------------------------------------------------------
def build_dataset_context(fix_table: FixTable, topk_ids: int = 10) -> Dict[str, Any]:
    """
    Compact, strictly factual summary of the normalised fixes.
    All values are JSON-safe.
    """
    if fix_table is None or fix_table.empty:
        return {"empty": True}

    per_id = [(t.individual_id, len(t), len(t.valid_fixes())) for t in fix_table.tracks]
    starts = [t.fixes[0].timestamp for t in fix_table.tracks]
    ends = [t.fixes[-1].timestamp for t in fix_table.tracks]

    brief: Dict[str, Any] = {
        "empty": False,
        "crs": fix_table.crs.to_string() if fix_table.crs is not None else None,
        "num_fixes": int(fix_table.n_fixes),
        "num_valid_fixes": int(sum(v for _, _, v in per_id)),
        "num_animals": len(per_id),
        "dropped_animals": [str(i) for i in fix_table.dropped_ids],
        "time_min": min(starts),
        "time_max": max(ends),
        "top_animals": [
            {"id": str(i), "n_fixes": int(n), "n_valid": int(v)}
            for i, n, v in sorted(per_id, key=lambda r: -r[1])[:topk_ids]
        ],
    }
    return to_json_safe(brief)
