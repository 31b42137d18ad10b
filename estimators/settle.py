# =============================================
# File: estimators/settle.py
# =============================================
"""
Days-to-settle from cumulative minimum convex polygons.

Each individual's MCP is grown fix by fix; the pooled (days, area) series is
fitted with a logistic growth curve and the animal is considered settled when
the curve reaches ``plateau_fraction`` (95% by default) of its asymptote.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from estimators.logistic import LogisticFit, fit_logistic
from estimators.mcp import DAYS_ORIGINS, CumulativeSample, cumulative_mcps, samples_to_frame
from fixes import MIN_FIXES, FixTable, normalize_fixes
from progress import NullProgress

logger = logging.getLogger(__name__)


# ---------- Parameters ---------------------------------------------------------

@dataclass
class SettleParams:
    """
    Per-call settings for days_to_settle_mcp.

    days_origin:
      - "first_sample": days counted from the first cumulative MCP (k = 2), so the
                        first sample of every individual sits at day 0 (default)
      - "first_fix":    days counted from the individual's first valid fix
    verbose:
      per-individual messages are logged at INFO instead of DEBUG.
    """
    min_fixes: int = MIN_FIXES
    plateau_fraction: float = 0.95
    grid_points: int = 100
    days_origin: str = "first_sample"
    maxfev: int = 20_000
    max_workers: int = 1
    verbose: bool = False

    def validate(self) -> "SettleParams":
        if int(self.min_fixes) < 2:
            raise ValueError("min_fixes must be at least 2 to build a polygon series.")
        if not 0.0 < float(self.plateau_fraction) < 1.0:
            raise ValueError("plateau_fraction must lie strictly between 0 and 1.")
        if int(self.grid_points) < 2:
            raise ValueError("grid_points must be at least 2.")
        if self.days_origin not in DAYS_ORIGINS:
            raise ValueError(f"days_origin must be one of {DAYS_ORIGINS}.")
        if int(self.maxfev) < 1:
            raise ValueError("maxfev must be positive.")
        if int(self.max_workers) < 1:
            raise ValueError("max_workers must be at least 1.")
        return self

    @property
    def log_level(self) -> int:
        return logging.INFO if self.verbose else logging.DEBUG


# ---------- Settlement statistic ----------------------------------------------

@dataclass(frozen=True)
class SettlementCurve:
    """Prediction grid plus the plateau / settlement-day reference lines."""
    days: np.ndarray
    predicted_area: np.ndarray
    plateau_value: float
    settlement_day: float
    plateau_fraction: float = 0.95

    @property
    def annotation(self) -> Tuple[str, str]:
        return (
            f"{round(self.settlement_day)} Days until settled",
            f"Area occupied = {round(float(self.plateau_value), 2)} km²",
        )

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame({"days": self.days, "predicted_area_km2": self.predicted_area})


def settlement_curve(
    fit: LogisticFit,
    days_min: float,
    days_max: float,
    grid_points: int = 100,
    plateau_fraction: float = 0.95,
) -> SettlementCurve:
    """
    Sample the fitted curve on an even grid and pick the grid day whose
    prediction is closest to ``plateau_fraction * asymptote`` (first on ties).
    """
    grid = np.linspace(float(days_min), float(days_max), int(grid_points))
    predicted = fit.predict(grid)
    plateau_value = float(fit.asymptote * plateau_fraction)
    idx = int(np.argmin(np.abs(predicted - plateau_value)))
    return SettlementCurve(
        days=grid,
        predicted_area=predicted,
        plateau_value=plateau_value,
        settlement_day=float(grid[idx]),
        plateau_fraction=float(plateau_fraction),
    )


# ---------- Result container ----------------------------------------------------

@dataclass
class SettleResult:
    samples: List[CumulativeSample]
    fit: LogisticFit
    curve: SettlementCurve
    fix_table: Optional[FixTable] = field(default=None, repr=False)

    @property
    def settlement_day(self) -> float:
        return self.curve.settlement_day

    @property
    def plateau_value(self) -> float:
        return self.curve.plateau_value

    @property
    def n_individuals(self) -> int:
        return len({s.individual_id for s in self.samples})

    def samples_frame(self, include_geometry: bool = False) -> pd.DataFrame:
        return samples_to_frame(self.samples, include_geometry=include_geometry)


# ---------- Core ------------------------------------------------------------------

def settle_from_samples(samples: Sequence[CumulativeSample], params: Optional[SettleParams] = None):
    """Fit the pooled logistic curve and derive the settlement statistic."""
    params = (params or SettleParams()).validate()
    days = np.array([s.days for s in samples], dtype=float)
    area = np.array([s.area_km2 for s in samples], dtype=float)

    fit = fit_logistic(days, area, maxfev=params.maxfev)
    curve = settlement_curve(
        fit,
        days_min=days.min(),
        days_max=days.max(),
        grid_points=params.grid_points,
        plateau_fraction=params.plateau_fraction,
    )
    logger.info(
        "Logistic fit: asymptote=%.4g km², midpoint=%.4g d, scale=%.4g d; settled after %.1f days at %.4g km²",
        fit.asymptote, fit.midpoint, fit.scale, curve.settlement_day, curve.plateau_value,
    )
    return fit, curve


def days_to_settle_mcp(
    x: pd.DataFrame,
    coords: Sequence[str],
    id_col: str,
    time_col: str,
    crs,
    params: Optional[SettleParams] = None,
    progress=None,
) -> Optional[SettleResult]:
    """
    Estimate how long translocated animals take to settle.

    Inputs
    ------
    x : fix table with projected coordinates, an ID column and a parsed datetime column.
    coords : (x_col, y_col), metres in ``crs``.
    id_col, time_col : individual and timestamp columns.
    crs : e.g. "EPSG:32648"; must be projected with metre units.
    params : SettleParams.
    progress : reporter with start/advance/close (see progress.py).

    Returns
    -------
    SettleResult, or None when no individual has ``params.min_fixes`` fixes.

    Raises
    ------
    fixes.InputSchemaError, estimators.logistic.FitConvergenceError
    """
    params = (params or SettleParams()).validate()
    if progress is None:
        progress = NullProgress()

    try:
        fix_table = normalize_fixes(x, coords, id_col, time_col, crs, min_fixes=params.min_fixes)
        if fix_table.empty:
            return None

        progress.start(len(fix_table.tracks))
        samples = cumulative_mcps(
            fix_table,
            days_origin=params.days_origin,
            max_workers=params.max_workers,
            progress=progress,
            log_level=params.log_level,
        )
        logger.log(
            params.log_level,
            "%d cumulative MCP sample(s) from %d individual(s)",
            len(samples), len(fix_table.tracks),
        )

        fit, curve = settle_from_samples(samples, params)
        return SettleResult(samples=samples, fit=fit, curve=curve, fix_table=fix_table)
    finally:
        progress.close()
