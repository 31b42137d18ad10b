# estimators/logistic.py
"""
Three-parameter logistic growth model fitted by nonlinear least squares.

    area(days) = asymptote / (1 + exp((midpoint - days) / scale))

Starting values are derived from the data (no user input needed), in the
spirit of R's SSlogis self-start: a linear fit on the logit of the
range-scaled response gives midpoint and scale, and the asymptote is then the
linear least-squares coefficient for those two. Unlike SSlogis there is no
partially-linear refinement of midpoint and scale; curve_fit does that part.
"""
from __future__ import annotations

import logging
import warnings
from dataclasses import dataclass, asdict
from typing import Dict, Tuple

import numpy as np
import pandas as pd
from scipy import stats as scipy_stats
from scipy.optimize import OptimizeWarning, curve_fit

logger = logging.getLogger(__name__)

PARAM_NAMES = ("asymptote", "midpoint", "scale")
MIN_OBSERVATIONS = 4


class FitConvergenceError(RuntimeError):
    """Raised when the pooled logistic fit cannot be estimated."""

    def __init__(self, message: str, n_obs: int = 0,
                 days_range: Tuple[float, float] = (np.nan, np.nan),
                 area_range: Tuple[float, float] = (np.nan, np.nan)):
        self.reason = message
        self.n_obs = int(n_obs)
        self.days_range = tuple(float(v) for v in days_range)
        self.area_range = tuple(float(v) for v in area_range)
        super().__init__(
            f"{message} (n_obs={self.n_obs}, "
            f"days=[{self.days_range[0]:.4g}, {self.days_range[1]:.4g}], "
            f"area_km2=[{self.area_range[0]:.4g}, {self.area_range[1]:.4g}])"
        )


def logistic(days, asymptote, midpoint, scale):
    days = np.asarray(days, dtype=float)
    with np.errstate(over="ignore", divide="ignore", invalid="ignore"):
        return asymptote / (1.0 + np.exp((midpoint - days) / scale))


def self_start(days, area) -> Tuple[float, float, float]:
    """Initial (asymptote, midpoint, scale) from the observations."""
    days = np.asarray(days, dtype=float)
    area = np.asarray(area, dtype=float)

    lo, hi = float(np.min(area)), float(np.max(area))
    span = hi - lo
    z = (area - lo + 0.05 * span) / (1.1 * span)
    logit = np.log(z / (1.0 - z))
    slope, intercept = np.polyfit(days, logit, 1)

    if np.isfinite(slope) and abs(slope) > 1e-12:
        midpoint = -intercept / slope
        scale = 1.0 / slope
    else:
        midpoint = float(np.median(days))
        scale = max(float(np.ptp(days)) / 4.0, 1e-3)

    g = logistic(days, 1.0, midpoint, scale)
    denom = float(np.dot(g, g))
    asymptote = float(np.dot(area, g) / denom) if denom > 0 else 1.05 * hi
    if not np.isfinite(asymptote) or asymptote <= 0:
        asymptote = 1.05 * hi
    return float(asymptote), float(midpoint), float(scale)


@dataclass(frozen=True)
class LogisticFit:
    asymptote: float
    midpoint: float
    scale: float
    std_errors: Tuple[float, float, float]
    rss: float
    df_resid: int
    n_obs: int
    nfev: int
    r2: float
    start: Tuple[float, float, float]

    @property
    def params(self) -> Tuple[float, float, float]:
        return (self.asymptote, self.midpoint, self.scale)

    @property
    def residual_std_error(self) -> float:
        return float(np.sqrt(self.rss / self.df_resid)) if self.df_resid > 0 else float("nan")

    @property
    def t_values(self) -> Tuple[float, float, float]:
        return tuple(float(p / se) if se > 0 else float("nan") for p, se in zip(self.params, self.std_errors))

    @property
    def p_values(self) -> Tuple[float, float, float]:
        return tuple(float(2.0 * scipy_stats.t.sf(abs(t), self.df_resid)) for t in self.t_values)

    def predict(self, days) -> np.ndarray:
        return logistic(days, *self.params)

    def coefficient_table(self) -> pd.DataFrame:
        return pd.DataFrame(
            {
                "estimate": self.params,
                "std_error": self.std_errors,
                "t_value": self.t_values,
                "p_value": self.p_values,
            },
            index=pd.Index(PARAM_NAMES, name="parameter"),
        )

    def summary_text(self) -> str:
        lines = [
            "Formula: area_km2 ~ asymptote / (1 + exp((midpoint - days) / scale))",
            "",
            "Parameters:",
            self.coefficient_table().to_string(float_format=lambda v: f"{v:.6g}"),
            "",
            f"Residual standard error: {self.residual_std_error:.6g} on {self.df_resid} degrees of freedom",
            f"Residual sum of squares: {self.rss:.6g}; R²: {self.r2:.4f}; function evaluations: {self.nfev}",
        ]
        return "\n".join(lines)

    def to_dict(self) -> Dict:
        d = asdict(self)
        d["std_errors"] = dict(zip(PARAM_NAMES, self.std_errors))
        d["start"] = dict(zip(PARAM_NAMES, self.start))
        d["t_values"] = dict(zip(PARAM_NAMES, self.t_values))
        d["p_values"] = dict(zip(PARAM_NAMES, self.p_values))
        d["residual_std_error"] = self.residual_std_error
        return d


def fit_logistic(days, area, maxfev: int = 20_000) -> LogisticFit:
    """
    Fit the logistic model to pooled (days, area) observations.

    Raises FitConvergenceError rather than returning a degenerate curve.
    """
    days = np.asarray(days, dtype=float).ravel()
    area = np.asarray(area, dtype=float).ravel()
    if days.shape != area.shape:
        raise ValueError("days and area must have the same length")

    n = int(days.size)
    days_range = (float(np.min(days)), float(np.max(days))) if n else (np.nan, np.nan)
    area_range = (float(np.min(area)), float(np.max(area))) if n else (np.nan, np.nan)

    def _fail(msg: str) -> FitConvergenceError:
        return FitConvergenceError(msg, n_obs=n, days_range=days_range, area_range=area_range)

    if n < MIN_OBSERVATIONS:
        raise _fail(f"Need at least {MIN_OBSERVATIONS} pooled observations to fit 3 parameters")
    if not (np.all(np.isfinite(days)) and np.all(np.isfinite(area))):
        raise _fail("Observations contain non-finite values")
    if np.ptp(days) <= 0:
        raise _fail("No variation in days")
    if np.ptp(area) <= 1e-12 * max(1.0, abs(area_range[1])):
        raise _fail("No variation in area")

    p0 = self_start(days, area)
    with warnings.catch_warnings():
        warnings.simplefilter("error", OptimizeWarning)
        try:
            popt, pcov, infodict, _mesg, _ier = curve_fit(
                logistic, days, area, p0=p0, maxfev=maxfev, full_output=True,
            )
        except (RuntimeError, ValueError, OptimizeWarning) as exc:
            raise _fail(f"Logistic fit did not converge: {exc}") from exc

    asymptote, midpoint, scale = (float(v) for v in popt)
    if not np.all(np.isfinite(popt)) or not np.all(np.isfinite(pcov)):
        raise _fail("Logistic fit produced non-finite parameters or covariance")
    if asymptote <= 0 or scale <= 0:
        raise _fail(f"Logistic fit is degenerate (asymptote={asymptote:.4g}, scale={scale:.4g})")

    resid = area - logistic(days, asymptote, midpoint, scale)
    rss = float(np.sum(resid ** 2))
    ss_tot = float(np.sum((area - area.mean()) ** 2))
    std_errors = tuple(float(v) for v in np.sqrt(np.clip(np.diag(pcov), 0.0, None)))

    fit = LogisticFit(
        asymptote=asymptote,
        midpoint=midpoint,
        scale=scale,
        std_errors=std_errors,
        rss=rss,
        df_resid=n - len(PARAM_NAMES),
        n_obs=n,
        nfev=int(infodict.get("nfev", 0)),
        r2=1.0 - rss / ss_tot if ss_tot > 0 else float("nan"),
        start=p0,
    )
    logger.debug("Logistic fit: start=%s, estimate=%s, nfev=%d", p0, fit.params, fit.nfev)
    return fit
