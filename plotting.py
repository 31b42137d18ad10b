# plotting.py
"""
Logistic growth curve figure for a settle analysis.
"""
from __future__ import annotations

from typing import Any, Optional, Sequence

import matplotlib.pyplot as plt

from estimators.settle import SettlementCurve


def draw_settlement_curve(
    ax: Any,
    curve: SettlementCurve,
    observed_days: Optional[Sequence[float]] = None,
    observed_area: Optional[Sequence[float]] = None,
) -> None:
    """Draw prediction, plateau/settlement reference lines and the annotation on ``ax``."""
    if observed_days is not None and observed_area is not None:
        ax.scatter(observed_days, observed_area, s=8, color="0.6", alpha=0.6,
                   linewidths=0, label="Cumulative MCP", zorder=1)

    ax.plot(curve.days, curve.predicted_area, color="red", linestyle="--", linewidth=1.5,
            label="Logistic fit", zorder=3)
    ax.axhline(curve.plateau_value, linestyle=":", color="0.25", linewidth=1.2, zorder=2)
    ax.axvline(curve.settlement_day, linestyle=":", color="0.25", linewidth=1.2, zorder=2)

    max_x = float(curve.days.max())
    min_y = float(curve.predicted_area.min())
    ax.text(max_x, min_y, "\n".join(curve.annotation), ha="right", va="bottom", color="black")

    pct = int(round(curve.plateau_fraction * 100))
    ax.set_title(f"Logistic Growth Model Prediction\n(Settlement = {pct}% before asymptote)")
    ax.set_xlabel("Days")
    ax.set_ylabel("Predicted area occupied (km²)")
    ax.grid(True, linewidth=0.3, alpha=0.5)


def plot_settlement_curve(
    curve: SettlementCurve,
    observed_days: Optional[Sequence[float]] = None,
    observed_area: Optional[Sequence[float]] = None,
    ax: Any = None,
    figsize=(7.0, 5.0),
):
    """Return the matplotlib Figure holding the settlement curve."""
    if ax is None:
        fig, ax = plt.subplots(figsize=figsize)
    else:
        fig = ax.figure
    draw_settlement_curve(ax, curve, observed_days=observed_days, observed_area=observed_area)
    fig.tight_layout()
    return fig
