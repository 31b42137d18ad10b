# storage.py
"""
Writers for settle / dispersal results. Nothing here is kept between calls;
every function takes the result and an output directory.
"""
import json
import logging
import os
import zipfile

import pandas as pd
from shapely.geometry import mapping

from dataset_context import build_dataset_context, to_json_safe

logger = logging.getLogger(__name__)

SETTLE_ARCHIVE = "settle_results.zip"


# --------------------------------------------------------------------------------------
# Writers (one file each)
# --------------------------------------------------------------------------------------
def write_samples_csv(result, outdir: str) -> str:
    path = os.path.join(outdir, "cumulative_mcps.csv")
    df = result.samples_frame()
    df.to_csv(path, index=False)
    return path

def write_samples_geojson(result, outdir: str) -> str:
    """
    One feature per cumulative MCP. Geometries stay in the input CRS, which is
    recorded under the collection's "crs" member.
    """
    features = []
    for s in result.samples:
        features.append({
            "type": "Feature",
            "properties": {
                "individual_id": str(s.individual_id),
                "timestamp": s.timestamp,
                "k": int(s.k),
                "area_km2": float(s.area_km2),
                "days": float(s.days),
            },
            "geometry": mapping(s.polygon),
        })
    fc = {"type": "FeatureCollection", "features": features}
    crs = getattr(result.fix_table, "crs", None)
    if crs is not None:
        fc["crs"] = {"type": "name", "properties": {"name": crs.to_string()}}

    path = os.path.join(outdir, "cumulative_mcps.geojson")
    with open(path, "w") as f:
        json.dump(to_json_safe(fc), f)
    return path

def write_fit_summary(result, outdir: str) -> str:
    """logistic_fit.json: coefficients, residual stats, settlement statistic, dataset brief."""
    curve = result.curve
    summary = {
        "fit": result.fit.to_dict(),
        "settlement": {
            "plateau_fraction": curve.plateau_fraction,
            "plateau_value_km2": curve.plateau_value,
            "settlement_day": curve.settlement_day,
            "grid_points": int(len(curve.days)),
            "annotation": list(curve.annotation),
        },
        "dataset": build_dataset_context(result.fix_table),
        "n_samples": len(result.samples),
        "n_individuals": result.n_individuals,
    }
    path = os.path.join(outdir, "logistic_fit.json")
    with open(path, "w") as f:
        json.dump(to_json_safe(summary), f, indent=2, ensure_ascii=False)
    return path

def write_curve_csv(result, outdir: str) -> str:
    path = os.path.join(outdir, "settlement_curve.csv")
    result.curve.to_frame().to_csv(path, index=False)
    return path

def write_curve_png(result, outdir: str) -> str:
    import matplotlib.pyplot as plt
    from plotting import plot_settlement_curve

    df = result.samples_frame()
    fig = plot_settlement_curve(result.curve, observed_days=df["days"], observed_area=df["area_km2"])
    path = os.path.join(outdir, "settlement_curve.png")
    try:
        fig.savefig(path, dpi=150)
    finally:
        plt.close(fig)
    return path

def write_dispersal_csv(disp: pd.DataFrame, outdir: str) -> str:
    os.makedirs(outdir, exist_ok=True)
    path = os.path.join(outdir, "dispersal_distances.csv")
    disp.to_csv(path, index=False)
    logger.info("Dispersal distances written: %s", path)
    return path


# --------------------------------------------------------------------------------------
# Orchestrator
# --------------------------------------------------------------------------------------
def save_settle_outputs(result, outdir: str = "outputs", plot: bool = True) -> str:
    """
    Writes (under outdir):
      - cumulative_mcps.csv
      - cumulative_mcps.geojson
      - logistic_fit.json
      - settlement_curve.csv
      - settlement_curve.png          (when plot=True)
      - settle_results.zip            (zip of the files above)
    Returns path to the zip.
    """
    os.makedirs(outdir, exist_ok=True)
    written = [
        write_samples_csv(result, outdir),
        write_samples_geojson(result, outdir),
        write_fit_summary(result, outdir),
        write_curve_csv(result, outdir),
    ]
    if plot:
        written.append(write_curve_png(result, outdir))

    archive = os.path.join(outdir, SETTLE_ARCHIVE)
    if os.path.exists(archive):
        os.remove(archive)
    with zipfile.ZipFile(archive, "w", zipfile.ZIP_DEFLATED) as zipf:
        for full_path in written:
            zipf.write(full_path, arcname=os.path.relpath(full_path, outdir))

    logger.info("ZIP written: %s", archive)
    return archive
