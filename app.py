# app.py
"""
Command line for settlement analysis.

Run:
    python app.py settle --csv fixes.csv --x UTM_X --y UTM_Y --crs "EPSG:32648"
    python app.py disperse --csv fixes.csv --x UTM_X --y UTM_Y --crs "UTM 48N"
"""
from __future__ import annotations

import argparse
import logging
import sys

import pandas as pd

from estimators.dispersal import disp_dist
from estimators.logistic import FitConvergenceError
from estimators.mcp import DAYS_ORIGINS
from estimators.settle import SettleParams, days_to_settle_mcp
from fixes import MIN_FIXES, InputSchemaError
from progress import NullProgress, TqdmProgress
from schema_detect import detect_id_column, detect_timestamp_column, parse_timestamp_column
from storage import save_settle_outputs, write_dispersal_csv

logger = logging.getLogger(__name__)

EXIT_NO_DATA = 1
EXIT_INPUT = 2


# --------------------------------------------------------------------------------------
# Input
# --------------------------------------------------------------------------------------
def _load_fixes(args: argparse.Namespace) -> tuple[pd.DataFrame, str, str]:
    """Read the CSV, resolve ID/time columns and parse timestamps."""
    df = pd.read_csv(args.csv, sep=args.sep)

    id_col = args.id or detect_id_column(df)
    time_col = args.time or detect_timestamp_column(df)
    if id_col is None:
        raise InputSchemaError("Couldn't detect an individual ID column; pass --id <column>.")
    if time_col is None:
        raise InputSchemaError("Couldn't detect a timestamp column; pass --time <column>.")
    if args.id is None or args.time is None:
        logger.info("Using ID column '%s' and timestamp column '%s'", id_col, time_col)

    if time_col in df.columns:
        df = parse_timestamp_column(df, time_col, fmt=args.time_format, tz=args.tz)
    return df, id_col, time_col


# --------------------------------------------------------------------------------------
# Commands
# --------------------------------------------------------------------------------------
def _cmd_settle(args: argparse.Namespace) -> int:
    df, id_col, time_col = _load_fixes(args)
    params = SettleParams(
        min_fixes=args.min_fixes,
        plateau_fraction=args.plateau,
        grid_points=args.grid_points,
        days_origin=args.days_origin,
        maxfev=args.maxfev,
        max_workers=args.workers,
        verbose=args.verbose,
    )
    progress = NullProgress() if args.no_progress else TqdmProgress()

    result = days_to_settle_mcp(
        df, coords=(args.x, args.y), id_col=id_col, time_col=time_col,
        crs=args.crs, params=params, progress=progress,
    )
    if result is None:
        print(f"No valid IDs with at least {params.min_fixes} records.", file=sys.stderr)
        return EXIT_NO_DATA

    print(result.fit.summary_text())
    print()
    print("\n".join(result.curve.annotation))

    if args.outdir:
        archive = save_settle_outputs(result, args.outdir, plot=not args.no_plot)
        print(f"Results: {archive}")
    return 0


def _cmd_disperse(args: argparse.Namespace) -> int:
    df, id_col, time_col = _load_fixes(args)
    disp = disp_dist(df, coords=(args.x, args.y), id_col=id_col, time_col=time_col, crs=args.crs)
    if disp.empty:
        print("No fixes to measure.", file=sys.stderr)
        return EXIT_NO_DATA

    print(disp.to_string(index=False))
    if args.outdir:
        write_dispersal_csv(disp, args.outdir)
    return 0


# --------------------------------------------------------------------------------------
# Parser
# --------------------------------------------------------------------------------------
def _add_input_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--csv", required=True, help="Fix table (CSV)")
    p.add_argument("--sep", default=",", help="Field separator (default ',')")
    p.add_argument("--x", required=True, help="Projected X / easting column")
    p.add_argument("--y", required=True, help="Projected Y / northing column")
    p.add_argument("--id", default=None, help="Individual ID column (auto-detected if omitted)")
    p.add_argument("--time", default=None, help="Timestamp column (auto-detected if omitted)")
    p.add_argument("--time-format", default=None, help="strftime format of the timestamp column")
    p.add_argument("--tz", default=None, help="Timezone for naive timestamps, e.g. 'Asia/Bangkok'")
    p.add_argument("--crs", required=True, help="Projected CRS, e.g. 'EPSG:32648', '32648' or 'UTM 48N'")
    p.add_argument("--outdir", default=None, help="Write result files to this directory")
    p.add_argument("-v", "--verbose", action="store_true", help="Debug logging")


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="settle-hr", description="Time-to-settle from cumulative MCP home ranges")
    sub = p.add_subparsers(dest="cmd", required=True)

    p_settle = sub.add_parser("settle", help="Fit a logistic curve to cumulative MCP area and report settlement day")
    _add_input_args(p_settle)
    p_settle.add_argument("--min-fixes", type=int, default=MIN_FIXES, help="Drop individuals with fewer fixes")
    p_settle.add_argument("--plateau", type=float, default=0.95, help="Fraction of the asymptote that counts as settled")
    p_settle.add_argument("--grid-points", type=int, default=100, help="Prediction grid density")
    p_settle.add_argument("--days-origin", choices=DAYS_ORIGINS, default="first_sample",
                          help="Count days from the first MCP (default) or from the first fix")
    p_settle.add_argument("--maxfev", type=int, default=20_000, help="Optimizer evaluation budget")
    p_settle.add_argument("--workers", type=int, default=1, help="Threads for per-individual hulls")
    p_settle.add_argument("--no-progress", action="store_true", help="Hide the progress bar")
    p_settle.add_argument("--no-plot", action="store_true", help="Skip settlement_curve.png")
    p_settle.set_defaults(func=_cmd_settle)

    p_disp = sub.add_parser("disperse", help="Distance from release location to the centroid of later fixes")
    _add_input_args(p_disp)
    p_disp.set_defaults(func=_cmd_disperse)

    return p


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint."""
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s",
    )
    try:
        return int(args.func(args))
    except (InputSchemaError, FitConvergenceError, ValueError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return EXIT_INPUT


if __name__ == "__main__":
    raise SystemExit(main())
