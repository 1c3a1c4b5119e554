from __future__ import annotations
import argparse, json, logging, sys
from dataclasses import asdict
from pathlib import Path

from .aggregate import stats_avg, stats_minmax
from .campaign import DEFAULT_CONSTANTS
from .errors import MissingInputData, ResprocError
from .io import load_results_table, write_table
from .pipeline import RunConfig, reduce_runs, run_all
from .prohaska import estimate_form_factor
from .shallow_water import ShallowWaterCorrector
from .uncertainty import UNCERTAINTY_CONDITIONS, UncertaintyAnalyzer

logger = logging.getLogger(__name__)


def build_parser():
    p = argparse.ArgumentParser(prog="resproc", description="Towing tank resistance data reduction")
    p.add_argument("-v", "--verbose", action="count", default=0, help="-v info, -vv debug")
    sub = p.add_subparsers(dest="cmd", required=True)

    r = sub.add_parser("reduce", help="Reduce raw run files to the per-run results table")
    r.add_argument("--input-dir", required=True, help="Folder holding R<nn>.run/ or R<nn>.dat files")
    r.add_argument("--out", required=True)
    r.add_argument("--start", type=int, default=1, help="First run number")
    r.add_argument("--end", type=int, default=249, help="Last run number")
    r.add_argument("--policy", choices=["applied", "bare"], default="applied",
                   help="Form factor in CR = CT - (1+k)CF: applied (1+k=1.18) or bare (1)")
    r.add_argument("--no-time-series", action="store_true", help="Skip per-run time series export")

    a = sub.add_parser("average", help="Average repeat runs per Froude station")
    a.add_argument("--results", required=True, help="Per-run results table")
    a.add_argument("--out", required=True)
    a.add_argument("--condition", type=int, action="append", help="Condition id (repeatable); default all")

    s = sub.add_parser("shallow-water", help="Tamura/Schuster/Scott corrections of averaged data")
    s.add_argument("--results", required=True)
    s.add_argument("--out", required=True)
    s.add_argument("--condition", type=int, default=7)
    s.add_argument("--policy", choices=["applied", "bare"], default="applied")

    u = sub.add_parser("uncertainty", help="ITTC bias/precision uncertainty per Froude station")
    u.add_argument("--results", required=True)
    u.add_argument("--out", required=True)
    u.add_argument("--condition", type=int, action="append", help="Condition id (repeatable); default 7-12")

    f = sub.add_parser("prohaska", help="Prohaska form factor from condition 13")
    f.add_argument("--results", required=True)
    f.add_argument("--out", required=True)
    f.add_argument("--condition", type=int, default=13)

    run = sub.add_parser("run", help="All stages: reduce, average, shallow water, uncertainty, Prohaska")
    run.add_argument("--input-dir", default=None)
    run.add_argument("--results", default=None, help="Start from an existing results table instead of run files")
    run.add_argument("--out", required=True)
    run.add_argument("--config", help="JSON file with RunConfig fields")
    run.add_argument("--start", type=int, default=None)
    run.add_argument("--end", type=int, default=None)
    run.add_argument("--policy", choices=["applied", "bare"], default=None)
    run.add_argument("--no-plots", action="store_true")
    run.add_argument("--no-workbook", action="store_true")
    return p


def _run_config(a) -> RunConfig:
    overrides = {
        "input_dir": a.input_dir,
        "output_dir": a.out,
        "results_csv": a.results,
        "start_run": a.start,
        "end_run": a.end,
        "form_factor_policy": a.policy,
    }
    if a.config:
        cfg = RunConfig.from_json(Path(a.config), **overrides)
    else:
        cfg = RunConfig(**{k: v for k, v in overrides.items() if v is not None})
    if a.no_plots:
        cfg.enable_plots = False
    if a.no_workbook:
        cfg.enable_workbook = False
    return cfg


def _dispatch(a) -> dict:
    if a.cmd == "reduce":
        cfg = RunConfig(
            input_dir=a.input_dir,
            output_dir=a.out,
            start_run=a.start,
            end_run=a.end,
            form_factor_policy=a.policy,
            export_time_series=not a.no_time_series,
        )
        df, skipped, files = reduce_runs(cfg)
        return {"ok": True, "runs": int(len(df)), "skipped": skipped, "files": files}

    results = load_results_table(Path(a.results))
    out = Path(a.out)
    if a.cmd == "average":
        conds = a.condition or sorted({int(c) for c in results["condition"].unique()})
        files = []
        for cond in conds:
            avg = stats_avg(DEFAULT_CONSTANTS.runs_for_condition(cond), results)
            files += write_table(avg, out, f"averaged_cond_{cond:02d}")
            files += write_table(stats_minmax(results, cond), out, f"minmax_cond_{cond:02d}")
        return {"ok": True, "conditions": list(conds), "files": files}
    if a.cmd == "shallow-water":
        avg = stats_avg(DEFAULT_CONSTANTS.runs_for_condition(a.condition), results)
        sw = ShallowWaterCorrector(DEFAULT_CONSTANTS, a.condition, a.policy).correct(avg)
        files = []
        for name, df in sw.tables.items():
            files += write_table(df, out, f"cond_{a.condition:02d}_{name}")
        files += write_table(sw.deviations, out, f"cond_{a.condition:02d}_cr_deviation")
        files += write_table(sw.differences, out, f"cond_{a.condition:02d}_rts_differences")
        files += write_table(sw.speed_ratios, out, f"cond_{a.condition:02d}_speed_ratios")
        return {"ok": True, "stations": int(len(avg)), "skipped": sw.skipped, "files": files}
    if a.cmd == "uncertainty":
        ua = UncertaintyAnalyzer(DEFAULT_CONSTANTS).analyze(results, a.condition or UNCERTAINTY_CONDITIONS)
        files = write_table(ua.table, out, "uncertainty")
        return {"ok": True, "stations": int(len(ua.table)), "skipped": ua.skipped, "files": files}
    if a.cmd == "prohaska":
        est = estimate_form_factor(results, a.condition)
        files = write_table(est["points"], out, "prohaska_points")
        fits = {k: dict(asdict(v), k=v.k) for k, v in est["fits"].items()}
        return {"ok": True, "fits": fits, "files": files}
    raise ValueError(f"Unknown command: {a.cmd}")


def main(argv=None):
    ap = build_parser()
    a = ap.parse_args(argv)
    level = logging.WARNING - 10 * min(a.verbose, 2)
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")
    try:
        if a.cmd == "run":
            res = run_all(_run_config(a))
            res = {"ok": True, **res}
        else:
            res = _dispatch(a)
    except MissingInputData as e:
        logger.error("%s", e)
        print(json.dumps({"ok": False, **e.context()}, indent=2))
        return 2
    except ResprocError as e:
        logger.error("%s", e)
        print(json.dumps({"ok": False, **e.context()}, indent=2))
        return 1
    print(json.dumps(res, indent=2, default=str))
    return 0


if __name__ == "__main__":
    sys.exit(main())
