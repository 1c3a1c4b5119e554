"""Batch orchestrator: run files -> results table -> averaged/corrected/UA tables."""

from __future__ import annotations

from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple
import json
import logging
import pandas as pd

from .aggregate import stats_avg, stats_minmax
from .campaign import CampaignConstants, DEFAULT_CONSTANTS
from .errors import MissingInputData, ResprocError
from .io import load_results_table, load_run_file, run_file_path, write_table, write_workbook
from .prohaska import PROHASKA_CONDITION, estimate_form_factor
from .reduce import RunReducer, results_frame
from .report import (
    plot_fs_differences,
    plot_prohaska,
    plot_resistance_curves,
    plot_shallow_water_deviation,
    plot_uncertainty,
)
from .shallow_water import ShallowWaterCorrector
from .uncertainty import UNCERTAINTY_CONDITIONS, UncertaintyAnalyzer
from .units import time_series_frame

logger = logging.getLogger(__name__)

BASE_TABLE_STEM = "full_resistance_data"


@dataclass
class RunConfig:
    """Inputs required to run :func:`run_all`.

    ``results_csv`` skips the reduction stage and starts from an existing
    per-run table (headed CSV or legacy header-less export).
    """

    output_dir: str
    input_dir: Optional[str] = None
    start_run: int = 1
    end_run: int = 249
    results_csv: Optional[str] = None
    form_factor_policy: str = "applied"     # "applied" | "bare"
    export_time_series: bool = True
    enable_averaging: bool = True
    enable_shallow_water: bool = True
    enable_uncertainty: bool = True
    enable_prohaska: bool = True
    enable_plots: bool = True
    enable_workbook: bool = True
    shallow_water_condition: int = 7
    uncertainty_conditions: Tuple[int, ...] = UNCERTAINTY_CONDITIONS

    @classmethod
    def from_json(cls, path: Path, **overrides) -> "RunConfig":
        data = json.loads(Path(path).read_text())
        data.update({k: v for k, v in overrides.items() if v is not None})
        if "uncertainty_conditions" in data:
            data["uncertainty_conditions"] = tuple(int(c) for c in data["uncertainty_conditions"])
        return cls(**data)


def reduce_runs(cfg: RunConfig, constants: CampaignConstants = DEFAULT_CONSTANTS) -> Tuple[pd.DataFrame, List[dict], List[str]]:
    """Reduce runs ``start_run..end_run``; returns (table, skipped, files)."""
    if not cfg.input_dir:
        raise MissingInputData("No input directory given for run files")
    reducer = RunReducer(constants, cfg.form_factor_policy)
    out_dir = Path(cfg.output_dir)
    records: List[Dict[str, float]] = []
    skipped: List[dict] = []
    files: List[str] = []
    for run in range(int(cfg.start_run), int(cfg.end_run) + 1):
        try:
            path = run_file_path(Path(cfg.input_dir), run)
            rr = load_run_file(path, run, condition=constants.condition_for_run(run))
            records.append(reducer.reduce(rr))
        except MissingInputData as e:
            logger.info("Run %s: no file, skipped", run)
            skipped.append(e.context())
            continue
        except ResprocError as e:
            e.with_context(run=run)
            logger.warning("Run %s aborted: %s", run, e)
            skipped.append(e.context())
            continue
        if cfg.export_time_series:
            ts = time_series_frame(rr.time, rr.channels, rr.volts)
            ts_dir = out_dir / "_time_series"
            ts_dir.mkdir(parents=True, exist_ok=True)
            p = ts_dir / f"R{run:02d}.csv"
            ts.to_csv(p, index=False)
            files.append(str(p))
    if not records:
        raise MissingInputData(
            f"No run could be reduced in {cfg.start_run}..{cfg.end_run} under {cfg.input_dir}"
        )
    df = results_frame(records)
    files += write_table(df, out_dir, BASE_TABLE_STEM)
    logger.info("Reduced %d runs (%d skipped)", len(df), len(skipped))
    return df, skipped, files


def run_all(cfg: RunConfig, constants: CampaignConstants = DEFAULT_CONSTANTS) -> Dict[str, Any]:
    """Execute every enabled stage and write tables, plots and ``summary.json``."""
    logger.info("Run start: input=%s output=%s runs=%s..%s", cfg.input_dir, cfg.output_dir, cfg.start_run, cfg.end_run)
    out_dir = Path(cfg.output_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    files: List[str] = []
    skipped: List[dict] = []
    stages: Dict[str, Any] = {}
    workbook: Dict[str, pd.DataFrame] = {}

    if cfg.results_csv:
        results = load_results_table(Path(cfg.results_csv))
        stages["reduce"] = {"status": "loaded", "source": str(cfg.results_csv), "runs": int(len(results))}
    else:
        results, red_skipped, red_files = reduce_runs(cfg, constants)
        files += red_files
        skipped += [dict(s, stage="reduce") for s in red_skipped]
        stages["reduce"] = {"status": "ok", "runs": int(len(results)), "skipped": len(red_skipped)}
    workbook["full_resistance_data"] = results

    averaged: Dict[int, pd.DataFrame] = {}
    if cfg.enable_averaging or cfg.enable_shallow_water:
        avg_dir = out_dir / "_averaged"
        for cond in sorted({int(c) for c in results["condition"].unique()}):
            try:
                averaged[cond] = stats_avg(constants.runs_for_condition(cond), results)
            except ResprocError as e:
                logger.warning("Averaging of condition %s skipped: %s", cond, e)
                skipped.append(dict(e.context(), stage="average"))
                continue
            if cfg.enable_averaging:
                files += write_table(averaged[cond], avg_dir, f"averaged_cond_{cond:02d}")
                files += write_table(stats_minmax(results, cond), avg_dir, f"minmax_cond_{cond:02d}")
                workbook[f"avg_cond_{cond:02d}"] = averaged[cond]
        stages["average"] = {"status": "ok", "conditions": sorted(averaged)}

    if cfg.enable_shallow_water:
        stages["shallow_water"] = _shallow_water_stage(cfg, constants, averaged, out_dir, files, skipped, workbook)

    if cfg.enable_uncertainty:
        ua = UncertaintyAnalyzer(constants).analyze(results, cfg.uncertainty_conditions)
        skipped += [dict(s, stage="uncertainty") for s in ua.skipped]
        files += write_table(ua.table, out_dir / "_uncertainty", "uncertainty")
        workbook["uncertainty"] = ua.table
        if cfg.enable_plots and not ua.table.empty:
            files.append(plot_uncertainty(out_dir / "_plots", ua.table))
        stages["uncertainty"] = {"status": "ok", "stations": int(len(ua.table)), "skipped": len(ua.skipped)}

    if cfg.enable_prohaska:
        stages["prohaska"] = _prohaska_stage(cfg, results, out_dir, files, skipped)

    if cfg.enable_plots and averaged:
        files.append(plot_resistance_curves(out_dir / "_plots", averaged))

    if cfg.enable_workbook:
        files.append(write_workbook(workbook, out_dir / "resistance_summary.xlsx"))

    summary = {
        "config": {k: (list(v) if isinstance(v, tuple) else v) for k, v in asdict(cfg).items()},
        "stages": stages,
        "skipped": skipped,
        "files": files,
    }
    summary_path = out_dir / "summary.json"
    summary["files"].append(str(summary_path))
    summary_path.write_text(json.dumps(summary, indent=2, default=str))
    logger.info("Run complete: %d files, %d skipped records", len(files), len(skipped))
    return summary


def _shallow_water_stage(cfg, constants, averaged, out_dir, files, skipped, workbook) -> Dict[str, Any]:
    cond = int(cfg.shallow_water_condition)
    if cond not in averaged:
        logger.error("Shallow water stage aborted: no averaged data for condition %s", cond)
        return {"status": "aborted", "reason": f"no averaged data for condition {cond}"}
    try:
        corr = ShallowWaterCorrector(constants, cond, cfg.form_factor_policy)
        sw = corr.correct(averaged[cond])
    except ResprocError as e:
        logger.error("Shallow water stage aborted: %s", e)
        skipped.append(dict(e.context(), stage="shallow_water"))
        return {"status": "aborted", "reason": str(e)}
    sw_dir = out_dir / "_shallow_water"
    for name, df in sw.tables.items():
        files.extend(write_table(df, sw_dir, f"cond_{cond:02d}_{name}"))
        workbook[f"sw_{name}"] = df
    files.extend(write_table(sw.deviations, sw_dir, f"cond_{cond:02d}_cr_deviation"))
    files.extend(write_table(sw.differences, sw_dir, f"cond_{cond:02d}_rts_differences"))
    files.extend(write_table(sw.speed_ratios, sw_dir, f"cond_{cond:02d}_speed_ratios"))
    skipped.extend(dict(s, stage="shallow_water") for s in sw.skipped)
    if cfg.enable_plots and not sw.deviations.empty:
        files.append(plot_shallow_water_deviation(out_dir / "_plots", sw.deviations))
        files.append(plot_fs_differences(out_dir / "_plots", sw.differences))
    return {
        "status": "ok",
        "condition": cond,
        "area_ratio": corr.area_ratio,
        "displacement_length_ratio": corr.displacement_length_ratio,
        "stations": int(len(sw.tables["uncorrected"])),
        "skipped": len(sw.skipped),
    }


def _prohaska_stage(cfg, results, out_dir, files, skipped) -> Dict[str, Any]:
    try:
        est = estimate_form_factor(results, PROHASKA_CONDITION)
    except ResprocError as e:
        logger.warning("Prohaska stage aborted: %s", e)
        skipped.append(dict(e.context(), stage="prohaska"))
        return {"status": "aborted", "reason": str(e)}
    pr_dir = out_dir / "_prohaska"
    files.extend(write_table(est["points"], pr_dir, "prohaska_points"))
    fits = {k: dict(asdict(v), k=v.k) for k, v in est["fits"].items()}
    p = pr_dir / "prohaska_fit.json"
    p.write_text(json.dumps(fits, indent=2))
    files.append(str(p))
    if cfg.enable_plots:
        files.append(plot_prohaska(out_dir / "_plots", est["points"], est["fits"]))
    return {"status": "ok", "fits": fits}
