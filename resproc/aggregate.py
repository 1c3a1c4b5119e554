from __future__ import annotations
from typing import Iterable
import pandas as pd

from .errors import MissingInputData
from .reduce import AVERAGED_FIELDS, RESULT_FIELDS

MINMAX_FIELDS = [
    "condition", "froude",
    "heave_min", "heave_max", "heave_mid",
    "crm_x1000", "froude_mean",
    "trim_min", "trim_max", "trim_mid",
]


def condition_rows(results: pd.DataFrame, condition: int) -> pd.DataFrame:
    """Rows of the per-run table belonging to ``condition``."""
    if results is None or results.empty:
        raise MissingInputData("Per-run results table is empty", condition=int(condition))
    sel = results[results["condition"] == int(condition)]
    return sel.reset_index(drop=True)


def stats_avg(runs: Iterable[int], results: pd.DataFrame) -> pd.DataFrame:
    """Average repeat runs onto their nominal Froude stations.

    Rows whose run number is in ``runs`` are grouped by the rounded Froude
    number; the speed..condition block is averaged and the run/sampling
    metadata columns are zeroed.  Stations come out in ascending Fr.
    """
    if results is None or results.empty:
        raise MissingInputData("Per-run results table is empty", formula="stats_avg")
    runs = [int(r) for r in runs]
    sel = results[results["run"].isin(runs)]
    if sel.empty:
        raise MissingInputData(
            f"None of runs {runs[0]}..{runs[-1]} are in the results table" if runs else "No runs requested",
            formula="stats_avg",
        )
    avg = sel.groupby("froude", sort=True)[AVERAGED_FIELDS].mean().reset_index(drop=True)
    for col in RESULT_FIELDS[:4]:
        avg.insert(RESULT_FIELDS.index(col), col, 0.0)
    return avg[RESULT_FIELDS[:28]]


def stats_minmax(results: pd.DataFrame, condition: int) -> pd.DataFrame:
    """Heave/trim envelope and mean CRm per Froude station for one condition."""
    rows = condition_rows(results, condition)
    if rows.empty:
        raise MissingInputData(f"No runs for condition {condition}", condition=int(condition))
    out = []
    for fr, grp in rows.groupby("froude", sort=True):
        hmin, hmax = float(grp["heave"].min()), float(grp["heave"].max())
        tmin, tmax = float(grp["trim"].min()), float(grp["trim"].max())
        out.append({
            "condition": float(grp["condition"].iloc[0]),
            "froude": float(fr),
            "heave_min": hmin,
            "heave_max": hmax,
            "heave_mid": (hmin + hmax) / 2.0,
            "crm_x1000": float(grp["crm"].mean()) * 1000.0,
            "froude_mean": float(grp["froude"].mean()),
            "trim_min": tmin,
            "trim_max": tmax,
            "trim_mid": (tmin + tmax) / 2.0,
        })
    return pd.DataFrame(out, columns=MINMAX_FIELDS)
