from __future__ import annotations
import logging
from pathlib import Path
from typing import Dict, List, Optional
import numpy as np
import pandas as pd

from .errors import MissingInputData, RunDataError
from .reduce import RESULT_FIELDS, RunRecord
from .units import CHANNELS, to_real_units, to_voltage

logger = logging.getLogger(__name__)

# Tank DAQ export: 16 header lines before the zero/CF block, 22 before data
CALIB_HEADER_LINES = 16
DATA_HEADER_LINES = 22
MIN_RESULT_COLUMNS = 28


def run_file_path(input_dir: Path, run: int) -> Path:
    """Locate the moving-phase export for ``run`` under ``input_dir``.

    Accepts the DAQ layout ``R07.run/RR07-02_moving.dat`` or a flat
    ``R07.dat``.
    """
    input_dir = Path(input_dir)
    tag = f"{int(run):02d}"
    candidates = [
        input_dir / f"R{tag}.run" / f"RR{tag}-02_moving.dat",
        input_dir / f"R{tag}.dat",
    ]
    for p in candidates:
        if p.exists():
            return p
    raise MissingInputData(f"No run file for run {run} under {input_dir}", run=int(run))


def _is_number(tok: str) -> bool:
    try:
        float(tok)
    except ValueError:
        return False
    return True


def read_calibration(path: Path, header_lines: int = CALIB_HEADER_LINES, data_header_lines: int = DATA_HEADER_LINES) -> Dict[str, tuple]:
    """Zero offsets and calibration factors from the DAQ header block.

    The block is a small numeric matrix (zeros row, CF row) read column by
    column: time zero, time CF, then zero/CF for each of the four channels.
    Text lines between the block and the samples end it.
    """
    try:
        block = pd.read_csv(
            path,
            sep=r"\s+",
            skiprows=header_lines,
            nrows=data_header_lines - header_lines,
            header=None,
            on_bad_lines="skip",
        )
    except pd.errors.EmptyDataError:
        raise RunDataError(f"No zero/calibration block in {path}", formula="read_calibration")
    num = block.apply(pd.to_numeric, errors="coerce")
    ok = num.notna().all(axis=1).to_numpy()
    n_ok = ok.size if ok.all() else int(np.argmin(ok))
    rows = num.iloc[:n_ok]
    if rows.empty:
        raise RunDataError(f"Unreadable zero/calibration block in {path}", formula="read_calibration")
    vals = rows.to_numpy(dtype=float).ravel(order="F")
    if vals.size < 10:
        raise RunDataError(
            f"Zero/calibration block in {path} has {vals.size} values, expected 10",
            formula="read_calibration",
        )
    out = {"time": (vals[0], vals[1])}
    for i, ch in enumerate(CHANNELS):
        out[ch] = (vals[2 + 2 * i], vals[3 + 2 * i])
    return out


def load_run_file(path: Path, run: int, condition: Optional[int] = None, header_lines: int = DATA_HEADER_LINES) -> RunRecord:
    """Read one run export and convert it to physical units.

    Columns are time, speed, fwd LVDT, aft LVDT, drag (whitespace separated).
    """
    path = Path(path)
    if not path.exists():
        raise MissingInputData(f"Run file not found: {path}", run=int(run))
    calib = read_calibration(path, data_header_lines=header_lines)
    df = pd.read_csv(path, sep=r"\s+", skiprows=header_lines, header=None)
    if df.shape[1] < 5:
        raise RunDataError(f"Expected 5 channel columns in {path}, found {df.shape[1]}", run=int(run))
    data = df.iloc[:, :5].apply(pd.to_numeric, errors="coerce")
    if data.empty:
        raise RunDataError(f"No samples in {path}", run=int(run))
    bad = data.isna().any(axis=1)
    if bad.any():
        first = int(bad.to_numpy().argmax()) + 1
        raise RunDataError(
            f"{int(bad.sum())} non-numeric sample rows in {path} (first is sample {first})",
            run=int(run), formula="load_run_file",
        )
    real, volts = {}, {}
    for i, ch in enumerate(CHANNELS, start=1):
        zero, cf = calib[ch]
        real[ch], _ = to_real_units(data.iloc[:, i].to_numpy(), zero, cf)
        volts[ch], _ = to_voltage(data.iloc[:, i].to_numpy(), zero)
    logger.debug("Loaded run %s: %d samples from %s", run, len(data), path)
    return RunRecord(
        run=int(run),
        time=data.iloc[:, 0].to_numpy(dtype=float),
        channels=real,
        condition=condition,
        volts=volts,
    )


def load_results_table(path: Path) -> pd.DataFrame:
    """Read a per-run results table.

    Accepts the headed CSV written by :func:`write_table` or a legacy
    header-less comma-delimited export with 28 to 57 positional columns.
    Placeholder rows with run number 0 are dropped.
    """
    path = Path(path)
    if not path.exists():
        raise MissingInputData(f"Base results table not found: {path}", formula="load_results_table")
    head = pd.read_csv(path, header=None, nrows=1)
    if head.empty:
        raise MissingInputData(f"Base results table is empty: {path}")
    if _is_number(str(head.iloc[0, 0])):
        df = pd.read_csv(path, header=None)
        ncol = df.shape[1]
        if ncol < MIN_RESULT_COLUMNS:
            raise MissingInputData(
                f"{path} has {ncol} columns; at least {MIN_RESULT_COLUMNS} are required"
            )
        df = df.iloc[:, : len(RESULT_FIELDS)]
        df.columns = RESULT_FIELDS[: df.shape[1]]
    else:
        df = pd.read_csv(path)
        missing = [c for c in RESULT_FIELDS[:MIN_RESULT_COLUMNS] if c not in df.columns]
        if missing:
            raise MissingInputData(f"{path} lacks required columns: {missing}")
    df = df[df["run"] != 0].reset_index(drop=True)
    return df


def write_table(df: pd.DataFrame, outdir: Path, stem: str) -> List[str]:
    """Write ``stem.csv`` (comma, full precision) and ``stem.txt`` (tab, 4 s.f.)."""
    outdir = Path(outdir)
    outdir.mkdir(parents=True, exist_ok=True)
    csv_path = outdir / f"{stem}.csv"
    txt_path = outdir / f"{stem}.txt"
    df.to_csv(csv_path, index=False)
    df.to_csv(txt_path, index=False, sep="\t", float_format="%.4g")
    return [str(csv_path), str(txt_path)]


def write_workbook(tables: Dict[str, pd.DataFrame], path: Path) -> str:
    """Collect result tables into one ``.xlsx`` workbook, one sheet per table."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with pd.ExcelWriter(path, engine="openpyxl") as xw:
        for name, df in tables.items():
            df.to_excel(xw, sheet_name=name[:31], index=False)
    return str(path)
