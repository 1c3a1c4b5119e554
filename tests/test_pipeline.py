import json

import pandas as pd
import pytest

from resproc.errors import MissingInputData
from resproc.pipeline import RunConfig, reduce_runs, run_all

RUNS = {
    63: (1.50, 1050.0),
    64: (1.51, 1070.0),
    65: (1.49, 1040.0),
    66: (2.00, 1750.0),
    67: (2.01, 1760.0),
}


def _write_runs(in_dir, daq_file):
    for run, (speed, drag) in RUNS.items():
        daq_file(in_dir / f"R{run:02d}.dat", speed=speed, drag=drag)


def test_reduce_runs_skips_missing_files(tmp_path, daq_file):
    in_dir = tmp_path / "in"
    _write_runs(in_dir, daq_file)
    cfg = RunConfig(output_dir=str(tmp_path / "out"), input_dir=str(in_dir), start_run=61, end_run=68)
    df, skipped, files = reduce_runs(cfg)
    assert list(df["run"]) == [63.0, 64.0, 65.0, 66.0, 67.0]
    assert sorted(s["run"] for s in skipped) == [61, 62, 68]
    assert all(s["error"] == "MissingInputData" for s in skipped)
    assert (tmp_path / "out" / "_time_series" / "R63.csv").exists()
    assert str(tmp_path / "out" / "full_resistance_data.csv") in files
    assert abs(df.loc[0, "speed"] - 1.5) < 1e-6
    assert df.loc[0, "fs_hz"] == 200


def test_reduce_runs_skips_corrupt_file(tmp_path, daq_file):
    in_dir = tmp_path / "in"
    _write_runs(in_dir, daq_file)
    p = in_dir / "R64.dat"
    lines = p.read_text().splitlines()
    lines[100] = lines[100].replace(lines[100].split()[2], "nan?", 1)
    p.write_text("\n".join(lines) + "\n")
    cfg = RunConfig(output_dir=str(tmp_path / "out"), input_dir=str(in_dir), start_run=63, end_run=65,
                    export_time_series=False)
    df, skipped, _ = reduce_runs(cfg)
    assert list(df["run"]) == [63.0, 65.0]
    assert skipped[0]["run"] == 64
    assert skipped[0]["error"] == "RunDataError"


def test_reduce_runs_without_any_file(tmp_path):
    cfg = RunConfig(output_dir=str(tmp_path / "out"), input_dir=str(tmp_path), start_run=1, end_run=3)
    with pytest.raises(MissingInputData):
        reduce_runs(cfg)


def test_run_all_produces_outputs(tmp_path, daq_file):
    in_dir = tmp_path / "in"
    out_dir = tmp_path / "out"
    _write_runs(in_dir, daq_file)
    cfg = RunConfig(output_dir=str(out_dir), input_dir=str(in_dir), start_run=63, end_run=68)

    summary = run_all(cfg)

    stages = summary["stages"]
    assert stages["reduce"]["runs"] == 5
    assert stages["average"]["conditions"] == [7]
    assert stages["shallow_water"]["status"] == "ok"
    assert stages["shallow_water"]["stations"] == 2
    assert stages["uncertainty"]["stations"] == 2
    # no condition 13 runs in this campaign subset
    assert stages["prohaska"]["status"] == "aborted"
    for rel in [
        "full_resistance_data.csv",
        "full_resistance_data.txt",
        "_averaged/averaged_cond_07.csv",
        "_averaged/minmax_cond_07.csv",
        "_shallow_water/cond_07_tamura.csv",
        "_shallow_water/cond_07_cr_deviation.csv",
        "_uncertainty/uncertainty.csv",
        "_plots/resistance_curves.png",
        "_plots/shallow_water_deviation.png",
        "resistance_summary.xlsx",
        "summary.json",
    ]:
        assert (out_dir / rel).exists(), rel
    data = json.loads((out_dir / "summary.json").read_text())
    assert data["config"]["form_factor_policy"] == "applied"
    assert any(s["stage"] == "reduce" and s["run"] == 68 for s in data["skipped"])
    avg = pd.read_csv(out_dir / "_averaged" / "averaged_cond_07.csv")
    assert list(avg["froude"]) == [0.23, 0.31]


def test_run_all_from_results_table(tmp_path, daq_file):
    in_dir = tmp_path / "in"
    _write_runs(in_dir, daq_file)
    first = run_all(RunConfig(output_dir=str(tmp_path / "a"), input_dir=str(in_dir), start_run=63, end_run=67,
                              enable_plots=False, enable_workbook=False))
    assert not (tmp_path / "a" / "_plots").exists()

    cfg = RunConfig(
        output_dir=str(tmp_path / "b"),
        results_csv=str(tmp_path / "a" / "full_resistance_data.csv"),
        enable_plots=False,
        enable_workbook=False,
        enable_shallow_water=False,
    )
    second = run_all(cfg)
    assert second["stages"]["reduce"]["status"] == "loaded"
    assert "shallow_water" not in second["stages"]
    a = pd.read_csv(tmp_path / "a" / "_uncertainty" / "uncertainty.csv")
    b = pd.read_csv(tmp_path / "b" / "_uncertainty" / "uncertainty.csv")
    assert b["uct"].tolist() == pytest.approx(a["uct"].tolist())
    assert first["stages"]["reduce"]["runs"] == second["stages"]["reduce"]["runs"]


def test_run_config_from_json(tmp_path):
    p = tmp_path / "cfg.json"
    p.write_text(json.dumps({"output_dir": "x", "input_dir": "in", "uncertainty_conditions": [7, 8]}))
    cfg = RunConfig.from_json(p, output_dir=str(tmp_path / "out"), start_run=None)
    assert cfg.output_dir == str(tmp_path / "out")
    assert cfg.input_dir == "in"
    assert cfg.start_run == 1
    assert cfg.uncertainty_conditions == (7, 8)
