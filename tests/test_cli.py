import json

from resproc import cli


def _write_runs(in_dir, daq_file):
    for run, speed, drag in [(63, 1.50, 1050.0), (64, 1.51, 1070.0), (65, 1.49, 1040.0)]:
        daq_file(in_dir / f"R{run:02d}.dat", speed=speed, drag=drag)


def test_cli_reduce_then_uncertainty(tmp_path, capsys, daq_file):
    in_dir = tmp_path / "in"
    out_dir = tmp_path / "out"
    _write_runs(in_dir, daq_file)

    rc = cli.main(["reduce", "--input-dir", str(in_dir), "--out", str(out_dir),
                   "--start", "63", "--end", "65", "--no-time-series"])
    data = json.loads(capsys.readouterr().out)
    assert rc == 0
    assert data["ok"] is True
    assert data["runs"] == 3
    assert not (out_dir / "_time_series").exists()

    results = out_dir / "full_resistance_data.csv"
    rc = cli.main(["uncertainty", "--results", str(results), "--out", str(tmp_path / "ua"), "--condition", "7"])
    data = json.loads(capsys.readouterr().out)
    assert rc == 0
    assert data["stations"] == 1
    assert (tmp_path / "ua" / "uncertainty.csv").exists()

    rc = cli.main(["average", "--results", str(results), "--out", str(tmp_path / "avg")])
    data = json.loads(capsys.readouterr().out)
    assert data["conditions"] == [7]
    assert (tmp_path / "avg" / "averaged_cond_07.txt").exists()


def test_cli_shallow_water_writes_all_tables(tmp_path, capsys, daq_file):
    in_dir = tmp_path / "in"
    out_dir = tmp_path / "out"
    _write_runs(in_dir, daq_file)
    cli.main(["reduce", "--input-dir", str(in_dir), "--out", str(out_dir), "--start", "63", "--end", "65"])
    capsys.readouterr()

    sw_dir = tmp_path / "sw"
    rc = cli.main(["shallow-water", "--results", str(out_dir / "full_resistance_data.csv"), "--out", str(sw_dir)])
    data = json.loads(capsys.readouterr().out)
    assert rc == 0
    assert data["stations"] == 1
    for stem in ["uncorrected", "tamura", "schuster", "scott", "cr_deviation", "rts_differences", "speed_ratios"]:
        assert (sw_dir / f"cond_07_{stem}.csv").exists(), stem
    assert str(sw_dir / "cond_07_speed_ratios.csv") in data["files"]


def test_cli_missing_results_table(tmp_path, capsys):
    rc = cli.main(["average", "--results", str(tmp_path / "absent.csv"), "--out", str(tmp_path)])
    data = json.loads(capsys.readouterr().out)
    assert rc == 2
    assert data["ok"] is False
    assert data["error"] == "MissingInputData"


def test_cli_run_without_inputs(tmp_path, capsys):
    rc = cli.main(["run", "--out", str(tmp_path / "out")])
    data = json.loads(capsys.readouterr().out)
    assert rc == 2
    assert data["ok"] is False
