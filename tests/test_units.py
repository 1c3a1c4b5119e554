import numpy as np
import pytest

from resproc.errors import RunDataError
from resproc.units import channel_stats, time_series_frame, to_real_units, to_voltage, trimmed_window


def test_to_real_units_and_voltage():
    real, mean = to_real_units([1.0, 2.0, 3.0], zero=0.5, cf=2.0)
    assert np.allclose(real, [1.0, 3.0, 5.0])
    assert abs(mean - 3.0) < 1e-12
    volts, vmean = to_voltage([1.0, 2.0, 3.0], zero=0.5)
    assert np.allclose(volts, [0.5, 1.5, 2.5])
    assert abs(vmean - 1.5) < 1e-12


def test_trimmed_window_guard_bands():
    v = np.arange(2000, dtype=float)
    w = trimmed_window(v, head=1000, tail=400)
    # sample 1000 (1-based) through n-400
    assert w[0] == 999.0
    assert w[-1] == 1599.0
    assert w.size == 601


def test_trimmed_window_too_short():
    with pytest.raises(RunDataError):
        trimmed_window(np.ones(1200), head=1000, tail=400)


def test_channel_stats_population_and_deviation_modes():
    v = np.array([1.0, 2.0, 3.0, 6.0])
    st = channel_stats(v, "max")
    assert st.mean == 3.0
    assert abs(st.dev - (6.0 - 3.0) / 6.0) < 1e-12
    assert abs(st.std - np.std(v)) < 1e-12
    assert abs(st.var - 3.5) < 1e-12
    rng = channel_stats(np.array([-2.0, 0.0, 2.0, 4.0]), "range")
    assert abs(rng.dev - abs(4.0 - 1.0) / 6.0) < 1e-12
    assert rng.as_dict("fwd")["fwd_min"] == -2.0


def test_channel_stats_zero_max_gives_nan_deviation():
    st = channel_stats(np.zeros(5), "max")
    assert np.isnan(st.dev)
    with pytest.raises(RunDataError):
        channel_stats(np.array([]))


def test_time_series_frame_columns():
    t = np.array([0.005, 0.01])
    real = {ch: np.array([1.0, 2.0]) for ch in ("speed", "fwd", "aft", "drag")}
    df = time_series_frame(t, real, real)
    assert list(df.columns) == [
        "time_s", "speed_mps", "fwd_mm", "aft_mm", "drag_g",
        "speed_V", "fwd_V", "aft_V", "drag_V",
    ]
