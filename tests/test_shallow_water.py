import math

import pandas as pd
import pytest

from resproc.aggregate import stats_avg
from resproc.campaign import DEFAULT_CONSTANTS
from resproc.errors import UnsupportedRegime
from resproc.reduce import RunReducer, results_frame
from resproc.shallow_water import CORRECTED_FIELDS, SCHEMES, ShallowWaterCorrector, scott_k1, scott_k2


def _averaged():
    r = RunReducer()
    recs = [
        r.reduce_means(63, 7, speed=1.50, fwd=10.0, aft=6.0, drag_g=1050.0),
        r.reduce_means(64, 7, speed=1.51, fwd=10.0, aft=6.0, drag_g=1060.0),
        r.reduce_means(65, 7, speed=2.00, fwd=14.0, aft=4.0, drag_g=1750.0),
        r.reduce_means(66, 7, speed=2.01, fwd=14.0, aft=4.0, drag_g=1760.0),
    ]
    return stats_avg(range(63, 142), results_frame(recs))


def test_scott_k1_bands():
    assert scott_k1(5.0e6, 0.07) == pytest.approx(-1e-9 * 5.0e6 + 1.9005)
    assert scott_k1(5.8e6, 0.07) == pytest.approx(-1e-9 * 5.8e6 + 1.9005)
    assert scott_k1(6.0e6, 0.07) == pytest.approx(-1e-7 * 6.0e6 + 2.4732)
    # ratios of 0.9 and above use the high band
    assert scott_k1(4.0e6, 0.95) == pytest.approx(-5e-10 * 4.0e6 + 1.2935)
    assert scott_k1(1.0e7, 1.2) == pytest.approx(-4e-8 * 1.0e7 + 1.1928)


def test_scott_k1_out_of_range():
    with pytest.raises(UnsupportedRegime):
        scott_k1(2.5e7, 0.07)
    with pytest.raises(UnsupportedRegime):
        scott_k1(1.71e7, 1.2)


def test_scott_k2():
    assert scott_k2(0.20) == 0.0
    assert scott_k2(0.40) == 0.0
    assert scott_k2(0.30) == pytest.approx(2.4 * 0.08 ** 2)


def test_blockage_ratios():
    corr = ShallowWaterCorrector(DEFAULT_CONSTANTS, 7)
    assert corr.area_ratio == pytest.approx(0.024 / (1.45 * 3.5))
    vol = 74.47 * 2 / 998.5048
    assert corr.displacement_length_ratio == pytest.approx(0.592 * vol ** (1 / 3) / 4.30)
    fh = 1.5 / math.sqrt(9.806 * 1.45)
    expected = 0.67 * corr.area_ratio * (4.30 / 3.5) ** 0.75 / (1 - fh ** 2)
    assert corr.tamura_ratio(1.5) == pytest.approx(expected)


def test_geometry_without_section_area_rejected():
    with pytest.raises(UnsupportedRegime):
        ShallowWaterCorrector(DEFAULT_CONSTANTS, 13)


def test_correct_produces_all_tables():
    avg = _averaged()
    sw = ShallowWaterCorrector(DEFAULT_CONSTANTS, 7).correct(avg)
    assert set(sw.tables) == {"uncorrected", *SCHEMES}
    for name, df in sw.tables.items():
        assert list(df.columns) == CORRECTED_FIELDS
        assert len(df) == 2, name
    assert sw.skipped == []
    unc = sw.tables["uncorrected"]
    # catamaran: both demihulls, transom-corrected area above Fr 0.3
    assert unc.loc[0, "rtm"] == pytest.approx(2 * avg.loc[0, "rtm"])
    wsa_hi = 2 * 1.486
    assert unc.loc[1, "ctm"] == pytest.approx(
        unc.loc[1, "rtm"] / (0.5 * DEFAULT_CONSTANTS.rho_fresh * wsa_hi * unc.loc[1, "speed"] ** 2)
    )
    assert (unc["crs_grigson"] == unc["crm_grigson"]).all()


def test_corrections_raise_speed_and_keep_ship_speed():
    sw = ShallowWaterCorrector(DEFAULT_CONSTANTS, 7).correct(_averaged())
    unc = sw.tables["uncorrected"]
    for scheme in SCHEMES:
        df = sw.tables[scheme]
        # corrected speed raises Re; ship speed is unchanged
        assert (df["rem"] > unc["rem"]).all()
        assert df["fs_speed"].tolist() == pytest.approx(unc["fs_speed"].tolist())
        assert (df["crm_grigson"] < unc["crm_grigson"]).all()
    assert (sw.speed_ratios["tamura"] > 0).all()
    assert set(sw.differences.columns) == {"froude", "fs_speed_kn", *SCHEMES}
    row = sw.deviations.iloc[0]
    expected = (row["crm_grigson"] - row["tamura_crm_grigson"]) / row["tamura_crm_grigson"]
    assert row["tamura_dev_grigson"] == pytest.approx(expected)


def test_scheme_failure_is_recorded_per_station():
    avg = _averaged()
    fast = avg.copy()
    # 5 m/s puts model Re past the last Scott band
    fast.loc[1, "speed"] = 5.0
    fast.loc[1, "froude"] = 0.77
    sw = ShallowWaterCorrector(DEFAULT_CONSTANTS, 7).correct(fast)
    assert len(sw.tables["uncorrected"]) == 2
    assert len(sw.tables["tamura"]) == 2
    assert len(sw.tables["scott"]) == 1
    scott = [s for s in sw.skipped if s["scheme"] == "scott"]
    assert len(scott) == 1
    assert scott[0]["error"] == "UnsupportedRegime"
    assert scott[0]["condition"] == 7
    assert scott[0]["froude"] == 0.77
    assert pd.isna(sw.deviations.loc[1, "scott_dev_grigson"])
    assert not pd.isna(sw.deviations.loc[1, "tamura_dev_grigson"])


def test_schuster_ratio_at_fixed_point():
    corr = ShallowWaterCorrector(DEFAULT_CONSTANTS, 7)
    speed, rtm, wsa = 1.5, 20.0, 3.002
    m = 0.024 / (1.45 * 3.5)
    fh = 1.5 / math.sqrt(9.806 * 1.45)
    re = 1.5 * 4.30 / 1.0411e-6
    L = math.log10(math.log10(re))
    cf_g = 10 ** (2.98651 - 10.8843 * L + 5.15283 * L ** 2)
    cf_i = 0.075 / (math.log10(re) - 2) ** 2
    q = 0.5 * 998.5048 * wsa * speed ** 2
    expected_g = m / (1 - m - fh ** 2) + (1 - cf_g * q / rtm) * (2 / 3) * fh ** 10
    expected_i = m / (1 - m - fh ** 2) + (1 - cf_i * q / rtm) * (2 / 3) * fh ** 10
    got_g, got_i = corr.schuster_ratios(speed, rtm, wsa)
    assert got_g == pytest.approx(expected_g, rel=1e-9)
    assert got_i == pytest.approx(expected_i, rel=1e-9)
    assert got_g == pytest.approx(0.005681, rel=5e-3)


def test_scott_ratio_at_fixed_point():
    corr = ShallowWaterCorrector(DEFAULT_CONSTANTS, 7)
    vol = 74.47 * 2 / 998.5048
    re = 1.5 * 4.30 / 1.0411e-6
    # low displacement-length band, second Re fit
    k1 = -1e-7 * re + 2.4732
    k2 = 2.4 * (0.23 - 0.22) ** 2
    hb = (1.45 * 3.5) ** -1.5
    expected = k1 * vol * hb + (4.5 / 21.6) * 4.30 ** 2 * k2 * hb
    got = corr.scott_ratio(1.5, 0.23)
    assert got == pytest.approx(expected, rel=1e-9)
    assert got == pytest.approx(0.024265, rel=5e-3)
