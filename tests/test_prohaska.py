import pandas as pd
import pytest

from resproc.errors import DegenerateSample, MissingInputData
from resproc.prohaska import estimate_form_factor, fit_form_factor


def test_fit_recovers_intercept():
    x = [0.5, 1.0, 2.0, 3.0]
    pts = pd.DataFrame({"x_ittc": x, "y_ittc": [1.15 + 40 * v for v in x]})
    fit = fit_form_factor(pts, "ittc")
    assert fit.form_factor == pytest.approx(1.15)
    assert fit.k == pytest.approx(0.15)
    assert fit.slope == pytest.approx(40.0)
    assert fit.r == pytest.approx(1.0)
    assert fit.n == 4


def test_fit_needs_two_distinct_points():
    with pytest.raises(DegenerateSample):
        fit_form_factor(pd.DataFrame({"x_ittc": [1.0, 1.0], "y_ittc": [2.0, 3.0]}), "ittc")


def test_estimate_from_results():
    fr = [0.10, 0.12, 0.14, 0.16]
    cf_i = [0.0040, 0.0039, 0.0038, 0.0037]
    cf_g = [0.0041, 0.0040, 0.0039, 0.0038]
    ct = [1.2 * c + 30 * f ** 4 for c, f in zip(cf_i, fr)]
    res = pd.DataFrame({
        "run": [232, 233, 234, 235],
        "condition": [13] * 4,
        "froude": fr,
        "ctm": ct,
        "cfm_ittc": cf_i,
        "cfm_grigson": cf_g,
    })
    est = estimate_form_factor(res)
    assert set(est["fits"]) == {"ittc", "grigson"}
    assert est["fits"]["ittc"].form_factor == pytest.approx(1.2)
    assert est["fits"]["ittc"].slope == pytest.approx(30.0)
    assert len(est["points"]) == 4
    with pytest.raises(MissingInputData):
        estimate_form_factor(res, condition=7)
