from __future__ import annotations
from dataclasses import dataclass
import numpy as np
import pandas as pd

from .errors import DegenerateSample, MissingInputData

PROHASKA_CONDITION = 13


@dataclass
class ProhaskaFit:
    formulation: str    # "ittc" | "grigson"
    form_factor: float  # (1+k), intercept of CT/CF against Fr^4/CF
    slope: float
    r: float            # Pearson correlation of the points
    n: int

    @property
    def k(self) -> float:
        return self.form_factor - 1.0


def prohaska_points(rows: pd.DataFrame) -> pd.DataFrame:
    """x = Fr^4/CFm and y = CTm/CFm for both friction lines."""
    out = pd.DataFrame({"run": rows["run"].to_numpy(), "froude": rows["froude"].to_numpy()})
    for form in ("ittc", "grigson"):
        cf = rows[f"cfm_{form}"].to_numpy(dtype=float)
        out[f"x_{form}"] = rows["froude"].to_numpy(dtype=float) ** 4 / cf
        out[f"y_{form}"] = rows["ctm"].to_numpy(dtype=float) / cf
    return out


def fit_form_factor(points: pd.DataFrame, formulation: str = "ittc") -> ProhaskaFit:
    """Least-squares Prohaska line; the intercept is (1+k).

    Worked example
    --------------
    points on y = 1.15 + 40 x  ->  form_factor = 1.15, k = 0.15, r = 1
    """
    x = points[f"x_{formulation}"].to_numpy(dtype=float)
    y = points[f"y_{formulation}"].to_numpy(dtype=float)
    if x.size < 2 or np.ptp(x) == 0:
        raise DegenerateSample(
            f"Prohaska fit needs 2 distinct points, got {x.size}", formula="prohaska"
        )
    slope, intercept = np.polyfit(x, y, 1)
    r = float(np.corrcoef(x, y)[0, 1])
    return ProhaskaFit(formulation, float(intercept), float(slope), r, int(x.size))


def estimate_form_factor(results: pd.DataFrame, condition: int = PROHASKA_CONDITION) -> dict:
    """Fit both friction lines to the Prohaska runs of ``condition``."""
    rows = results[results["condition"] == int(condition)]
    if rows.empty:
        raise MissingInputData(f"No Prohaska runs for condition {condition}", condition=int(condition))
    pts = prohaska_points(rows)
    fits = {form: fit_form_factor(pts, form) for form in ("ittc", "grigson")}
    return {"points": pts, "fits": fits}
