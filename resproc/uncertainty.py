"""ITTC multiple-test uncertainty of the total resistance coefficient.

Follows ITTC 7.5-02-02-02 (bias/precision limits) per Froude station of one
condition.  Runs at the same nominal Fr are treated as M repeat tests.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Iterable, List, Tuple
import logging
import math
import numpy as np
import pandas as pd

from .campaign import CampaignConstants, DEFAULT_CONSTANTS
from .errors import DegenerateSample, MissingInputData, NumericDomainError, ResprocError
from .physics import (
    cf_ittc1957,
    kinematic_viscosity_ittc,
    reynolds_number,
    total_coefficient,
)

logger = logging.getLogger(__name__)

UNCERTAINTY_CONDITIONS = tuple(range(7, 13))

UNCERTAINTY_FIELDS: List[str] = [
    "run", "condition", "froude",
    "bct", "bct_pct_uct", "pct", "pct_pct_uct", "uct", "uct_pct_ct15",
    "avg_ct", "avg_ct15", "std_ct",
    "mx", "rx", "cf15", "cftw",
    "bs", "bs_pct_s", "bv", "bv_pct_v", "bmx", "bmx_pct_mx",
    "btw", "btw_pct_tw", "brho", "brho_pct_rho",
    "theta_s", "theta_v", "theta_mx", "theta_rho", "theta_rho_tw",
    "bct_abs", "bct_pct_ct15", "pct_abs", "pct_pct_ct15",
]


@dataclass(frozen=True)
class UncertaintyInputs:
    """Instrument biases and method constants."""

    k: float = 0.12                 # form factor k for the temperature correction
    coverage: float = 2.0           # K, ~95 % confidence
    reference_temp_c: float = 15.0
    wsa_error_frac: float = 0.005   # hull form error, fraction of S
    bv: float = 0.003               # carriage speed bias (m/s)
    bmx: Tuple[float, ...] = (
        6.847e-6,   # calibration
        7.174e-6,   # curve fit
        8.384e-4,   # load cell misalignment
        0.0,        # towing force inclination
    )
    btw: float = 0.2                # water temperature bias (degC)
    brho: float = 1.0               # water density bias (kg/m^3)


def population_std(values) -> float:
    v = np.asarray(values, dtype=float)
    if v.size < 2:
        raise DegenerateSample(f"Standard deviation needs at least 2 samples, got {v.size}", formula="population_std")
    return float(np.std(v))


def precision_limit(std: float, m: int, coverage: float = 2.0) -> float:
    """P = K * S / sqrt(M) for the mean of M repeat tests."""
    if m < 2:
        raise DegenerateSample(f"Precision limit needs at least 2 repeats, got {m}", formula="precision_limit")
    return coverage * std / math.sqrt(m)


def density_temperature_sensitivity(t_c: float) -> float:
    """|d rho / d t| of fresh water (kg/m^3/degC)."""
    return abs(0.0638 - 0.0173 * t_c + 0.000189 * t_c ** 2)


@dataclass
class UncertaintyResult:
    table: pd.DataFrame
    skipped: List[dict] = field(default_factory=list)


class UncertaintyAnalyzer:
    def __init__(self, constants: CampaignConstants = DEFAULT_CONSTANTS, inputs: UncertaintyInputs = UncertaintyInputs()):
        self.c = constants
        self.u = inputs

    def group(self, rows: pd.DataFrame, condition: int) -> dict:
        """Uncertainty record for the repeat runs of one Froude station.

        Parameters
        ----------
        rows : DataFrame
            Per-run records sharing one ``froude`` value; needs ``run``,
            ``speed`` and ``rtm``.
        condition : int
            Selects the wetted surface and waterline length.

        Returns
        -------
        dict keyed by :data:`UNCERTAINTY_FIELDS`.
        """
        c, u = self.c, self.u
        geom = c.geometry(condition)
        S, L, rho, g = geom.wsa_m2, geom.lwl_m, c.rho_fresh, c.gravity
        tw = c.water_temp_c
        m = len(rows)
        speeds = rows["speed"].to_numpy(dtype=float)
        if np.any(speeds <= 0):
            raise NumericDomainError("Model speed must be > 0", formula="uncertainty CT")

        k1 = 1.0 + u.k
        V = float(np.mean(speeds))
        cf15 = cf_ittc1957(reynolds_number(V, L, kinematic_viscosity_ittc(u.reference_temp_c)))
        cftw = cf_ittc1957(reynolds_number(V, L, kinematic_viscosity_ittc(tw)))
        ct = np.array([total_coefficient(r, rho, S, v) for r, v in zip(rows["rtm"].to_numpy(dtype=float), speeds)])
        ct15 = ct + (cf15 - cftw) * k1
        std = population_std(ct)
        avg_ct, avg_ct15 = float(ct.mean()), float(ct15.mean())

        rx = avg_ct15 * 0.5 * rho * S * V ** 2
        mx = rx / g

        bs1 = S * u.wsa_error_frac
        bs2 = bs1 / 2.0
        bs = math.sqrt(bs1 ** 2 + bs2 ** 2)
        bmx = math.sqrt(sum(b * b for b in u.bmx))

        theta_s = (rx / (0.5 * rho * V ** 2)) * (-1.0 / S ** 2)
        theta_v = (rx / (0.5 * rho * S)) * (-2.0 / V ** 3)
        theta_mx = g / (0.5 * rho * V ** 2 * S)
        theta_rho = (rx / (0.5 * V ** 2 * S)) * (-1.0 / rho ** 2)
        theta_rho_tw = density_temperature_sensitivity(u.reference_temp_c)

        bct = math.sqrt(
            (bs * theta_s) ** 2
            + (u.bv * theta_v) ** 2
            + (bmx * theta_mx) ** 2
            + (theta_rho * (u.brho + u.btw * theta_rho_tw)) ** 2
        )
        pct = precision_limit(std, m, u.coverage)
        uct = math.sqrt(bct ** 2 + pct ** 2)
        if uct == 0 or avg_ct15 == 0:
            raise NumericDomainError("Zero combined uncertainty or CT15", formula="uncertainty percentages")

        return {
            "run": float(rows["run"].iloc[0]),
            "condition": float(condition),
            "froude": float(rows["froude"].iloc[0]),
            "bct": bct,
            "bct_pct_uct": bct ** 2 / uct ** 2 * 100.0,
            "pct": pct,
            "pct_pct_uct": pct ** 2 / uct ** 2 * 100.0,
            "uct": uct,
            "uct_pct_ct15": uct / avg_ct15 * 100.0,
            "avg_ct": avg_ct,
            "avg_ct15": avg_ct15,
            "std_ct": std,
            "mx": mx,
            "rx": rx,
            "cf15": cf15,
            "cftw": cftw,
            "bs": bs,
            "bs_pct_s": bs / S * 100.0,
            "bv": u.bv,
            "bv_pct_v": u.bv / V * 100.0,
            "bmx": bmx,
            "bmx_pct_mx": bmx / mx * 100.0,
            "btw": u.btw,
            "btw_pct_tw": u.btw / tw * 100.0,
            "brho": u.brho,
            "brho_pct_rho": u.brho / rho * 100.0,
            "theta_s": theta_s,
            "theta_v": theta_v,
            "theta_mx": theta_mx,
            "theta_rho": theta_rho,
            "theta_rho_tw": theta_rho_tw,
            "bct_abs": bct,
            "bct_pct_ct15": bct / avg_ct15 * 100.0,
            "pct_abs": pct,
            "pct_pct_ct15": pct / avg_ct15 * 100.0,
        }

    def analyze(self, results: pd.DataFrame, conditions: Iterable[int] = UNCERTAINTY_CONDITIONS) -> UncertaintyResult:
        """One record per (condition, Froude station); failing stations are skipped and listed."""
        if results is None or results.empty:
            raise MissingInputData("Per-run results table is empty", formula="uncertainty")
        out, skipped = [], []
        for cond in conditions:
            sel = results[results["condition"] == int(cond)]
            if sel.empty:
                logger.warning("No runs for condition %s; uncertainty skipped", cond)
                continue
            for fr, grp in sel.groupby("froude", sort=True):
                try:
                    out.append(self.group(grp, int(cond)))
                except ResprocError as e:
                    e.with_context(run=int(grp["run"].iloc[0]), condition=int(cond))
                    logger.warning("Uncertainty skipped at Fr=%.2f: %s", fr, e)
                    skipped.append({"froude": float(fr), **e.context()})
        return UncertaintyResult(pd.DataFrame(out, columns=UNCERTAINTY_FIELDS), skipped)
