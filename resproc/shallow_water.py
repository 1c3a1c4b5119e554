"""Shallow-water (blockage) corrections of the averaged catamaran data.

Each scheme yields a corrected model speed.  Model-scale Re, CF and CR are
re-derived at that speed; the full-scale extrapolation keeps the original
Froude-scaled ship speed and carries the corrected CR across (CRs = CRm).

Schemes
-------
Tamura   dV/V = 0.67 m (L/b)^0.75 / (1 - Fh^2)
Schuster dV/V = m/(1 - m - Fh^2) + (1 - Rv/RT) (2/3) Fh^10
Scott    dV/V = (K1 Vol + (4.5/lambda) L^2 K2) (h b)^-1.5

with m = Ax/(h b) the blockage ratio and Fh = V/sqrt(g h).
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple
import logging
import math
import pandas as pd

from .campaign import CampaignConstants, ConditionGeometry, DEFAULT_CONSTANTS
from .errors import NumericDomainError, ResprocError, UnsupportedRegime
from .physics import (
    FormFactorPolicy,
    resolve_form_factor,
    reynolds_number,
    depth_froude_number,
    cf_ittc1957,
    cf_grigson,
    residual_coefficient,
    roughness_allowance,
    correlation_allowance,
    air_resistance_coefficient,
    full_scale_total_coefficient,
    full_scale_resistance,
    total_coefficient,
)

logger = logging.getLogger(__name__)

SCHEMES = ("tamura", "schuster", "scott")

CORRECTED_FIELDS: List[str] = [
    "froude", "speed", "rem", "rtm", "ctm",
    "cfm_grigson", "cfm_ittc", "crm_grigson", "crm_ittc",
    "fs_speed", "fs_speed_kn", "res", "delta_cf", "ca", "caa",
    "rts_grigson", "rts_ittc", "cts_grigson", "cts_ittc",
    "cfs_grigson", "cfs_ittc", "crs_grigson", "crs_ittc",
    "rts_grigson_kn", "rts_ittc_kn",
]

# Scott K1 fits, K1 = slope*Re + intercept, as (Re upper bound, bound inclusive, slope, intercept)
_K1_LOW_DLR = (
    (5.8e6, True, -1e-9, 1.9005),
    (1.97e7, False, -1e-7, 2.4732),
)
_K1_MID_DLR = (
    (5.2e6, True, -2e-9, 1.5965),
    (7.9e6, True, -1e-7, 2.1636),
    (1.88e7, False, -7e-8, 1.867),
)
_K1_HIGH_DLR = (
    (4.81e6, True, -5e-10, 1.2935),
    (8.3e6, True, -1e-7, 1.8925),
    (1.71e7, False, -4e-8, 1.1928),
)


def scott_k1(re: float, dlr: float) -> float:
    """Scott's K1 for a displacement-length ratio and model Reynolds number.

    The middle ratio band is bounded by 0.9 and 0.11 as published in the
    campaign notes, which is empty; ratios of 0.9 and above fall through to
    the high band.  Inputs outside every band raise ``UnsupportedRegime``.
    """
    if dlr < 0.9:
        bands = _K1_LOW_DLR
    elif 0.9 <= dlr <= 0.11:
        bands = _K1_MID_DLR
    elif dlr > 0.11:
        bands = _K1_HIGH_DLR
    else:
        bands = ()
    for upper, inclusive, slope, intercept in bands:
        if re < upper or (inclusive and re == upper):
            return slope * re + intercept
    raise UnsupportedRegime(
        f"No Scott K1 band for Re={re:.4g}, displacement-length ratio={dlr:.4g}",
        formula="scott_k1",
    )


def scott_k2(froude: float) -> float:
    if 0.22 < froude < 0.40:
        return 2.4 * (froude - 0.22) ** 2
    return 0.0


@dataclass
class ShallowWaterResult:
    tables: Dict[str, pd.DataFrame]     # "uncorrected" plus one per scheme
    deviations: pd.DataFrame            # (CR_uncorr - CR_corr)/CR_corr
    differences: pd.DataFrame           # (1 - RTs_corr/RTs_uncorr)*100
    speed_ratios: pd.DataFrame
    skipped: List[dict] = field(default_factory=list)


class ShallowWaterCorrector:
    def __init__(
        self,
        constants: CampaignConstants = DEFAULT_CONSTANTS,
        condition: int = 7,
        policy: FormFactorPolicy = "applied",
    ):
        self.c = constants
        self.condition = int(condition)
        self.geom: ConditionGeometry = constants.geometry(condition)
        self.form_factor = resolve_form_factor(policy, constants.form_factor)
        if self.geom.ax_m2 is None:
            raise UnsupportedRegime(
                f"Geometry {self.geom.name} has no transverse section area",
                condition=self.condition, formula="blockage ratio",
            )

    @property
    def area_ratio(self) -> float:
        return self.geom.ax_m2 / (self.c.tank_depth_m * self.c.tank_width_m)

    @property
    def displacement_length_ratio(self) -> float:
        vol = self.geom.volume_m3(self.c.rho_fresh)
        return self.geom.cb * vol ** (1.0 / 3.0) / self.geom.lwl_m

    def _fh(self, speed: float) -> float:
        return depth_froude_number(speed, self.c.tank_depth_m, self.c.gravity)

    def tamura_ratio(self, speed: float) -> float:
        fh = self._fh(speed)
        denom = 1.0 - fh ** 2
        if denom == 0:
            raise NumericDomainError("Depth Froude number of 1", formula="tamura")
        return 0.67 * self.area_ratio * (self.geom.lwl_m / self.c.tank_width_m) ** 0.75 / denom

    def schuster_ratios(self, speed: float, rtm: float, wsa: float) -> Tuple[float, float]:
        """Speed ratios using Grigson and ITTC-57 viscous resistance."""
        if rtm == 0:
            raise NumericDomainError("Model resistance is zero", formula="schuster")
        c = self.c
        fh = self._fh(speed)
        m = self.area_ratio
        denom = 1.0 - m - fh ** 2
        if denom == 0:
            raise NumericDomainError("Blockage term denominator is zero", formula="schuster")
        re = reynolds_number(speed, self.geom.lwl_m, c.nu_model)
        q = 0.5 * c.rho_fresh * wsa * speed ** 2
        out = []
        for cf in (cf_grigson(re), cf_ittc1957(re)):
            rv = cf * q
            out.append(m / denom + (1.0 - rv / rtm) * (2.0 / 3.0) * fh ** 10)
        return out[0], out[1]

    def scott_ratio(self, speed: float, froude: float) -> float:
        c = self.c
        re = reynolds_number(speed, self.geom.lwl_m, c.nu_model)
        k1 = scott_k1(re, self.displacement_length_ratio)
        k2 = scott_k2(froude)
        vol = self.geom.volume_m3(c.rho_fresh)
        hb = (c.tank_depth_m * c.tank_width_m) ** -1.5
        return k1 * vol * hb + (4.5 / c.scale_ratio) * self.geom.lwl_m ** 2 * k2 * hb

    def station(self, froude: float, speed: float, rtm: float, wsa: float, model_speed: Optional[float] = None) -> Dict[str, float]:
        """One 25-field record; ``model_speed`` is the corrected speed if any."""
        c = self.c
        vm = speed if model_speed is None else model_speed
        lwl = self.geom.lwl_m
        rem = reynolds_number(vm, lwl, c.nu_model)
        ctm = total_coefficient(rtm, c.rho_fresh, wsa, vm)
        cfm_g, cfm_i = cf_grigson(rem), cf_ittc1957(rem)
        crm_g = residual_coefficient(ctm, cfm_g, self.form_factor)
        crm_i = residual_coefficient(ctm, cfm_i, self.form_factor)

        vs = speed * math.sqrt(c.scale_ratio)
        fs_lwl = self.geom.fs_lwl(c.scale_ratio)
        fs_wsa = wsa * c.scale_ratio ** 2
        res = reynolds_number(vs, fs_lwl, c.nu_full)
        dcf = roughness_allowance(c.roughness_m, fs_lwl, res)
        ca = correlation_allowance(res)
        caa = air_resistance_coefficient(c.drag_coeff, c.air_density, c.fs_projected_area_cat_m2, c.rho_salt, fs_wsa)
        cfs_g, cfs_i = cf_grigson(res), cf_ittc1957(res)
        cts_g = full_scale_total_coefficient(self.form_factor, cfs_g, dcf, ca, crm_g, caa)
        cts_i = full_scale_total_coefficient(self.form_factor, cfs_i, dcf, ca, crm_i, caa)
        rts_g = full_scale_resistance(cts_g, c.rho_salt, fs_wsa, vs)
        rts_i = full_scale_resistance(cts_i, c.rho_salt, fs_wsa, vs)
        return {
            "froude": froude, "speed": speed, "rem": rem, "rtm": rtm, "ctm": ctm,
            "cfm_grigson": cfm_g, "cfm_ittc": cfm_i, "crm_grigson": crm_g, "crm_ittc": crm_i,
            "fs_speed": vs, "fs_speed_kn": vs / c.knot_ms, "res": res,
            "delta_cf": dcf, "ca": ca, "caa": caa,
            "rts_grigson": rts_g, "rts_ittc": rts_i, "cts_grigson": cts_g, "cts_ittc": cts_i,
            "cfs_grigson": cfs_g, "cfs_ittc": cfs_i, "crs_grigson": crm_g, "crs_ittc": crm_i,
            "rts_grigson_kn": rts_g / 1000.0, "rts_ittc_kn": rts_i / 1000.0,
        }

    def correct(self, averaged: pd.DataFrame) -> ShallowWaterResult:
        """Apply all schemes to a per-station averaged table (demihull values)."""
        c = self.c
        rows = {k: [] for k in ("uncorrected",) + SCHEMES}
        dev_rows, diff_rows, ratio_rows, skipped = [], [], [], []
        for _, r in averaged.sort_values("froude").iterrows():
            fr = float(r["froude"])
            speed = float(r["speed"])
            rtm = 2.0 * float(r["rtm"])
            wsa = self.geom.catamaran_wsa(fr, c.dta_froude_threshold)
            try:
                base = self.station(fr, speed, rtm, wsa)
            except ResprocError as e:
                e.with_context(condition=self.condition, formula="uncorrected station")
                logger.warning("Skipping station Fr=%.2f: %s", fr, e)
                skipped.append({"froude": fr, "scheme": "uncorrected", **e.context()})
                continue
            rows["uncorrected"].append(base)
            dev = {"froude": fr, "crm_grigson": base["crm_grigson"], "crm_ittc": base["crm_ittc"]}
            diff = {"froude": fr, "fs_speed_kn": base["fs_speed_kn"]}
            ratio_row = {"froude": fr, "depth_froude": self._fh(speed)}
            for scheme in SCHEMES:
                try:
                    ratio = self._scheme_ratio(scheme, fr, speed, rtm, wsa, ratio_row)
                    rec = self.station(fr, speed, rtm, wsa, model_speed=speed * (1.0 + ratio))
                    d = {}
                    for form in ("grigson", "ittc"):
                        crc = rec[f"crm_{form}"]
                        if crc == 0:
                            raise NumericDomainError("Corrected CR is zero", formula=f"{scheme} deviation")
                        d[f"{scheme}_crm_{form}"] = crc
                        d[f"{scheme}_dev_{form}"] = (base[f"crm_{form}"] - crc) / crc
                    dev.update(d)
                    diff[scheme] = (1.0 - rec["rts_grigson"] / base["rts_grigson"]) * 100.0
                except ResprocError as e:
                    e.with_context(condition=self.condition, formula=scheme)
                    logger.warning("Skipping %s correction at Fr=%.2f: %s", scheme, fr, e)
                    skipped.append({"froude": fr, "scheme": scheme, **e.context()})
                    continue
                rows[scheme].append(rec)
            dev_rows.append(dev)
            diff_rows.append(diff)
            ratio_rows.append(ratio_row)

        tables = {k: pd.DataFrame(v, columns=CORRECTED_FIELDS) for k, v in rows.items()}
        dev_cols = ["froude", "crm_grigson", "crm_ittc"] + [
            f"{s}_{k}_{f}" for s in SCHEMES for f in ("grigson", "ittc") for k in ("crm", "dev")
        ]
        return ShallowWaterResult(
            tables=tables,
            deviations=pd.DataFrame(dev_rows).reindex(columns=dev_cols),
            differences=pd.DataFrame(diff_rows).reindex(columns=["froude", "fs_speed_kn", *SCHEMES]),
            speed_ratios=pd.DataFrame(ratio_rows).reindex(
                columns=["froude", "depth_froude", "tamura", "schuster", "schuster_ittc", "scott"]
            ),
            skipped=skipped,
        )

    def _scheme_ratio(self, scheme, fr, speed, rtm, wsa, ratio_row) -> float:
        if scheme == "tamura":
            ratio = self.tamura_ratio(speed)
        elif scheme == "schuster":
            ratio, ratio_row["schuster_ittc"] = self.schuster_ratios(speed, rtm, wsa)
        elif scheme == "scott":
            ratio = self.scott_ratio(speed, fr)
        else:
            raise ValueError(f"Unknown scheme: {scheme}")
        ratio_row[scheme] = ratio
        return ratio
