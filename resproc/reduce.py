"""Per-run reduction: channel means -> derived resistance record.

One record per run, 57 fields in the fixed order of :data:`RESULT_FIELDS`.
Model-scale quantities use the measured mean speed; full-scale quantities are
derived from the same speed via Froude scaling, so no record mixes speeds.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional
import math
import numpy as np
import pandas as pd

from .campaign import CampaignConstants, ConditionGeometry, DEFAULT_CONSTANTS
from .errors import NumericDomainError, ResprocError, RunDataError
from .physics import (
    FormFactorPolicy,
    resolve_form_factor,
    reynolds_number,
    froude_number,
    cf_ittc1957,
    cf_grigson,
    residual_coefficient,
    roughness_allowance,
    correlation_allowance,
    air_resistance_coefficient,
    full_scale_total_coefficient,
    full_scale_resistance,
    total_coefficient,
    drag_mass_to_force,
    turbulence_stimulator_drag,
)
from .units import CHANNELS, channel_stats, trimmed_window

RESULT_FIELDS: List[str] = [
    "run", "fs_hz", "n_samples", "record_time_s",
    "speed", "fwd_lvdt", "aft_lvdt", "drag_g",
    "rtm", "ctm", "froude", "heave", "trim",
    "fs_speed", "fs_speed_kn",
    "rem", "cfm_ittc", "cfm_grigson", "crm", "pem", "pbm",
    "res", "cfs_ittc", "cts", "rts", "pes", "pbs",
    "condition",
    "speed_min", "speed_max", "speed_mean", "speed_dev",
    "fwd_min", "fwd_max", "fwd_mean", "fwd_dev",
    "aft_min", "aft_max", "aft_mean", "aft_dev",
    "drag_min", "drag_max", "drag_mean", "drag_dev",
    "speed_std", "fwd_std", "aft_std", "drag_std",
    "cfs_grigson", "delta_cf", "ca", "caa",
    "rtm_uncorrected",
    "speed_var", "fwd_var", "aft_var", "drag_var",
]

# speed ... condition; the block averaged per Froude station
AVERAGED_FIELDS: List[str] = RESULT_FIELDS[4:28]

_DEVIATION_MODE = {"speed": "max", "fwd": "range", "aft": "range", "drag": "max"}


@dataclass
class RunRecord:
    """Physical-unit channels of one run, after zero/CF conversion."""

    run: int
    time: np.ndarray
    channels: Dict[str, np.ndarray]
    condition: Optional[int] = None
    volts: Dict[str, np.ndarray] = field(default_factory=dict)

    def __post_init__(self):
        self.time = np.asarray(self.time, dtype=float)
        n = self.time.size
        if n == 0:
            raise RunDataError("Run has no samples", run=self.run)
        missing = [ch for ch in CHANNELS if ch not in self.channels]
        if missing:
            raise RunDataError(f"Missing channels: {missing}", run=self.run)
        for ch in CHANNELS:
            arr = np.asarray(self.channels[ch], dtype=float)
            if arr.size != n:
                raise RunDataError(
                    f"Channel '{ch}' has {arr.size} samples, time has {n}",
                    run=self.run,
                )
            self.channels[ch] = arr

    def mean(self, ch: str) -> float:
        return float(np.mean(self.channels[ch]))


class RunReducer:
    """Turn one run into its derived resistance record."""

    def __init__(self, constants: CampaignConstants = DEFAULT_CONSTANTS, policy: FormFactorPolicy = "applied"):
        self.c = constants
        self.policy = policy
        self.form_factor = resolve_form_factor(policy, constants.form_factor)

    def reduce(self, run: RunRecord) -> Dict[str, float]:
        c = self.c
        condition = run.condition if run.condition is not None else c.condition_for_run(run.run)
        n = run.time.size
        t_end = float(run.time[-1])
        if not t_end > 0:
            raise RunDataError(f"Record end time must be > 0, got {t_end}", run=run.run, condition=condition)
        fs = math.floor(n / t_end + 0.5)
        if fs <= 0:
            raise RunDataError(f"Sampling frequency rounds to {fs}", run=run.run, condition=condition)
        rec = self.reduce_means(
            run.run,
            condition,
            speed=run.mean("speed"),
            fwd=run.mean("fwd"),
            aft=run.mean("aft"),
            drag_g=run.mean("drag"),
        )
        rec["fs_hz"] = float(fs)
        rec["n_samples"] = float(n)
        rec["record_time_s"] = float(math.floor(n / fs + 0.5))
        try:
            for ch in CHANNELS:
                window = trimmed_window(run.channels[ch], c.head_samples, c.tail_samples)
                st = channel_stats(window, _DEVIATION_MODE[ch])
                for k in ("min", "max", "mean", "dev", "std", "var"):
                    rec[f"{ch}_{k}"] = getattr(st, k)
        except ResprocError as e:
            raise e.with_context(run=run.run, condition=condition)
        return rec

    def reduce_means(
        self,
        run: int,
        condition: int,
        *,
        speed: float,
        fwd: float,
        aft: float,
        drag_g: float,
    ) -> Dict[str, float]:
        """Derived record from pre-averaged channel means.

        Window statistics and record metadata are left as NaN.
        """
        try:
            return self._reduce_means(int(run), int(condition), speed, fwd, aft, drag_g)
        except ResprocError as e:
            raise e.with_context(run=int(run), condition=int(condition))

    def _reduce_means(self, run, condition, speed, fwd, aft, drag_g):
        c = self.c
        geom: ConditionGeometry = c.geometry(condition)
        for name, v in (("speed", speed), ("fwd", fwd), ("aft", aft), ("drag", drag_g)):
            if not math.isfinite(v):
                raise RunDataError(f"Mean {name} is not finite", formula="channel mean")
        if speed <= 0:
            raise RunDataError(f"Model speed must be > 0, got {speed:.4f} m/s", formula="model speed")
        if drag_g <= 0:
            raise NumericDomainError(f"Resistance mass must be > 0, got {drag_g:.3f} g", formula="drag_mass_to_force")

        rec: Dict[str, float] = {k: float("nan") for k in RESULT_FIELDS}
        rec["run"] = float(run)
        rec["condition"] = float(condition)
        rec["speed"] = speed
        rec["fwd_lvdt"] = fwd
        rec["aft_lvdt"] = aft
        rec["drag_g"] = drag_g

        fr = froude_number(speed, geom.lwl_m, c.gravity)
        rt_raw = drag_mass_to_force(drag_g, c.gravity)
        rt = rt_raw
        if condition in c.ts_conditions:
            rt = rt_raw - turbulence_stimulator_drag(fr, c.ts_slope, c.ts_intercept)

        rec["rtm_uncorrected"] = rt_raw
        rec["rtm"] = rt
        rec["ctm"] = total_coefficient(rt, c.rho_fresh, geom.wsa_m2, speed)
        rec["froude"] = fr
        rec["heave"] = (fwd + aft) / 2.0
        rec["trim"] = math.degrees(math.atan((fwd - aft) / c.post_spacing_mm))

        vs = speed * math.sqrt(c.scale_ratio)
        rec["fs_speed"] = vs
        rec["fs_speed_kn"] = vs / c.knot_ms

        rem = reynolds_number(speed, geom.lwl_m, c.nu_model)
        rec["rem"] = rem
        rec["cfm_ittc"] = cf_ittc1957(rem)
        rec["cfm_grigson"] = cf_grigson(rem)
        rec["crm"] = residual_coefficient(rec["ctm"], rec["cfm_grigson"], self.form_factor)
        rec["pem"] = speed * rt
        rec["pbm"] = rec["pem"] / c.propulsive_efficiency

        fs_lwl = geom.fs_lwl(c.scale_ratio)
        fs_wsa = geom.fs_wsa(c.scale_ratio)
        res = reynolds_number(vs, fs_lwl, c.nu_full)
        rec["res"] = res
        rec["cfs_ittc"] = cf_ittc1957(res)
        rec["cfs_grigson"] = cf_grigson(res)
        rec["delta_cf"] = roughness_allowance(c.roughness_m, fs_lwl, res)
        rec["ca"] = correlation_allowance(res)
        rec["caa"] = air_resistance_coefficient(
            c.drag_coeff, c.air_density, c.fs_projected_area_m2, c.rho_salt, fs_wsa
        )
        rec["cts"] = full_scale_total_coefficient(
            self.form_factor, rec["cfs_grigson"], rec["delta_cf"], rec["ca"], rec["crm"], rec["caa"]
        )
        rec["rts"] = full_scale_resistance(rec["cts"], c.rho_salt, fs_wsa, vs)
        rec["pes"] = vs * rec["rts"]
        rec["pbs"] = rec["pes"] / c.propulsive_efficiency
        return rec


def results_frame(records: Iterable[Dict[str, float]]) -> pd.DataFrame:
    """Derived records as a table in fixed column order, sorted by run."""
    df = pd.DataFrame(list(records), columns=RESULT_FIELDS)
    if len(df):
        df = df.sort_values("run", kind="stable").reset_index(drop=True)
    return df
