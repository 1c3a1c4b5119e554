"""Fixed reference data for the catamaran resistance campaign.

Everything the reduction stages need to know about the tank, the water, the
model and the test programme lives here as immutable records.  Components
receive a :class:`CampaignConstants` instance explicitly; nothing in the core
reads module state.
"""

from __future__ import annotations
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Dict, Mapping, Optional, Tuple

from .errors import UnsupportedRegime


@dataclass(frozen=True)
class ConditionGeometry:
    """Model-scale hull particulars for one loading/trim condition."""

    name: str
    lwl_m: float                        # length at waterline
    wsa_m2: float                       # wetted surface area, one demihull
    draft_m: float
    ax_m2: Optional[float] = None       # max transverse section area
    cb: Optional[float] = None          # block coefficient
    wsa_dta_m2: Optional[float] = None  # dry transom area
    wsa_corr_dta_m2: Optional[float] = None  # wsa less dry transom area
    beam_m: float = 0.208
    mass_kg: Optional[float] = None     # catamaran (both demihulls)

    def fs_lwl(self, scale_ratio: float) -> float:
        return self.lwl_m * scale_ratio

    def fs_wsa(self, scale_ratio: float) -> float:
        return self.wsa_m2 * scale_ratio ** 2

    def fs_draft(self, scale_ratio: float) -> float:
        return self.draft_m * scale_ratio

    def volume_m3(self, water_density: float) -> float:
        if self.mass_kg is None:
            raise UnsupportedRegime(
                f"No displacement recorded for geometry {self.name}",
                formula="displacement volume",
            )
        return self.mass_kg / water_density

    def catamaran_wsa(self, froude: float, threshold: float = 0.3) -> float:
        """Both demihulls; transom-corrected above ``threshold``."""
        if froude > threshold and self.wsa_corr_dta_m2 is not None:
            return 2.0 * self.wsa_corr_dta_m2
        return 2.0 * self.wsa_m2


MASS_1500T_KG = 74.47 * 2
MASS_1804T_KG = 89.18 * 2

GEOMETRIES: Dict[str, ConditionGeometry] = {
    "1500": ConditionGeometry(
        "1500", 4.30, 1.501, 0.133, ax_m2=0.024, cb=0.592,
        wsa_dta_m2=0.015, wsa_corr_dta_m2=1.486, mass_kg=MASS_1500T_KG,
    ),
    "1500bybow": ConditionGeometry(
        "1500bybow", 4.33, 1.48, 0.138, ax_m2=0.025, cb=0.570,
        wsa_dta_m2=0.012, wsa_corr_dta_m2=1.468, mass_kg=MASS_1500T_KG,
    ),
    "1500bystern": ConditionGeometry(
        "1500bystern", 4.22, 1.52, 0.131, ax_m2=0.024, cb=0.614,
        wsa_dta_m2=0.018, wsa_corr_dta_m2=1.502, mass_kg=MASS_1500T_KG,
    ),
    "1500prohaska": ConditionGeometry(
        "1500prohaska", 3.78, 1.49, 0.133, mass_kg=MASS_1500T_KG,
    ),
    "1804": ConditionGeometry(
        "1804", 4.22, 1.68, 0.153, ax_m2=0.028, cb=0.631,
        wsa_dta_m2=0.019, wsa_corr_dta_m2=1.661, mass_kg=MASS_1804T_KG,
    ),
    "1804bybow": ConditionGeometry(
        "1804bybow", 4.31, 1.66, 0.157, ax_m2=0.030, cb=0.603,
        wsa_dta_m2=0.016, wsa_corr_dta_m2=1.644, mass_kg=MASS_1804T_KG,
    ),
    "1804bystern": ConditionGeometry(
        "1804bystern", 4.11, 1.70, 0.151, ax_m2=0.028, cb=0.657,
        wsa_dta_m2=0.022, wsa_corr_dta_m2=1.678, mass_kg=MASS_1804T_KG,
    ),
}

# condition id -> geometry key
CONDITION_GEOMETRY: Dict[int, str] = {
    1: "1500", 2: "1500", 3: "1500",
    4: "1500", 5: "1500", 6: "1500",
    7: "1500",
    8: "1500bybow", 9: "1500bystern",
    10: "1804", 11: "1804bybow", 12: "1804bystern",
    13: "1500prohaska",
}

CONDITION_DESCRIPTIONS: Dict[int, str] = {
    1: "Turbulence studs: bare hull",
    2: "Turbulence studs: 1st row",
    3: "Turbulence studs: 1st and 2nd row",
    4: "Trim tab: 5 deg",
    5: "Trim tab: 0 deg",
    6: "Trim tab: 10 deg",
    7: "Resistance: 1,500 t, level trim",
    8: "Resistance: 1,500 t, -0.5 deg by bow",
    9: "Resistance: 1,500 t, 0.5 deg by stern",
    10: "Resistance: 1,804 t, level trim",
    11: "Resistance: 1,804 t, -0.5 deg by bow",
    12: "Resistance: 1,804 t, 0.5 deg by stern",
    13: "Prohaska: 1,500 t, deep transom",
}

# (first run, last run, condition id), inclusive
RUN_RANGES: Tuple[Tuple[int, int, int], ...] = (
    (1, 15, 1),
    (16, 25, 2),
    (26, 35, 3),
    (36, 44, 4),
    (45, 53, 5),
    (54, 62, 6),
    (63, 141, 7),
    (142, 156, 8),
    (157, 171, 9),
    (172, 201, 10),
    (202, 216, 11),
    (217, 231, 12),
    (232, 249, 13),
)


@dataclass(frozen=True)
class CampaignConstants:
    """Tank, water and extrapolation constants for the campaign."""

    sample_rate_hz: float = 200.0
    tank_length_m: float = 100.0
    tank_width_m: float = 3.5
    tank_depth_m: float = 1.45
    water_temp_c: float = 17.5
    gravity: float = 9.806                  # m/s^2
    nu_model: float = 1.0411e-6             # m^2/s, tank water
    nu_full: float = 1.0711e-6              # m^2/s, sea water
    rho_fresh: float = 998.5048             # kg/m^3
    rho_salt: float = 1025.0187             # kg/m^3
    post_spacing_mm: float = 1150.0         # distance between LVDT posts
    scale_ratio: float = 21.6               # full scale / model scale
    form_factor: float = 1.18               # (1+k)
    drag_coeff: float = 0.446               # air drag of superstructure
    roughness_m: float = 150e-6             # hull surface roughness
    air_density: float = 1.2041             # kg/m^3
    fs_projected_area_m2: float = 341.5 / 2  # transverse projected area, demihull
    propulsive_efficiency: float = 0.5
    knot_ms: float = 0.514444
    head_samples: int = 1000                # acceleration guard band
    tail_samples: int = 400                 # deceleration guard band
    ts_slope: float = 3.1638                # turbulence stimulator drag fit (N per Fr)
    ts_intercept: float = -0.4031
    ts_conditions: Tuple[int, ...] = tuple(range(4, 13))
    dta_froude_threshold: float = 0.3
    geometries: Mapping[str, ConditionGeometry] = field(default_factory=lambda: MappingProxyType(dict(GEOMETRIES)), hash=False)
    condition_geometry: Mapping[int, str] = field(default_factory=lambda: MappingProxyType(dict(CONDITION_GEOMETRY)), hash=False)
    run_ranges: Tuple[Tuple[int, int, int], ...] = RUN_RANGES

    def __post_init__(self):
        # lookup tables are read-only copies, also when passed as overrides
        object.__setattr__(self, "geometries", MappingProxyType(dict(self.geometries)))
        object.__setattr__(self, "condition_geometry", MappingProxyType(dict(self.condition_geometry)))
        object.__setattr__(self, "ts_conditions", tuple(self.ts_conditions))
        object.__setattr__(self, "run_ranges", tuple(tuple(r) for r in self.run_ranges))

    @property
    def fs_projected_area_cat_m2(self) -> float:
        return 2.0 * self.fs_projected_area_m2

    def with_overrides(self, **kwargs) -> "CampaignConstants":
        return replace(self, **kwargs)

    def condition_for_run(self, run: int) -> int:
        for lo, hi, cond in self.run_ranges:
            if lo <= int(run) <= hi:
                return cond
        raise UnsupportedRegime(
            f"Run {run} is not part of any test condition",
            run=int(run), formula="run-to-condition lookup",
        )

    def geometry(self, condition: int) -> ConditionGeometry:
        key = self.condition_geometry.get(int(condition))
        if key is None or key not in self.geometries:
            raise UnsupportedRegime(
                f"No geometry defined for condition {condition}",
                condition=int(condition), formula="condition-to-geometry lookup",
            )
        return self.geometries[key]

    def runs_for_condition(self, condition: int) -> range:
        for lo, hi, cond in self.run_ranges:
            if cond == int(condition):
                return range(lo, hi + 1)
        raise UnsupportedRegime(
            f"Unknown condition {condition}",
            condition=int(condition), formula="condition run range",
        )


DEFAULT_CONSTANTS = CampaignConstants()
