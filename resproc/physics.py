from __future__ import annotations
import math
from typing import Literal

from .errors import NumericDomainError

# Reynolds number at which the Grigson fit switches polynomial
GRIGSON_RE_SWITCH = 1.0e7

FormFactorPolicy = Literal["applied", "bare"]


def resolve_form_factor(policy: FormFactorPolicy, form_factor: float) -> float:
    """Return the (1+k) multiplier used when backing out CR.

    ``"applied"`` uses ``form_factor`` (ITTC-1978 three-dimensional method);
    ``"bare"`` uses 1, i.e. ``CR = CT - CF``.
    """
    if policy == "applied":
        return float(form_factor)
    if policy == "bare":
        return 1.0
    raise ValueError(f"Unsupported form factor policy: {policy}")


def round2(x: float) -> float:
    """Round to two decimals the way ``printf('%.2f')`` does."""
    return float(f"{float(x):.2f}")


def reynolds_number(speed: float, length: float, nu: float) -> float:
    if nu == 0:
        raise NumericDomainError("Kinematic viscosity is zero", formula="reynolds_number")
    return float(speed) * float(length) / float(nu)


def froude_number(speed: float, lwl: float, g: float) -> float:
    """Froude length number on the nominal station grid.

    Speed is rounded to two decimals first, then Fr is rounded to two
    decimals so repeat runs land on the same station.
    """
    if lwl <= 0 or g <= 0:
        raise NumericDomainError(f"Non-positive lwl={lwl} or g={g}", formula="froude_number")
    return round2(round2(speed) / math.sqrt(g * lwl))


def depth_froude_number(speed: float, depth: float, g: float) -> float:
    if depth <= 0:
        raise NumericDomainError(f"Non-positive water depth {depth}", formula="depth_froude_number")
    return float(speed) / math.sqrt(g * depth)


def cf_ittc1957(re: float) -> float:
    """ITTC-1957 model-ship correlation line, ``0.075/(log10(Re)-2)^2``."""
    re = float(re)
    if re <= 0 or not math.isfinite(re):
        raise NumericDomainError(f"Reynolds number must be > 0, got {re}", formula="cf_ittc1957")
    d = math.log10(re) - 2.0
    if d == 0.0:
        raise NumericDomainError("Reynolds number of 100 gives a zero denominator", formula="cf_ittc1957")
    return 0.075 / (d * d)


def cf_grigson(re: float) -> float:
    """Grigson friction line.

    Two disjoint fits in ``L = log10(log10(Re))``; the low branch applies for
    ``Re < 1e7`` and the high branch otherwise.  The fits do not meet exactly
    at the switch.

    Worked example
    --------------
    Re = 5e6 -> L = log10(6.69897) = 0.82601
    CF = 10^(2.98651 - 10.8843*0.82601 + 5.15283*0.82601^2) ~ 0.00325
    """
    re = float(re)
    if re <= 1.0 or not math.isfinite(re):
        raise NumericDomainError(f"Reynolds number must be > 1, got {re}", formula="cf_grigson")
    L = math.log10(math.log10(re))
    if re < GRIGSON_RE_SWITCH:
        return 10.0 ** (2.98651 - 10.8843 * L + 5.15283 * L ** 2)
    return 10.0 ** (-9.57459 + 26.6084 * L - 30.8285 * L ** 2 + 10.8914 * L ** 3)


def residual_coefficient(ct: float, cf: float, form_factor: float) -> float:
    return float(ct) - float(form_factor) * float(cf)


def roughness_allowance(roughness: float, lwl: float, re: float) -> float:
    """ITTC-1978 roughness allowance dCF (Bowden-Davison form)."""
    if lwl <= 0 or re <= 0:
        raise NumericDomainError(f"lwl={lwl}, Re={re} must be > 0", formula="roughness_allowance")
    return 0.044 * ((roughness / lwl) ** (1.0 / 3.0) - 10.0 * re ** (-1.0 / 3.0)) + 0.000125


def correlation_allowance(re: float) -> float:
    if re <= 0:
        raise NumericDomainError(f"Reynolds number must be > 0, got {re}", formula="correlation_allowance")
    return (5.68 - 0.6 * math.log10(re)) * 1e-3


def air_resistance_coefficient(
    drag_coeff: float,
    air_density: float,
    projected_area: float,
    water_density: float,
    wsa: float,
) -> float:
    if wsa <= 0 or water_density <= 0:
        raise NumericDomainError("Wetted surface and water density must be > 0", formula="air_resistance_coefficient")
    return drag_coeff * (air_density * projected_area) / (water_density * wsa)


def full_scale_total_coefficient(
    form_factor: float,
    cf_full: float,
    delta_cf: float,
    ca: float,
    cr: float,
    caa: float,
) -> float:
    """CTs = (1+k)CFs + dCF + CA + CR + CAA, with CR taken from model scale."""
    return form_factor * cf_full + delta_cf + ca + cr + caa


def full_scale_resistance(ct: float, rho: float, wsa: float, speed: float) -> float:
    return ct * 0.5 * rho * wsa * speed ** 2


def total_coefficient(resistance: float, rho: float, wsa: float, speed: float) -> float:
    q = 0.5 * rho * wsa * speed ** 2
    if q <= 0:
        raise NumericDomainError(
            f"Dynamic pressure force must be > 0 (speed={speed}, wsa={wsa})",
            formula="total_coefficient",
        )
    return resistance / q


def drag_mass_to_force(mass_g: float, g: float) -> float:
    """Load-cell reading in grams to Newtons."""
    return (float(mass_g) / 1000.0) * g


def turbulence_stimulator_drag(froude: float, slope: float = 3.1638, intercept: float = -0.4031) -> float:
    """Drag of the turbulence studs in N, never negative."""
    ts = slope * froude + intercept
    return ts if ts > 0 else 0.0


def kinematic_viscosity_ittc(t_c: float) -> float:
    """Fresh-water kinematic viscosity (m^2/s) at ``t_c`` degC, ITTC 7.5-02-01-03."""
    dt = float(t_c) - 12.0
    return ((0.585e-3 * dt - 0.03361) * dt + 1.235) * 1e-6
