"""
resproc - towing tank resistance data reduction for the catamaran test campaign.
"""

__version__ = "0.1.0"

from .errors import (
    ResprocError,
    RunDataError,
    MissingInputData,
    UnsupportedRegime,
    DegenerateSample,
    NumericDomainError,
)
from .campaign import CampaignConstants, ConditionGeometry, DEFAULT_CONSTANTS
from .units import to_real_units, to_voltage, trimmed_window, channel_stats
from .physics import (
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
    kinematic_viscosity_ittc,
)
from .reduce import RunRecord, RunReducer, RESULT_FIELDS, results_frame
from .io import load_run_file, load_results_table, write_table
from .aggregate import stats_avg, stats_minmax
from .shallow_water import ShallowWaterCorrector, scott_k1, scott_k2
from .uncertainty import UncertaintyAnalyzer, UncertaintyInputs
from .prohaska import estimate_form_factor
from .pipeline import RunConfig, run_all

__all__ = [
    "__version__",
    "ResprocError", "RunDataError", "MissingInputData", "UnsupportedRegime",
    "DegenerateSample", "NumericDomainError",
    "CampaignConstants", "ConditionGeometry", "DEFAULT_CONSTANTS",
    "to_real_units", "to_voltage", "trimmed_window", "channel_stats",
    "reynolds_number", "froude_number", "cf_ittc1957", "cf_grigson",
    "residual_coefficient", "roughness_allowance", "correlation_allowance",
    "air_resistance_coefficient", "full_scale_total_coefficient",
    "full_scale_resistance", "kinematic_viscosity_ittc",
    "RunRecord", "RunReducer", "RESULT_FIELDS", "results_frame",
    "load_run_file", "load_results_table", "write_table",
    "stats_avg", "stats_minmax",
    "ShallowWaterCorrector", "scott_k1", "scott_k2",
    "UncertaintyAnalyzer", "UncertaintyInputs",
    "estimate_form_factor",
    "RunConfig", "run_all",
]
