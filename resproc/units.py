from __future__ import annotations
from dataclasses import dataclass, asdict
from typing import Literal, Tuple
import numpy as np
import pandas as pd

from .errors import RunDataError

CHANNELS = ("speed", "fwd", "aft", "drag")
CHANNEL_UNITS = {"speed": "m/s", "fwd": "mm", "aft": "mm", "drag": "g"}


def to_real_units(raw, zero: float, cf: float) -> Tuple[np.ndarray, float]:
    """Apply zero offset and calibration factor: ``(raw - zero) * cf``.

    Returns the converted series and its arithmetic mean.
    """
    v = (np.asarray(raw, dtype=float) - float(zero)) * float(cf)
    return v, float(np.mean(v)) if v.size else float("nan")


def to_voltage(raw, zero: float) -> Tuple[np.ndarray, float]:
    """Zero-offset voltage, no calibration applied."""
    v = np.asarray(raw, dtype=float) - float(zero)
    return v, float(np.mean(v)) if v.size else float("nan")


def trimmed_window(values, head: int = 1000, tail: int = 400) -> np.ndarray:
    """Drop the acceleration and deceleration guard bands.

    ``head`` counts samples 1-based like the tank software, so the window
    starts at sample ``head`` and ends ``tail`` samples before the last one.
    """
    v = np.asarray(values, dtype=float)
    start = max(int(head) - 1, 0)
    stop = v.size - int(tail)
    if stop <= start:
        raise RunDataError(
            f"Record of {v.size} samples is shorter than the {head}+{tail} sample guard bands",
            formula="trimmed_window",
        )
    return v[start:stop]


@dataclass
class ChannelStats:
    min: float
    max: float
    mean: float
    dev: float   # fractional (max - mean) deviation
    std: float   # population
    var: float   # population

    def as_dict(self, prefix: str) -> dict:
        return {f"{prefix}_{k}": val for k, val in asdict(self).items()}


def channel_stats(values, deviation: Literal["max", "range"] = "max") -> ChannelStats:
    """Summary statistics of a trimmed channel window.

    ``deviation="max"`` gives ``(max-mean)/max`` (speed, drag);
    ``deviation="range"`` gives ``|max-mean|/|max-min|`` (LVDTs, which
    cross zero).
    """
    v = np.asarray(values, dtype=float)
    if v.size == 0:
        raise RunDataError("Empty channel window", formula="channel_stats")
    vmin, vmax, vmean = float(v.min()), float(v.max()), float(v.mean())
    with np.errstate(divide="ignore", invalid="ignore"):
        if deviation == "max":
            dev = (vmax - vmean) / vmax if vmax != 0 else float("nan")
        elif deviation == "range":
            span = abs(vmax - vmin)
            dev = abs(vmax - vmean) / span if span != 0 else float("nan")
        else:
            raise ValueError(f"Unsupported deviation mode: {deviation}")
    return ChannelStats(
        min=vmin,
        max=vmax,
        mean=vmean,
        dev=float(dev),
        std=float(np.std(v)),
        var=float(np.var(v)),
    )


def time_series_frame(time, real: dict, volt: dict) -> pd.DataFrame:
    """Per-run export of physical-unit and zero-offset voltage channels."""
    data = {"time_s": np.asarray(time, dtype=float)}
    for ch in CHANNELS:
        data[f"{ch}_{CHANNEL_UNITS[ch].replace('/', 'p')}"] = real[ch]
    for ch in CHANNELS:
        data[f"{ch}_V"] = volt[ch]
    return pd.DataFrame(data)
