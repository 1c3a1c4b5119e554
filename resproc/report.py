from __future__ import annotations
from pathlib import Path
from typing import Dict
import pandas as pd
import matplotlib
matplotlib.use("Agg")  # headless
import matplotlib.pyplot as plt

from .campaign import CONDITION_DESCRIPTIONS
from .prohaska import ProhaskaFit
from .shallow_water import SCHEMES

_SCHEME_LABELS = {"tamura": "Tamura", "schuster": "Schuster", "scott": "Scott"}


def _save(fig, outdir: Path, stem: str) -> str:
    outdir = Path(outdir)
    outdir.mkdir(parents=True, exist_ok=True)
    p = outdir / f"{stem}.png"
    fig.tight_layout()
    fig.savefig(p, dpi=150)
    plt.close(fig)
    return str(p)


def plot_resistance_curves(outdir: Path, averaged: Dict[int, pd.DataFrame], stem: str = "resistance_curves") -> str:
    """CTm and CRm (x1000) against Fr, one series per condition."""
    fig, (ax1, ax2) = plt.subplots(1, 2, figsize=(11, 4.5))
    for cond, df in sorted(averaged.items()):
        label = f"Cond. {cond}: {CONDITION_DESCRIPTIONS.get(cond, '')}"
        ax1.plot(df["froude"], df["ctm"] * 1000, marker="o", label=label)
        ax2.plot(df["froude"], df["crm"] * 1000, marker="s", label=label)
    ax1.set_xlabel("Froude length number Fr (-)")
    ax1.set_ylabel("CTm x 1000 (-)")
    ax2.set_xlabel("Froude length number Fr (-)")
    ax2.set_ylabel("CRm x 1000 (-)")
    ax1.legend(fontsize=7)
    ax1.grid(True, alpha=0.3)
    ax2.grid(True, alpha=0.3)
    return _save(fig, outdir, stem)


def plot_shallow_water_deviation(outdir: Path, deviations: pd.DataFrame, stem: str = "shallow_water_deviation") -> str:
    """(CR_deep - CR_shallow)/CR_shallow against Fr for each scheme."""
    fig, axes = plt.subplots(1, 2, figsize=(11, 4.5), sharey=True)
    for ax, form, title in zip(axes, ("grigson", "ittc"), ("Grigson", "ITTC 1957")):
        for scheme in SCHEMES:
            col = f"{scheme}_dev_{form}"
            if col in deviations:
                ax.plot(deviations["froude"], deviations[col], marker="o", label=_SCHEME_LABELS[scheme])
        ax.axhline(0.0, color="k", lw=0.8)
        ax.set_title(f"CF: {title}")
        ax.set_xlabel("Froude length number Fr (-)")
        ax.grid(True, alpha=0.3)
    axes[0].set_ylabel("CR deviation (-)")
    axes[0].legend()
    return _save(fig, outdir, stem)


def plot_fs_differences(outdir: Path, differences: pd.DataFrame, stem: str = "shallow_water_fs_differences") -> str:
    fig = plt.figure(figsize=(9, 4.5))
    for scheme in SCHEMES:
        if scheme in differences:
            plt.plot(differences["fs_speed_kn"], differences[scheme], marker="o", label=_SCHEME_LABELS[scheme])
    plt.xlabel("Full scale speed (knots)")
    plt.ylabel("RTs reduction (%)")
    plt.title("Full scale resistance: shallow water corrected vs uncorrected")
    plt.grid(True, alpha=0.3)
    plt.legend()
    return _save(fig, outdir, stem)


def plot_uncertainty(outdir: Path, table: pd.DataFrame, stem: str = "uncertainty") -> str:
    """Combined uncertainty as % of CT15 per station, one series per condition."""
    fig = plt.figure(figsize=(9, 4.5))
    for cond, df in table.groupby("condition"):
        plt.plot(df["froude"], df["uct_pct_ct15"], marker="o", label=f"Cond. {int(cond)}")
    plt.xlabel("Froude length number Fr (-)")
    plt.ylabel("UCT (% of CT at 15 degC)")
    plt.grid(True, alpha=0.3)
    plt.legend()
    return _save(fig, outdir, stem)


def plot_prohaska(outdir: Path, points: pd.DataFrame, fits: Dict[str, ProhaskaFit], stem: str = "prohaska") -> str:
    fig = plt.figure(figsize=(9, 4.5))
    for form, marker in (("ittc", "o"), ("grigson", "s")):
        x = points[f"x_{form}"]
        plt.plot(x, points[f"y_{form}"], marker, label=f"{form.upper()} points")
        fit = fits.get(form)
        if fit is not None:
            xs = pd.Series([0.0, float(x.max())])
            plt.plot(xs, fit.form_factor + fit.slope * xs, "--",
                     label=f"{form.upper()}: 1+k={fit.form_factor:.3f}, r={fit.r:.3f}")
    plt.xlabel("Fr^4 / CFm (-)")
    plt.ylabel("CTm / CFm (-)")
    plt.title("Prohaska form factor")
    plt.grid(True, alpha=0.3)
    plt.legend()
    return _save(fig, outdir, stem)
