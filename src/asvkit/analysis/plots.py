# src/asvkit/analysis/plots.py
from __future__ import annotations

from pathlib import Path
from typing import Optional

import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt  # noqa: E402
import pandas as pd  # noqa: E402

from asvkit.utils.logger import get_logger  # noqa: E402

LOG = get_logger("plots")


def _save(fig, path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    fig.tight_layout()
    fig.savefig(path, dpi=150)
    plt.close(fig)
    LOG.debug("Plot written → %s", path)
    return path


def plot_ordination(
    coords: pd.DataFrame,
    proportion_explained: pd.Series,
    path: Path,
    *,
    groups: Optional[pd.Series] = None,
    title: str = "PCoA",
) -> Path:
    fig, ax = plt.subplots(figsize=(7, 6))
    x, y = coords.columns[0], coords.columns[1] if coords.shape[1] > 1 else coords.columns[0]
    if groups is None:
        ax.scatter(coords[x], coords[y], s=40, alpha=0.8)
    else:
        groups = groups.reindex(coords.index).astype(str)
        for label, idx in groups.groupby(groups).groups.items():
            ax.scatter(coords.loc[idx, x], coords.loc[idx, y], s=40, alpha=0.8, label=label)
        ax.legend(title=groups.name, bbox_to_anchor=(1.02, 1), loc="upper left", fontsize=8)
    ax.set_xlabel(f"{x} ({proportion_explained.iloc[0] * 100:.1f}%)")
    if len(proportion_explained) > 1:
        ax.set_ylabel(f"{y} ({proportion_explained.iloc[1] * 100:.1f}%)")
    ax.set_title(title)
    ax.grid(linestyle="--", alpha=0.4)
    return _save(fig, path)


def plot_taxa_bars(collapsed: pd.DataFrame, path: Path, *, top_n: int = 10, rank: str = "") -> Path:
    """Stacked relative-abundance bars; labels outside the top N are pooled as 'Other'."""
    totals = collapsed.sum(axis=1).replace(0, 1)
    rel = collapsed.div(totals, axis=0) * 100
    top = rel.sum(axis=0).sort_values(ascending=False).index[:top_n]
    shown = rel[top].copy()
    rest = rel.drop(columns=top).sum(axis=1)
    if (rest > 0).any():
        shown["Other"] = rest
    fig, ax = plt.subplots(figsize=(max(6, 0.4 * len(shown) + 3), 6))
    shown.plot(kind="bar", stacked=True, ax=ax, width=0.85, colormap="tab20")
    ax.set_ylabel("Relative abundance (%)")
    ax.set_xlabel("Sample")
    ax.set_title(f"Top {top_n} {rank}".strip())
    ax.legend(bbox_to_anchor=(1.02, 1), loc="upper left", fontsize=8, title=rank or None)
    plt.setp(ax.get_xticklabels(), rotation=45, ha="right")
    return _save(fig, path)


def plot_rarefaction(curves: pd.DataFrame, path: Path, *, depth: Optional[int] = None) -> Path:
    fig, ax = plt.subplots(figsize=(7, 5))
    for sid, grp in curves.groupby("sample"):
        ax.plot(grp["depth"], grp["observed"], lw=1, alpha=0.8, label=sid)
    if depth:
        ax.axvline(depth, color="grey", linestyle="--", lw=1)
    ax.set_xlabel("Reads sampled")
    ax.set_ylabel("Observed ASVs")
    ax.set_title("Rarefaction curves")
    if curves["sample"].nunique() <= 20:
        ax.legend(fontsize=7, bbox_to_anchor=(1.02, 1), loc="upper left")
    return _save(fig, path)


def plot_dispersion(dist: pd.DataFrame, path: Path, *, column: str = "") -> Path:
    """Boxplot of distance-to-centroid per group."""
    groups = sorted(dist["group"].unique())
    data = [dist.loc[dist["group"] == g, "distance"].to_numpy() for g in groups]
    fig, ax = plt.subplots(figsize=(max(5, len(groups) * 1.2), 5))
    ax.boxplot(data)
    ax.set_xticks(range(1, len(groups) + 1))
    ax.set_xticklabels(groups, rotation=45, ha="right")
    ax.set_ylabel("Distance to centroid")
    ax.set_title(f"Dispersion by {column}".strip())
    return _save(fig, path)
