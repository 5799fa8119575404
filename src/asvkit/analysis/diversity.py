# src/asvkit/analysis/diversity.py
from __future__ import annotations

import math
from typing import Dict, Iterable, List, Optional, Sequence

import numpy as np
import pandas as pd
from skbio import DistanceMatrix
from skbio.diversity import alpha_diversity, beta_diversity
from skbio.stats.distance import permanova, permdisp
from skbio.stats.ordination import pcoa

from asvkit.errors import TableError
from asvkit.utils.logger import get_logger

LOG = get_logger("diversity")

# richness is counted directly; the others go through scikit-bio
_METRIC_KWARGS: Dict[str, dict] = {"shannon": {"base": math.e}}


def observed_richness(abundance: pd.DataFrame) -> pd.Series:
    return (abundance > 0).sum(axis=1).rename("observed_otus")


def alpha_diversity_table(
    abundance: pd.DataFrame,
    metrics: Sequence[str] = ("observed_otus", "shannon", "simpson"),
) -> pd.DataFrame:
    """Samples x metrics frame."""
    ids = [str(i) for i in abundance.index]
    counts = abundance.to_numpy(dtype="int64")
    cols: Dict[str, pd.Series] = {}
    for metric in metrics:
        if metric in ("observed_otus", "observed", "richness"):
            cols[metric] = pd.Series(observed_richness(abundance).to_numpy(), index=ids)
            continue
        res = alpha_diversity(metric, counts, ids=ids, **_METRIC_KWARGS.get(metric, {}))
        cols[metric] = pd.Series(np.asarray(res, dtype=float), index=ids)
    out = pd.DataFrame(cols)
    out.index.name = "sample"
    return out


def beta_distance(abundance: pd.DataFrame, metric: str = "braycurtis") -> DistanceMatrix:
    empty = abundance.index[abundance.sum(axis=1) == 0]
    if len(empty):
        raise TableError(f"samples without reads cannot enter a {metric} distance: {list(empty)[:5]}")
    if abundance.shape[0] < 2:
        raise TableError("at least two samples are needed for a distance matrix")
    return beta_diversity(metric, abundance.to_numpy(dtype="int64"), ids=[str(i) for i in abundance.index])


def ordinate(dm: DistanceMatrix):
    """PCoA -> (coordinates frame PC1.., proportion explained series)."""
    res = pcoa(dm)
    coords = res.samples.copy()
    coords.index = [str(i) for i in coords.index]
    coords.index.name = "sample"
    return coords, res.proportion_explained.copy()


def _grouping(dm: DistanceMatrix, metadata: pd.DataFrame, column: str) -> List[str]:
    if column not in metadata.columns:
        raise KeyError(f"metadata has no column {column!r}")
    values = metadata.reindex(list(dm.ids))[column]
    if values.isna().any():
        missing = list(values.index[values.isna()])
        raise TableError(f"samples without a {column!r} value: {missing[:5]}")
    return [str(v) for v in values]


def _as_record(res: pd.Series, column: str) -> Dict[str, object]:
    return {
        "column": column,
        "method": str(res["method name"]),
        "statistic_name": str(res["test statistic name"]),
        "statistic": float(res["test statistic"]),
        "p_value": float(res["p-value"]) if pd.notna(res["p-value"]) else float("nan"),
        "sample_size": int(res["sample size"]),
        "n_groups": int(res["number of groups"]),
        "permutations": int(res["number of permutations"]),
    }


def permanova_test(
    dm: DistanceMatrix,
    metadata: pd.DataFrame,
    column: str,
    *,
    permutations: int = 999,
    seed: Optional[int] = None,
) -> Dict[str, object]:
    grouping = _grouping(dm, metadata, column)
    res = permanova(dm, grouping, permutations=permutations, seed=seed)
    return _as_record(res, column)


def permdisp_test(
    dm: DistanceMatrix,
    metadata: pd.DataFrame,
    column: str,
    *,
    permutations: int = 999,
    seed: Optional[int] = None,
) -> Dict[str, object]:
    grouping = _grouping(dm, metadata, column)
    res = permdisp(dm, grouping, permutations=permutations, seed=seed)
    return _as_record(res, column)


def distances_to_centroid(coords: pd.DataFrame, grouping: pd.Series) -> pd.DataFrame:
    """
    Euclidean distance of each sample to its group centroid in PCoA space
    (the quantity PERMDISP compares). Returns columns: group, distance.
    """
    grouping = grouping.reindex(coords.index).astype(str)
    rows = []
    for group, idx in grouping.groupby(grouping).groups.items():
        pts = coords.loc[list(idx)].to_numpy(dtype=float)
        centre = pts.mean(axis=0)
        for sid, p in zip(idx, pts):
            rows.append({"sample": sid, "group": group, "distance": float(np.linalg.norm(p - centre))})
    return pd.DataFrame(rows).set_index("sample").reindex(coords.index)


# ---------------------------
# Rarefaction
# ---------------------------

def subsample(counts: np.ndarray, depth: int, rng: np.random.Generator) -> np.ndarray:
    """Draw *depth* reads without replacement from one sample's counts."""
    counts = np.asarray(counts, dtype="int64")
    if depth > counts.sum():
        raise ValueError(f"depth {depth} exceeds sample total {int(counts.sum())}")
    return rng.multivariate_hypergeometric(counts, depth)


def rarefy(abundance: pd.DataFrame, depth: int, *, seed: int = 42) -> pd.DataFrame:
    """Even-depth table; samples below *depth* are dropped, empty variants removed."""
    if depth <= 0:
        raise ValueError("rarefaction depth must be positive")
    rng = np.random.default_rng(seed)
    totals = abundance.sum(axis=1)
    keep = totals.index[totals >= depth]
    dropped = sorted(set(abundance.index) - set(keep))
    if dropped:
        LOG.warning("Rarefying to %d drops %d samples: %s", depth, len(dropped), dropped[:5])
    rows = [subsample(abundance.loc[s].to_numpy(), depth, rng) for s in keep]
    out = pd.DataFrame(rows, index=keep, columns=abundance.columns, dtype="int64")
    return out.loc[:, out.sum(axis=0) > 0]


def rarefaction_curves(
    abundance: pd.DataFrame,
    *,
    steps: int = 20,
    max_depth: Optional[int] = None,
    seed: int = 42,
) -> pd.DataFrame:
    """Observed variants at increasing depths per sample; long frame (sample, depth, observed)."""
    rng = np.random.default_rng(seed)
    rows = []
    for sid, counts in abundance.iterrows():
        total = int(counts.sum())
        if total == 0:
            continue
        top = min(total, max_depth) if max_depth else total
        depths = _depth_grid(top, steps)
        arr = counts.to_numpy(dtype="int64")
        for d in depths:
            observed = int((subsample(arr, d, rng) > 0).sum())
            rows.append({"sample": str(sid), "depth": int(d), "observed": observed})
    return pd.DataFrame(rows, columns=["sample", "depth", "observed"])


def _depth_grid(top: int, steps: int) -> Iterable[int]:
    steps = max(1, int(steps))
    grid = np.unique(np.linspace(1, top, num=steps + 1, dtype="int64"))
    return [int(d) for d in grid if d > 0]
