# src/asvkit/analysis/depth.py
from __future__ import annotations

from typing import Iterable, List, Tuple


def _sorted_depths(totals: Iterable[float]) -> List[int]:
    return sorted(int(t) for t in totals)


def choose_sampling_depth(
    totals: Iterable[float],
    retain_fraction: float = 0.90,
    min_depth: int = 1000,
) -> int:
    """
    Depth that keeps roughly *retain_fraction* of samples: the (1 - retain_fraction)
    quantile of per-sample totals, never below *min_depth*.
    """
    freqs = _sorted_depths(totals)
    if not freqs:
        return min_depth
    k = int((1.0 - retain_fraction) * len(freqs))
    k = max(0, min(k, len(freqs) - 1))
    return max(min_depth, freqs[k])


def count_samples_at_or_above(totals: Iterable[float], depth: int) -> int:
    if depth <= 0:
        return 0
    return sum(1 for f in _sorted_depths(totals) if f >= depth)


def max_depth_with_at_least(totals: Iterable[float], n_samples: int, *, floor: int = 1) -> int:
    """
    Largest depth such that >= n_samples have counts >= that depth.
    If impossible, returns 'floor'.
    """
    freqs = sorted(_sorted_depths(totals), reverse=True)
    if not freqs or n_samples <= 0:
        return floor
    n_samples = min(n_samples, len(freqs))
    return max(floor, freqs[n_samples - 1])


def choose_depth_and_count(
    totals: Iterable[float],
    retain_fraction: float = 0.90,
    min_depth: int = 1000,
) -> Tuple[int, int]:
    """
    (depth, n_retained). When the quantile/min_depth choice would keep fewer than
    two samples, fall back to the deepest depth that still keeps two.
    """
    totals = list(totals)
    depth = choose_sampling_depth(totals, retain_fraction=retain_fraction, min_depth=min_depth)
    kept = count_samples_at_or_above(totals, depth)
    if kept < 2 and len(totals) >= 2:
        depth = max_depth_with_at_least(totals, 2)
        kept = count_samples_at_or_above(totals, depth)
    return depth, kept
