# src/asvkit/analysis/tables.py
from __future__ import annotations

from pathlib import Path
from typing import Dict, Iterable, List, Optional

import numpy as np
import pandas as pd

from asvkit.errors import TableError
from asvkit.utils.logger import get_logger

LOG = get_logger("tables")

SAMPLE_COL = "sample"
TRACK_COLUMNS = ["input", "filtered", "dereplicated", "denoised", "nonchim"]


def _dupes(labels: Iterable[str]) -> List[str]:
    s = pd.Index(labels)
    return sorted(set(s[s.duplicated()].astype(str)))


def validate_abundance(df: pd.DataFrame, *, what: str = "abundance matrix") -> pd.DataFrame:
    """
    Enforce the matrix invariants: unique row/column labels and non-negative
    integer counts. Returns the frame with an int64 dtype.
    """
    d = _dupes(df.index)
    if d:
        raise TableError(f"{what}: duplicate sample ids: {d[:5]}")
    d = _dupes(df.columns)
    if d:
        raise TableError(f"{what}: duplicate variant labels: {d[:5]}")
    if df.empty:
        return df.astype("int64")
    values = df.to_numpy()
    if not np.issubdtype(values.dtype, np.number):
        try:
            values = values.astype(float)
        except (TypeError, ValueError) as e:
            raise TableError(f"{what}: non-numeric counts") from e
    if np.isnan(values).any():
        raise TableError(f"{what}: missing counts")
    if (values < 0).any():
        raise TableError(f"{what}: negative counts")
    if not np.all(np.equal(np.mod(values, 1), 0)):
        raise TableError(f"{what}: non-integer counts")
    return df.astype("int64")


def read_sequence_table(path: Path) -> pd.DataFrame:
    """Wide TSV (sample column, then one column per variant) -> samples x variants frame."""
    df = pd.read_csv(path, sep="\t", dtype={SAMPLE_COL: str})
    if df.columns.empty or df.columns[0] != SAMPLE_COL:
        raise TableError(f"{path}: first column must be '{SAMPLE_COL}'")
    df = df.set_index(SAMPLE_COL)
    df.index.name = SAMPLE_COL
    df.columns = df.columns.astype(str)
    return validate_abundance(df, what=str(path))


def write_sequence_table(df: pd.DataFrame, path: Path) -> Path:
    validate_abundance(df)
    path.parent.mkdir(parents=True, exist_ok=True)
    out = df.copy()
    out.index.name = SAMPLE_COL
    out.to_csv(path, sep="\t")
    return path


def bind_rows(tables: Iterable[pd.DataFrame]) -> pd.DataFrame:
    """
    Stack per-dataset tables that share columns (e.g. filter results).
    Every input row is kept; sample ids must stay unique across inputs.
    """
    frames = [t for t in tables]
    if not frames:
        raise TableError("nothing to bind")
    out = pd.concat(frames, axis=0, sort=False)
    expected = sum(len(t) for t in frames)
    if len(out) != expected:
        raise TableError(f"row-bind produced {len(out)} rows, expected {expected}")
    d = _dupes(out.index)
    if d:
        raise TableError(f"sample ids present in more than one dataset: {d[:5]}")
    return out


def merge_sequence_tables(tables: Iterable[pd.DataFrame]) -> pd.DataFrame:
    """Union of variants across datasets; samples are stacked, absent variants count 0."""
    frames = [validate_abundance(t) for t in tables]
    if not frames:
        raise TableError("nothing to merge")
    merged = bind_rows(frames).fillna(0)
    # keep the most abundant variants first, as DADA2 does
    order = merged.sum(axis=0).sort_values(ascending=False, kind="mergesort").index
    return validate_abundance(merged[order].astype("int64"), what="merged sequence table")


def chimera_retention_percent(pre: pd.DataFrame, post: pd.DataFrame) -> float:
    """Percent of reads kept by chimera removal: round(100 * sum(post) / sum(pre), 4)."""
    pre_sum = int(np.asarray(pre.to_numpy(), dtype="int64").sum())
    post_sum = int(np.asarray(post.to_numpy(), dtype="int64").sum())
    if pre_sum <= 0:
        raise TableError("sequence table before chimera removal has no reads")
    return round(100.0 * post_sum / pre_sum, 4)


def chimera_summary(pre: pd.DataFrame, post: pd.DataFrame) -> Dict[str, object]:
    removed = sorted(set(pre.columns) - set(post.columns))
    return {
        "variants_before": int(pre.shape[1]),
        "variants_after": int(post.shape[1]),
        "variants_removed": len(removed),
        "reads_before": int(pre.to_numpy().sum()),
        "reads_after": int(post.to_numpy().sum()),
        "percent_reads_retained": chimera_retention_percent(pre, post),
    }


def read_sample_table(path: Path) -> pd.DataFrame:
    """Small per-sample TSV (filter results, denoise stats) indexed by sample id."""
    df = pd.read_csv(path, sep="\t", dtype={SAMPLE_COL: str})
    if SAMPLE_COL not in df.columns:
        raise TableError(f"{path}: missing '{SAMPLE_COL}' column")
    df = df.set_index(SAMPLE_COL)
    d = _dupes(df.index)
    if d:
        raise TableError(f"{path}: duplicate sample ids: {d[:5]}")
    return df


def write_sample_table(df: pd.DataFrame, path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    out = df.copy()
    out.index.name = SAMPLE_COL
    out.to_csv(path, sep="\t")
    return path


def build_read_tracking(
    filter_results: pd.DataFrame,
    denoise_stats: Optional[pd.DataFrame] = None,
    nonchim: Optional[pd.DataFrame] = None,
) -> pd.DataFrame:
    """
    Per-sample read counts through the pipeline, joined on sample id.
    Samples that dropped out at a stage get 0 for that stage and after.
    """
    track = pd.DataFrame(index=filter_results.index.astype(str))
    track.index.name = SAMPLE_COL
    track["input"] = filter_results["reads_in"]
    track["filtered"] = filter_results["reads_out"]
    if denoise_stats is not None:
        track = track.join(denoise_stats[["dereplicated", "denoised"]], how="left")
    if nonchim is not None:
        track = track.join(nonchim.sum(axis=1).rename("nonchim"), how="left")
    cols = [c for c in TRACK_COLUMNS if c in track.columns]
    return track[cols].fillna(0).astype("int64")
