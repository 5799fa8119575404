# src/asvkit/metadata/read.py
from __future__ import annotations

from pathlib import Path
from typing import List, Optional

import pandas as pd

from asvkit.errors import MetadataError


def _unquote(s: str) -> str:
    """Strip BOM, surrounding quotes, and outer whitespace from a single cell."""
    s = str(s).replace("\ufeff", "").strip()
    if len(s) >= 2 and ((s[0] == s[-1] == '"') or (s[0] == s[-1] == "'")):
        s = s[1:-1].strip()
    return s


def load_metadata(
    path: Path,
    *,
    delimiter: str = "\t",
    header: Optional[int] = 0,
    sample_column: Optional[str] = None,
    comment: Optional[str] = None,
) -> pd.DataFrame:
    """
    Load a delimited sample sheet with explicit parsing options.

    The sample id column (sample_column, else the first column) becomes a string
    index. An optional QIIME '#q2:types' row is dropped. Duplicate or empty ids
    raise MetadataError.
    """
    if not path.exists():
        raise MetadataError(f"Metadata file not found: {path}")
    df = pd.read_csv(path, sep=delimiter, header=header, dtype=str, comment=comment,
                     keep_default_na=False, skipinitialspace=True)
    if df.empty:
        raise MetadataError(f"Empty metadata file: {path}")
    df.columns = [_unquote(c) for c in df.columns.astype(str)]
    df = df.apply(lambda col: col.map(_unquote))

    id_col = sample_column or df.columns[0]
    if id_col not in df.columns:
        raise MetadataError(f"Sample column {id_col!r} not found in {path}")

    df = df[df[id_col].str.lower() != "#q2:types"]
    ids = df[id_col].str.strip()
    if (ids == "").any():
        raise MetadataError(f"{path}: rows with an empty sample id")
    dupes = sorted(set(ids[ids.duplicated()]))
    if dupes:
        raise MetadataError(f"Duplicate sample ids in metadata: {dupes[:5]}")

    df = df.drop(columns=[id_col])
    df.index = pd.Index(ids, name="sample")
    return coerce_numeric_columns(df)


def coerce_numeric_columns(df: pd.DataFrame, columns: Optional[List[str]] = None) -> pd.DataFrame:
    """
    Turn string columns into numbers. With *columns* given only those are
    converted; otherwise every column whose non-empty values all parse.
    """
    for col in (df.columns if columns is None else columns):
        conv = pd.to_numeric(df[col].replace("", pd.NA), errors="coerce")
        if columns is not None or (conv.notna().sum() and conv.notna().sum() == (df[col] != "").sum()):
            df[col] = conv
    return df


def write_metadata(metadata: pd.DataFrame, path: Path, *, delimiter: str = "\t") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    out = metadata.copy()
    out.index.name = "sample"
    out.to_csv(path, sep=delimiter)
    return path
