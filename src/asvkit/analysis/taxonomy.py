# src/asvkit/analysis/taxonomy.py
from __future__ import annotations

import re
from pathlib import Path

import pandas as pd

from asvkit.errors import TableError

RANKS = ("Kingdom", "Phylum", "Class", "Order", "Family", "Genus", "Species")
UNASSIGNED = "Unassigned"

# UNITE lineages carry k__/p__/... prefixes on every rank
_PREFIX_RE = re.compile(r"^[kpcofgs]__")
_EMPTY = {"", "NA", "NaN", "nan", "None", "unidentified"}


def _clean_label(v: object) -> object:
    if v is None or (isinstance(v, float) and pd.isna(v)):
        return pd.NA
    s = _PREFIX_RE.sub("", str(v).strip())
    return pd.NA if s in _EMPTY else s


def read_taxonomy(path: Path) -> pd.DataFrame:
    """
    DADA2 assignTaxonomy TSV (sequence + rank columns) -> frame indexed by sequence
    with exactly the RANKS columns; deeper ranks missing from the file are empty.
    """
    df = pd.read_csv(path, sep="\t", dtype=str, keep_default_na=False)
    if df.columns.empty or df.columns[0] != "sequence":
        raise TableError(f"{path}: first column must be 'sequence'")
    df = df.set_index("sequence")
    if df.index.duplicated().any():
        raise TableError(f"{path}: duplicate sequences")
    return normalize_taxonomy(df)


def normalize_taxonomy(df: pd.DataFrame) -> pd.DataFrame:
    lookup = {c.lower(): c for c in df.columns}
    out = pd.DataFrame(index=df.index)
    for rank in RANKS:
        src = lookup.get(rank.lower())
        out[rank] = df[src].map(_clean_label) if src else pd.NA
    return out.astype("object")


def format_lineage(row: pd.Series) -> str:
    """'k__Fungi; p__Ascomycota; ...' down to the deepest assigned rank."""
    parts = []
    for rank in RANKS:
        v = row.get(rank)
        if v is None or pd.isna(v):
            break
        parts.append(f"{rank[0].lower()}__{v}")
    return "; ".join(parts) if parts else UNASSIGNED


def label_at_rank(taxonomy: pd.DataFrame, rank: str) -> pd.Series:
    if rank not in RANKS:
        raise ValueError(f"unknown rank {rank!r}; expected one of {', '.join(RANKS)}")
    return taxonomy[rank].astype("object").where(taxonomy[rank].notna(), UNASSIGNED)


def collapse_by_rank(abundance: pd.DataFrame, taxonomy: pd.DataFrame, rank: str) -> pd.DataFrame:
    """Sum variant counts per taxon label at *rank*; returns samples x labels."""
    labels = label_at_rank(taxonomy.reindex(abundance.columns), rank)
    return abundance.T.groupby(labels.values).sum().T
