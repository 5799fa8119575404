# src/asvkit/metadata/validate.py
from __future__ import annotations

from typing import Iterable, List, Tuple

import pandas as pd

from asvkit.errors import MetadataError


def check_sample_ids(metadata_ids: Iterable[str], table_ids: Iterable[str]) -> Tuple[List[str], List[str]]:
    """Return (only_in_metadata, only_in_table), both sorted."""
    s_meta = {str(s) for s in metadata_ids}
    s_ref = {str(s) for s in table_ids}
    return sorted(s_meta - s_ref), sorted(s_ref - s_meta)


def _preview(ids: List[str]) -> str:
    return f"{ids[:5]}{'...' if len(ids) > 5 else ''}"


def validate_against_table(metadata: pd.DataFrame, abundance: pd.DataFrame) -> None:
    """Metadata ids must be set-equal to the abundance matrix's sample ids."""
    only_in_meta, only_in_table = check_sample_ids(metadata.index, abundance.index)
    if only_in_meta or only_in_table:
        msg = []
        if only_in_meta:
            msg.append(f"IDs only in metadata: {_preview(only_in_meta)}")
        if only_in_table:
            msg.append(f"IDs missing from metadata: {_preview(only_in_table)}")
        raise MetadataError("; ".join(msg))


def join_metadata(metadata: pd.DataFrame, abundance: pd.DataFrame) -> pd.DataFrame:
    """Metadata re-keyed to the matrix's sample order (never positional)."""
    validate_against_table(metadata, abundance)
    out = metadata.loc[[str(s) for s in abundance.index]]
    out.index.name = "sample"
    return out
