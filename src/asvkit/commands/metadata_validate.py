# src/asvkit/commands/metadata_validate.py
from __future__ import annotations

from pathlib import Path
from typing import List

import pandas as pd

from asvkit.analysis.tables import read_sequence_table
from asvkit.commands.common import load_context
from asvkit.commands.samples import discover_all
from asvkit.errors import ConfigError
from asvkit.metadata.read import load_metadata
from asvkit.metadata.validate import validate_against_table
from asvkit.utils.logger import get_logger

LOG = get_logger("metadata.validate")


def setup_parser(subparsers, parent) -> None:
    p = subparsers.add_parser(
        "metadata-validate", parents=[parent],
        help="Check that metadata sample ids match the ASV table (or the discovered FASTQs) exactly.",
    )
    p.add_argument("--metadata-file", type=Path, default=None, help="Default: metadata.file from params.")
    p.add_argument("--delimiter", type=str, default=None)
    p.add_argument("--table", type=Path, default=None,
                   help="Sequence table TSV to check against (default: <project>/seqtab_nochim.tsv, "
                        "else the samples discovered from the datasets).")
    p.set_defaults(func=run)


def metadata_warnings(metadata: pd.DataFrame) -> List[str]:
    warnings: List[str] = []
    for col in metadata.columns:
        blank = metadata[col].isna() | (metadata[col].astype(str).str.strip() == "")
        if blank.all():
            warnings.append(f"column {col!r} is empty")
        elif blank.any():
            warnings.append(f"column {col!r} has {int(blank.sum())} blank cells")
    return warnings


def run(args) -> None:
    ctx = load_context(args)
    mp = ctx.params.metadata
    path = args.metadata_file or mp.file
    if not path:
        raise ConfigError("No metadata file: set metadata.file or pass --metadata-file.")
    metadata = load_metadata(path, delimiter=args.delimiter or mp.delimiter, header=mp.header,
                             sample_column=mp.sample_column)

    table_path = args.table or (ctx.layout.seqtab_nochim if ctx.layout.seqtab_nochim.exists() else None)
    if table_path:
        reference = read_sequence_table(table_path)
        source = str(table_path)
    else:
        ids = [s.sample_id for samples in discover_all(ctx.params).values() for s in samples]
        reference = pd.DataFrame(index=pd.Index(ids, name="sample"))
        source = "discovered FASTQs"
    validate_against_table(metadata, reference)

    for w in metadata_warnings(metadata):
        LOG.warning(w)
        print(f"[warn] {w}")
    print(f"[ok] {len(metadata)} metadata rows match {source}")
