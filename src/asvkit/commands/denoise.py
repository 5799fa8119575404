# src/asvkit/commands/denoise.py
from __future__ import annotations

from pathlib import Path
from typing import List

from asvkit.analysis.tables import (
    bind_rows,
    merge_sequence_tables,
    read_sample_table,
    read_sequence_table,
    write_sample_table,
    write_sequence_table,
)
from asvkit.commands.common import Context, add_dataset_arg, load_context, select_datasets
from asvkit.commands.learn_errors import filtered_samples
from asvkit.config.schema import DatasetConfig
from asvkit.dada2 import commands as dada2
from asvkit.utils.logger import get_logger, log_success
from asvkit.utils.project import require

LOG = get_logger("denoise")


def setup_parser(subparsers, parent) -> None:
    p = subparsers.add_parser(
        "denoise", parents=[parent],
        help="Dereplicate, denoise and tabulate ASVs per dataset, then merge the tables.",
        description=(
            "Runs DADA2 derepFastq → dada → makeSequenceTable for each dataset with its "
            "learned error model and merges the per-dataset tables into <project>/seqtab.tsv."
        ),
    )
    add_dataset_arg(p)
    p.set_defaults(func=run)


def denoise_dataset(ctx: Context, dataset: DatasetConfig) -> Path:
    dl = ctx.layout.dataset(dataset.name)
    rows = filtered_samples(ctx, dataset)
    if not rows:
        raise FileNotFoundError(f"No filtered reads for dataset {dataset.name} under {dl.filtered_dir}")
    dada2.denoise(
        samples=rows,
        error_model=dl.error_model if ctx.dry_run else require(dl.error_model, "learn-errors"),
        output_seqtab=dl.seqtab,
        output_stats=dl.denoise_stats,
        request_path=dl.request("denoise"),
        pool=ctx.params.denoise.pool,
        multithread=ctx.params.multithread,
        rscript=ctx.params.rscript,
        dry_run=ctx.dry_run,
        show_stdout=ctx.show_r,
    )
    return dl.seqtab


def denoise_all(ctx: Context, datasets: List[DatasetConfig]) -> Path:
    """Denoise each dataset and merge sequence tables (and per-sample stats) across them."""
    paths = [denoise_dataset(ctx, ds) for ds in datasets]
    if ctx.dry_run:
        LOG.info("[dry-run] not merging sequence tables")
        return ctx.layout.seqtab
    merged = merge_sequence_tables(read_sequence_table(p) for p in paths)
    write_sequence_table(merged, ctx.layout.seqtab)
    stats = bind_rows(read_sample_table(ctx.layout.dataset(ds.name).denoise_stats) for ds in datasets)
    write_sample_table(stats, ctx.layout.denoise_stats)
    log_success(f"Sequence table: {merged.shape[0]} samples x {merged.shape[1]} ASVs → {ctx.layout.seqtab}", LOG)
    return ctx.layout.seqtab


def run(args) -> None:
    ctx = load_context(args)
    out = denoise_all(ctx, select_datasets(ctx.params, args.datasets))
    print(f"[ok] sequence table → {out}")
