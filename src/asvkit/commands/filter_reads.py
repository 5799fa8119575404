# src/asvkit/commands/filter_reads.py
from __future__ import annotations

from pathlib import Path
from typing import List

from asvkit.analysis.tables import bind_rows, read_sample_table, write_sample_table
from asvkit.commands.common import Context, add_dataset_arg, load_context
from asvkit.commands.samples import discover_all
from asvkit.config.schema import DatasetConfig
from asvkit.dada2 import commands as dada2
from asvkit.utils.logger import get_logger, log_success
from asvkit.utils.samples import Sample

LOG = get_logger("filter")


def setup_parser(subparsers, parent) -> None:
    p = subparsers.add_parser(
        "filter", parents=[parent],
        help="Quality filter/trim raw reads per dataset (DADA2 filterAndTrim).",
        description="Writes <project>/datasets/<name>/filtered/*.fastq.gz and a row-bound filter_results.tsv.",
    )
    add_dataset_arg(p)
    p.set_defaults(func=run)


def filter_dataset(ctx: Context, dataset: DatasetConfig, samples: List[Sample]) -> Path:
    dl = ctx.layout.dataset(dataset.name)
    dl.filtered_dir.mkdir(parents=True, exist_ok=True)
    fp = ctx.params.filter
    rows = [
        {"sample": s.sample_id, "raw": str(s.raw_path), "filtered": str(dl.filtered_path(s.sample_id))}
        for s in samples
    ]
    LOG.info("Filtering %d samples of dataset %s", len(rows), dataset.name)
    dada2.filter_and_trim(
        samples=rows,
        output_table=dl.filter_results,
        request_path=dl.request("filter"),
        trunc_len=fp.trunc_len,
        trim_left=fp.trim_left,
        max_n=fp.max_n,
        max_ee=fp.max_ee,
        trunc_q=fp.trunc_q,
        min_len=fp.min_len,
        rm_phix=fp.rm_phix,
        compress=fp.compress,
        multithread=ctx.params.multithread,
        rscript=ctx.params.rscript,
        dry_run=ctx.dry_run,
        show_stdout=ctx.show_r,
    )
    return dl.filter_results


def filter_all(ctx: Context, names=None) -> Path:
    """Filter every selected dataset, then row-bind their filter results."""
    found = discover_all(ctx.params, names)
    per_dataset = [filter_dataset(ctx, ctx.params.dataset(n), samples) for n, samples in found.items()]
    if ctx.dry_run:
        LOG.info("[dry-run] not combining filter results")
        return ctx.layout.filter_results
    tables = [read_sample_table(p) for p in per_dataset]
    combined = bind_rows(tables)
    for name, t in zip(found, tables):
        dropped = t.index[t["reads_out"] == 0]
        if len(dropped):
            LOG.warning("Dataset %s: no reads passed filtering for %s", name, list(dropped))
    write_sample_table(combined, ctx.layout.filter_results)
    log_success(f"Filtered {len(combined)} samples → {ctx.layout.filter_results}", LOG)
    return ctx.layout.filter_results


def run(args) -> None:
    ctx = load_context(args)
    out = filter_all(ctx, args.datasets)
    print(f"[ok] filter results → {out}")
