# src/asvkit/commands/learn_errors.py
from __future__ import annotations

from pathlib import Path
from typing import Dict, List

from asvkit.analysis.tables import read_sample_table
from asvkit.commands.common import Context, add_dataset_arg, load_context, select_datasets
from asvkit.config.schema import DatasetConfig
from asvkit.dada2 import commands as dada2
from asvkit.utils.logger import get_logger, log_success
from asvkit.utils.project import require
from asvkit.utils.samples import discover_samples

LOG = get_logger("errors")


def setup_parser(subparsers, parent) -> None:
    p = subparsers.add_parser(
        "learn-errors", parents=[parent],
        help="Learn a substitution error model per dataset (DADA2 learnErrors).",
    )
    add_dataset_arg(p)
    p.set_defaults(func=run)


def filtered_samples(ctx: Context, dataset: DatasetConfig) -> List[Dict[str, str]]:
    """
    {'sample', 'filtered'} rows for samples that kept reads after filtering.
    Samples whose filtered file is absent are skipped with a warning.
    """
    dl = ctx.layout.dataset(dataset.name)
    if ctx.dry_run and not dl.filter_results.exists():
        return [{"sample": s.sample_id, "filtered": str(dl.filtered_path(s.sample_id))}
                for s in discover_samples(dataset)]
    results = read_sample_table(require(dl.filter_results, "filter"))
    rows: List[Dict[str, str]] = []
    for sid, rec in results.iterrows():
        path = dl.filtered_path(str(sid))
        if int(rec["reads_out"]) <= 0 or not (path.exists() or ctx.dry_run):
            LOG.warning("Dataset %s: %s has no filtered reads; skipping", dataset.name, sid)
            continue
        rows.append({"sample": str(sid), "filtered": str(path)})
    return rows


def learn_dataset_errors(ctx: Context, dataset: DatasetConfig) -> Path:
    dl = ctx.layout.dataset(dataset.name)
    rows = filtered_samples(ctx, dataset)
    if not rows:
        raise FileNotFoundError(f"No filtered reads for dataset {dataset.name} under {dl.filtered_dir}")
    ep = ctx.params.errors
    dada2.learn_errors(
        filtered_files=[Path(r["filtered"]) for r in rows],
        output_model=dl.error_model,
        request_path=dl.request("learn-errors"),
        nbases=ep.nbases,
        randomize=ep.randomize,
        plot_path=dl.error_plot if ep.plot else None,
        multithread=ctx.params.multithread,
        rscript=ctx.params.rscript,
        dry_run=ctx.dry_run,
        show_stdout=ctx.show_r,
    )
    log_success(f"Error model for {dataset.name} → {dl.error_model}", LOG)
    return dl.error_model


def run(args) -> None:
    ctx = load_context(args)
    for ds in select_datasets(ctx.params, args.datasets):
        out = learn_dataset_errors(ctx, ds)
        print(f"[ok] {ds.name}: error model → {out}")
