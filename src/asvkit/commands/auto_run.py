# src/asvkit/commands/auto_run.py
from __future__ import annotations

from asvkit.analysis.bundle import export_bundle, load_bundle
from asvkit.analysis.stats import run_stats
from asvkit.commands.assign_taxonomy import assign_taxonomy
from asvkit.commands.build import build_project_bundle
from asvkit.commands.common import Context, add_dataset_arg, load_context, select_datasets
from asvkit.commands.denoise import denoise_all
from asvkit.commands.filter_reads import filter_all
from asvkit.commands.learn_errors import learn_dataset_errors
from asvkit.commands.remove_chimeras import remove_chimeras
from asvkit.utils.logger import get_logger

LOG = get_logger("auto")


def setup_parser(subparsers, parent) -> None:
    p = subparsers.add_parser(
        "auto-run", parents=[parent],
        help="End-to-end: filter → learn errors → denoise/merge → remove chimeras → taxonomy → build → export → stats.",
    )
    add_dataset_arg(p)
    p.add_argument("--resume", action="store_true",
                   help="Skip stages whose outputs already exist in the project directory.")
    p.add_argument("--skip-taxonomy", action="store_true")
    p.add_argument("--skip-stats", action="store_true")
    p.set_defaults(func=run)


def _done(ctx: Context, resume: bool, *paths) -> bool:
    return resume and not ctx.dry_run and all(p.exists() for p in paths)


def run_pipeline(ctx: Context, *, names=None, resume: bool = False,
                 skip_taxonomy: bool = False, skip_stats: bool = False) -> None:
    lay = ctx.layout
    datasets = select_datasets(ctx.params, names)

    if _done(ctx, resume, lay.filter_results):
        LOG.info("resume: filter results present; skipping filter")
    else:
        filter_all(ctx, names)

    for ds in datasets:
        if _done(ctx, resume, lay.dataset(ds.name).error_model):
            LOG.info("resume: error model for %s present; skipping", ds.name)
            continue
        learn_dataset_errors(ctx, ds)

    if not _done(ctx, resume, lay.seqtab):
        denoise_all(ctx, datasets)
    if not _done(ctx, resume, lay.seqtab_nochim, lay.track):
        remove_chimeras(ctx)

    with_taxonomy = not skip_taxonomy and ctx.params.taxonomy.reference is not None
    if not with_taxonomy:
        LOG.info("No taxonomy step (skipped or no reference configured)")
    elif not _done(ctx, resume, lay.taxonomy):
        assign_taxonomy(ctx)

    if ctx.dry_run:
        print(f"[ok] auto-run (dry-run) → {lay.project_dir}")
        return

    bundle = build_project_bundle(ctx, with_taxonomy=with_taxonomy)
    export_bundle(bundle, lay.exports_dir)
    print(f"[ok] exports → {lay.exports_dir}")

    if skip_stats:
        print(f"[ok] auto-run (skipped stats) → {lay.project_dir}")
        return
    run_stats(load_bundle(lay.bundle), lay.stats_dir, ctx.params.stats)
    print(f"[ok] auto-run complete → {lay.project_dir}")


def run(args) -> None:
    ctx = load_context(args)
    run_pipeline(ctx, names=args.datasets, resume=args.resume,
                 skip_taxonomy=args.skip_taxonomy, skip_stats=args.skip_stats)
