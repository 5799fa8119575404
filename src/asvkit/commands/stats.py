# src/asvkit/commands/stats.py
from __future__ import annotations

from pathlib import Path

from asvkit.analysis.bundle import load_bundle
from asvkit.analysis.stats import run_stats
from asvkit.commands.common import load_context


def setup_parser(subparsers, parent) -> None:
    p = subparsers.add_parser(
        "stats", parents=[parent],
        help="Diversity, PCoA, PERMANOVA/PERMDISP, rarefaction and plots from bundle.zip.",
    )
    p.add_argument("--output-dir", type=Path, default=None, help="Default: <project>/stats")
    p.add_argument("--group-cols", type=str, default=None, help="Comma-separated metadata columns to test.")
    p.add_argument("--permutations", type=int, default=None)
    p.add_argument("--depth", type=int, default=None, help="Rarefaction depth (0 = choose from sample totals).")
    p.add_argument("--no-rarefy", action="store_true", help="Use raw counts for diversity and distances.")
    p.set_defaults(func=run)


def run(args) -> None:
    ctx = load_context(args)
    sp = ctx.params.stats
    if args.group_cols:
        sp.group_cols = [c.strip() for c in args.group_cols.split(",") if c.strip()]
    if args.permutations is not None:
        sp.permutations = args.permutations
    if args.depth is not None:
        sp.rarefaction_depth = args.depth
    if args.no_rarefy:
        sp.rarefy = False
    bundle = load_bundle(ctx.layout.bundle)
    out_dir = args.output_dir or ctx.layout.stats_dir
    summary = run_stats(bundle, out_dir, sp)
    for t in summary.get("tests", []):
        print(f"[{t['method']}] {t['column']}: {t['statistic_name']}={t['statistic']:.4f} p={t['p_value']:.4g}")
    print(f"[ok] stats → {out_dir}")
