# src/asvkit/commands/remove_chimeras.py
from __future__ import annotations

import json
from typing import Dict

from asvkit.analysis.tables import (
    build_read_tracking,
    chimera_summary,
    read_sample_table,
    read_sequence_table,
    write_sample_table,
)
from asvkit.commands.common import Context, load_context
from asvkit.dada2 import commands as dada2
from asvkit.utils.logger import get_logger, log_success
from asvkit.utils.project import require

LOG = get_logger("chimeras")


def setup_parser(subparsers, parent) -> None:
    p = subparsers.add_parser(
        "remove-chimeras", parents=[parent],
        help="Drop chimeric ASVs from the merged table (DADA2 removeBimeraDenovo) and track reads per stage.",
    )
    p.add_argument("--method", choices=("consensus", "pooled", "per-sample"), default=None,
                   help="Override chimeras.method from params.")
    p.set_defaults(func=run)


def remove_chimeras(ctx: Context) -> Dict[str, object]:
    lay = ctx.layout
    seqtab = lay.seqtab if ctx.dry_run else require(lay.seqtab, "denoise")
    dada2.remove_bimera_denovo(
        input_seqtab=seqtab,
        output_seqtab=lay.seqtab_nochim,
        request_path=lay.request("remove-chimeras"),
        method=ctx.params.chimeras.method,
        multithread=ctx.params.multithread,
        rscript=ctx.params.rscript,
        dry_run=ctx.dry_run,
        show_stdout=ctx.show_r,
    )
    if ctx.dry_run:
        return {}

    pre = read_sequence_table(seqtab)
    post = read_sequence_table(require(lay.seqtab_nochim, "remove-chimeras"))
    summary = chimera_summary(pre, post)
    lay.chimera_report.write_text(json.dumps(summary, indent=2), encoding="utf-8")

    track = build_read_tracking(
        read_sample_table(require(lay.filter_results, "filter")),
        read_sample_table(lay.denoise_stats) if lay.denoise_stats.exists() else None,
        post,
    )
    write_sample_table(track, lay.track)
    log_success(
        f"Chimeras: {summary['variants_removed']} of {summary['variants_before']} ASVs removed; "
        f"{summary['percent_reads_retained']}% of reads retained",
        LOG,
    )
    return summary


def run(args) -> None:
    ctx = load_context(args)
    if args.method:
        ctx.params.chimeras.method = args.method
    summary = remove_chimeras(ctx)
    if summary:
        print(f"[ok] {summary['percent_reads_retained']}% of reads retained → {ctx.layout.seqtab_nochim}")
