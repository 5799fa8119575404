# src/asvkit/commands/assign_taxonomy.py
from __future__ import annotations

from pathlib import Path

from asvkit.analysis.taxonomy import read_taxonomy
from asvkit.commands.common import Context, load_context
from asvkit.dada2 import commands as dada2
from asvkit.errors import ConfigError
from asvkit.utils.logger import get_logger, log_success
from asvkit.utils.project import require

LOG = get_logger("taxonomy")


def setup_parser(subparsers, parent) -> None:
    p = subparsers.add_parser(
        "assign-taxonomy", parents=[parent],
        help="Classify chimera-free ASVs against a reference FASTA (DADA2 assignTaxonomy).",
    )
    p.add_argument("--reference", type=Path, default=None, help="Reference database FASTA (e.g. UNITE).")
    p.add_argument("--min-boot", type=int, default=None, help="Minimum bootstrap confidence (default from params).")
    p.set_defaults(func=run)


def assign_taxonomy(ctx: Context) -> Path:
    lay = ctx.layout
    tp = ctx.params.taxonomy
    if not tp.reference:
        raise ConfigError("No reference database: set taxonomy.reference or pass --reference.")
    if not ctx.dry_run:
        require(tp.reference, "download the reference database")
    dada2.assign_taxonomy(
        input_seqtab=lay.seqtab_nochim if ctx.dry_run else require(lay.seqtab_nochim, "remove-chimeras"),
        reference=tp.reference,
        output_taxonomy=lay.taxonomy,
        request_path=lay.request("assign-taxonomy"),
        min_boot=tp.min_boot,
        try_rc=tp.try_rc,
        multithread=ctx.params.multithread,
        rscript=ctx.params.rscript,
        dry_run=ctx.dry_run,
        show_stdout=ctx.show_r,
    )
    if not ctx.dry_run:
        tax = read_taxonomy(lay.taxonomy)
        assigned = tax.notna().sum()
        LOG.info("Assigned per rank: %s", ", ".join(f"{r}={int(n)}" for r, n in assigned.items()))
        log_success(f"Taxonomy for {len(tax)} ASVs → {lay.taxonomy}", LOG)
    return lay.taxonomy


def run(args) -> None:
    ctx = load_context(args)
    if args.reference:
        ctx.params.taxonomy.reference = args.reference
    if args.min_boot is not None:
        ctx.params.taxonomy.min_boot = args.min_boot
    out = assign_taxonomy(ctx)
    print(f"[ok] taxonomy → {out}")
