# src/asvkit/commands/build.py
from __future__ import annotations

from pathlib import Path

from asvkit.analysis.bundle import AnalysisBundle, build_bundle, save_bundle
from asvkit.analysis.tables import read_sequence_table
from asvkit.analysis.taxonomy import read_taxonomy
from asvkit.commands.common import Context, load_context
from asvkit.errors import ConfigError
from asvkit.metadata.read import load_metadata
from asvkit.utils.logger import get_logger, log_success
from asvkit.utils.project import require

LOG = get_logger("build")


def setup_parser(subparsers, parent) -> None:
    p = subparsers.add_parser(
        "build", parents=[parent],
        help="Join metadata, chimera-free ASV table and taxonomy into <project>/bundle.zip.",
    )
    p.add_argument("--metadata-file", type=Path, default=None, help="Sample sheet (default: metadata.file from params).")
    p.add_argument("--delimiter", type=str, default=None, help="Metadata delimiter (default from params; tab).")
    p.add_argument("--no-taxonomy", action="store_true", help="Build without a taxonomy table.")
    p.set_defaults(func=run)


def build_project_bundle(ctx: Context, *, with_taxonomy: bool = True) -> AnalysisBundle:
    lay = ctx.layout
    mp = ctx.params.metadata
    if not mp.file:
        raise ConfigError("No metadata file: set metadata.file or pass --metadata-file.")
    metadata = load_metadata(mp.file, delimiter=mp.delimiter, header=mp.header, sample_column=mp.sample_column)
    seqtab = read_sequence_table(require(lay.seqtab_nochim, "remove-chimeras"))
    taxonomy = read_taxonomy(require(lay.taxonomy, "assign-taxonomy")) if with_taxonomy else None
    bundle = build_bundle(seqtab, taxonomy, metadata)
    save_bundle(bundle, lay.bundle)
    log_success(f"Bundle: {len(bundle.sample_ids)} samples x {len(bundle.asv_ids)} ASVs → {lay.bundle}", LOG)
    return bundle


def run(args) -> None:
    ctx = load_context(args)
    if args.metadata_file:
        ctx.params.metadata.file = args.metadata_file
    if args.delimiter:
        ctx.params.metadata.delimiter = args.delimiter
    build_project_bundle(ctx, with_taxonomy=not args.no_taxonomy)
    print(f"[ok] bundle → {ctx.layout.bundle}")
