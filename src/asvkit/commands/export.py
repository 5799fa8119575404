# src/asvkit/commands/export.py
from __future__ import annotations

from pathlib import Path

from asvkit.analysis.bundle import export_bundle, load_bundle
from asvkit.commands.common import load_context


def setup_parser(subparsers, parent) -> None:
    p = subparsers.add_parser(
        "export", parents=[parent],
        help="Write ASV counts, taxonomy, FASTA and metadata from bundle.zip as plain files.",
    )
    p.add_argument("--output-dir", type=Path, default=None, help="Default: <project>/exports")
    p.set_defaults(func=run)


def run(args) -> None:
    ctx = load_context(args)
    bundle = load_bundle(ctx.layout.bundle)
    paths = export_bundle(bundle, args.output_dir or ctx.layout.exports_dir)
    for key, path in paths.items():
        print(f"[ok] {key} → {path}")
