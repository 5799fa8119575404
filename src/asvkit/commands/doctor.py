# src/asvkit/commands/doctor.py
from __future__ import annotations

import shutil
import subprocess
import sys

from asvkit.commands.common import load_context
from asvkit.dada2.commands import dada2_version
from asvkit.utils.logger import get_logger

LOG = get_logger("doctor")


def setup_parser(subparsers, parent) -> None:
    p = subparsers.add_parser(
        "doctor", parents=[parent],
        help="Preflight checks for Rscript, DADA2 and configured inputs.",
    )
    p.set_defaults(func=run)


def _ok(x: bool) -> str:
    return "OK" if x else "MISSING"


def run(args) -> None:
    ctx = load_context(args)
    rscript = ctx.params.rscript

    # 1) Rscript presence
    path = shutil.which(rscript)
    print(f"[check] {rscript} on PATH: {_ok(bool(path))} ({path or 'not found'})")
    if not path:
        print(f"error: '{rscript}' executable not found on PATH.", file=sys.stderr)
        sys.exit(2)

    # 2) dada2 + jsonlite load
    try:
        version = dada2_version(rscript=rscript)
        print(f"[check] dada2 version: {version or 'unknown'}")
    except subprocess.CalledProcessError as e:
        print(f"error: R could not load dada2/jsonlite: {e}", file=sys.stderr)
        sys.exit(3)

    # 3) configured inputs
    bad = []
    for ds in ctx.params.datasets:
        ok = ds.fastq_dir.is_dir()
        print(f"[check] dataset {ds.name}: {ds.fastq_dir} {_ok(ok)}")
        if not ok:
            bad.append(str(ds.fastq_dir))
    for label, p in (("reference", ctx.params.taxonomy.reference), ("metadata", ctx.params.metadata.file)):
        if p is None:
            print(f"[check] {label}: not configured")
            continue
        print(f"[check] {label}: {p} {_ok(p.exists())}")
        if not p.exists():
            bad.append(str(p))

    if bad:
        print("error: missing inputs: " + ", ".join(bad), file=sys.stderr)
        sys.exit(4)
    print("[ok] environment looks good.")
