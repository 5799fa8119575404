# src/asvkit/cli.py
from __future__ import annotations

import argparse
import subprocess
import sys
from typing import List, Optional

from asvkit.commands.common import add_parent_args
from asvkit.errors import AsvkitError
from asvkit.utils.logger import setup_logger

from asvkit.commands import init as cmd_init
from asvkit.commands import doctor as cmd_doctor
from asvkit.commands import samples as cmd_samples
from asvkit.commands import metadata_validate as cmd_mdval
from asvkit.commands import filter_reads as cmd_filter
from asvkit.commands import learn_errors as cmd_errors
from asvkit.commands import denoise as cmd_denoise
from asvkit.commands import remove_chimeras as cmd_chimeras
from asvkit.commands import assign_taxonomy as cmd_taxonomy
from asvkit.commands import build as cmd_build
from asvkit.commands import export as cmd_export
from asvkit.commands import stats as cmd_stats
from asvkit.commands import auto_run as cmd_auto


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="asvkit",
        description="DADA2 amplicon pipeline CLI (init, filter, learn-errors, denoise, chimeras, taxonomy, build, stats, auto-run).",
    )
    parent = argparse.ArgumentParser(add_help=False)
    add_parent_args(parent)

    subparsers = parser.add_subparsers(dest="command", required=True)
    for mod in (cmd_init, cmd_doctor, cmd_samples, cmd_mdval, cmd_filter, cmd_errors, cmd_denoise,
                cmd_chimeras, cmd_taxonomy, cmd_build, cmd_export, cmd_stats, cmd_auto):
        mod.setup_parser(subparsers, parent)
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    logger = setup_logger()
    parser = build_parser()
    args = parser.parse_args(argv)
    logger.debug("Parsed args: %r", args)
    try:
        args.func(args)
    except (AsvkitError, FileNotFoundError, NotADirectoryError) as e:
        logger.error("%s failed: %s", args.command, e)
        print(f"[fail] {e}", file=sys.stderr)
        sys.exit(1)
    except subprocess.CalledProcessError as e:
        logger.error("%s failed: command exited %s: %s", args.command, e.returncode, e.cmd)
        print(f"[fail] R step exited with status {e.returncode}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
