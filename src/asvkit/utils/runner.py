# src/asvkit/utils/runner.py
from __future__ import annotations

import os
import shlex
import subprocess
import time
from pathlib import Path
from typing import Mapping, Optional, Sequence

from asvkit.utils.logger import get_logger

LOG = get_logger("runner")

# lines of a failing tool's captured output echoed into the log
_TAIL = 40


def _tail(text: Optional[str]) -> str:
    lines = (text or "").rstrip().splitlines()
    return "\n".join(lines[-_TAIL:])


def run_command(
    cmd: Sequence[object],
    *,
    dry_run: bool = False,
    capture: bool = False,
    cwd: Optional[Path] = None,
    env: Optional[Mapping[str, str]] = None,
) -> subprocess.CompletedProcess:
    """
    Run an external tool (Rscript and friends) and fail loudly.

    The command line is logged before anything happens; with dry_run that is
    all that happens. capture=True keeps stdout/stderr on the result instead of
    streaming them. A non-zero exit raises CalledProcessError once the tail of
    any captured output has been logged; a missing executable raises
    FileNotFoundError.
    """
    argv = [str(c) for c in cmd]
    line = shlex.join(argv)
    if dry_run:
        LOG.info("[dry-run] %s", line)
        return subprocess.CompletedProcess(argv, 0, "", "")

    LOG.info("$ %s", line)
    merged_env = {**os.environ, **{str(k): str(v) for k, v in (env or {}).items()}}
    started = time.monotonic()
    try:
        proc = subprocess.run(argv, cwd=cwd, env=merged_env, text=True, capture_output=capture, check=True)
    except FileNotFoundError:
        LOG.error("%s not found; is it installed and on PATH?", argv[0])
        raise
    except subprocess.CalledProcessError as e:
        for label, text in (("stdout", e.stdout), ("stderr", e.stderr)):
            if text:
                LOG.error("%s (last %d lines):\n%s", label, _TAIL, _tail(text))
        LOG.error("%s exited with status %s", argv[0], e.returncode)
        raise

    LOG.debug("finished in %.1fs", time.monotonic() - started)
    if capture and proc.stdout:
        LOG.debug("stdout:\n%s", _tail(proc.stdout))
    return proc
