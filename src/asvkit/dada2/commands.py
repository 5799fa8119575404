# src/asvkit/dada2/commands.py
from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Optional, Sequence

from asvkit.utils.logger import get_logger
from asvkit.utils.runner import run_command

LOG = get_logger("dada2")

STEPS_SCRIPT = Path(__file__).with_name("dada2_steps.R")


def _run_step(
    step: str,
    request: Dict[str, Any],
    request_path: Path,
    *,
    rscript: str = "Rscript",
    dry_run: bool = False,
    show_stdout: bool = False,
) -> Path:
    """Write the JSON request next to the outputs and hand it to the bundled R script."""
    request_path.parent.mkdir(parents=True, exist_ok=True)
    request_path.write_text(json.dumps(request, indent=2, default=str), encoding="utf-8")
    LOG.debug("DADA2 %s request → %s", step, request_path)
    run_command([rscript, str(STEPS_SCRIPT), step, str(request_path)],
                dry_run=dry_run, capture=not show_stdout)
    return request_path


def dada2_version(*, rscript: str = "Rscript") -> str:
    out = run_command([rscript, str(STEPS_SCRIPT), "version"], capture=True)
    return (out.stdout or "").strip()


# ---------------------------
# Filter / trim
# ---------------------------

def filter_and_trim(
    *,
    samples: Sequence[Dict[str, str]],
    output_table: Path,
    request_path: Path,
    trunc_len: int = 0,
    trim_left: int = 0,
    max_n: int = 0,
    max_ee: float = 2.0,
    trunc_q: int = 2,
    min_len: int = 50,
    rm_phix: bool = True,
    compress: bool = True,
    multithread: int = 0,
    rscript: str = "Rscript",
    dry_run: bool = False,
    show_stdout: bool = False,
) -> None:
    """samples: rows of {'sample', 'raw', 'filtered'}; writes sample/reads_in/reads_out TSV."""
    request = {
        "samples": [dict(r) for r in samples],
        "params": {
            "trunc_len": int(trunc_len),
            "trim_left": int(trim_left),
            "max_n": int(max_n),
            "max_ee": float(max_ee),
            "trunc_q": int(trunc_q),
            "min_len": int(min_len),
            "rm_phix": bool(rm_phix),
            "compress": bool(compress),
        },
        "multithread": int(multithread),
        "output": str(output_table),
    }
    _run_step("filter", request, request_path, rscript=rscript, dry_run=dry_run, show_stdout=show_stdout)


# ---------------------------
# Error model
# ---------------------------

def learn_errors(
    *,
    filtered_files: Sequence[Path],
    output_model: Path,
    request_path: Path,
    nbases: int = 100_000_000,
    randomize: bool = False,
    plot_path: Optional[Path] = None,
    multithread: int = 0,
    rscript: str = "Rscript",
    dry_run: bool = False,
    show_stdout: bool = False,
) -> None:
    request = {
        "files": [str(p) for p in filtered_files],
        "nbases": int(nbases),
        "randomize": bool(randomize),
        "multithread": int(multithread),
        "output": str(output_model),
        "plot": str(plot_path) if plot_path else None,
    }
    _run_step("learn-errors", request, request_path, rscript=rscript, dry_run=dry_run, show_stdout=show_stdout)


# ---------------------------
# Dereplicate + denoise + sequence table
# ---------------------------

def denoise(
    *,
    samples: Sequence[Dict[str, str]],
    error_model: Path,
    output_seqtab: Path,
    output_stats: Path,
    request_path: Path,
    pool: str = "false",
    multithread: int = 0,
    rscript: str = "Rscript",
    dry_run: bool = False,
    show_stdout: bool = False,
) -> None:
    """samples: rows of {'sample', 'filtered'}; writes the wide sequence table and per-sample stats."""
    request = {
        "samples": [dict(r) for r in samples],
        "error_model": str(error_model),
        "pool": str(pool),
        "multithread": int(multithread),
        "seqtab": str(output_seqtab),
        "stats": str(output_stats),
    }
    _run_step("denoise", request, request_path, rscript=rscript, dry_run=dry_run, show_stdout=show_stdout)


# ---------------------------
# Chimeras / taxonomy
# ---------------------------

def remove_bimera_denovo(
    *,
    input_seqtab: Path,
    output_seqtab: Path,
    request_path: Path,
    method: str = "consensus",
    multithread: int = 0,
    rscript: str = "Rscript",
    dry_run: bool = False,
    show_stdout: bool = False,
) -> None:
    request = {
        "seqtab": str(input_seqtab),
        "method": method,
        "multithread": int(multithread),
        "output": str(output_seqtab),
    }
    _run_step("remove-chimeras", request, request_path, rscript=rscript, dry_run=dry_run, show_stdout=show_stdout)


def assign_taxonomy(
    *,
    input_seqtab: Path,
    reference: Path,
    output_taxonomy: Path,
    request_path: Path,
    min_boot: int = 50,
    try_rc: bool = False,
    multithread: int = 0,
    rscript: str = "Rscript",
    dry_run: bool = False,
    show_stdout: bool = False,
) -> None:
    request = {
        "seqtab": str(input_seqtab),
        "reference": str(reference),
        "min_boot": int(min_boot),
        "try_rc": bool(try_rc),
        "multithread": int(multithread),
        "output": str(output_taxonomy),
    }
    _run_step("assign-taxonomy", request, request_path, rscript=rscript, dry_run=dry_run, show_stdout=show_stdout)
