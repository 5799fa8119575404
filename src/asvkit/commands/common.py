# src/asvkit/commands/common.py
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from asvkit.config.load import load_params
from asvkit.config.schema import DatasetConfig, Params
from asvkit.errors import ConfigError
from asvkit.utils.project import ProjectLayout

# argparse defaults shared by every subcommand; params-file values apply only
# where the CLI was left at these
DEFAULTS = {"multithread": None, "rscript": None}


@dataclass
class Context:
    params: Params
    layout: ProjectLayout
    dry_run: bool = False
    show_r: bool = True


def add_parent_args(parent) -> None:
    parent.add_argument("--params", type=Path, default=None, help="YAML/JSON params file ('params:' mapping).")
    parent.add_argument("--project-dir", type=Path, default=Path("asvkit-project"),
                        help="Project output directory (default: ./asvkit-project).")
    parent.add_argument("--dry-run", action="store_true", help="Print commands without executing them.")
    parent.add_argument("--show-r", dest="show_r", action="store_true",
                        help="Stream R output live to console (default).")
    parent.add_argument("--no-show-r", dest="show_r", action="store_false",
                        help="Capture R output (printed on error).")
    parent.set_defaults(show_r=True)
    parent.add_argument("--multithread", type=int, default=DEFAULTS["multithread"],
                        help="Threads handed to DADA2 (0 = let R decide).")
    parent.add_argument("--rscript", type=str, default=DEFAULTS["rscript"], help="Rscript executable.")


def load_context(args) -> Context:
    params = load_params(getattr(args, "params", None))
    # CLI wins over the params file when given explicitly
    for name in ("multithread", "rscript"):
        value = getattr(args, name, None)
        if value is not None and value != DEFAULTS[name]:
            setattr(params, name, value)
    layout = ProjectLayout(Path(getattr(args, "project_dir", None) or "asvkit-project")).ensure()
    return Context(
        params=params,
        layout=layout,
        dry_run=bool(getattr(args, "dry_run", False)),
        show_r=bool(getattr(args, "show_r", True)),
    )


def select_datasets(params: Params, names: Optional[str]) -> List[DatasetConfig]:
    """Datasets named in a comma list (all when empty); unknown names are an error."""
    if not params.datasets:
        raise ConfigError("No datasets configured; add a 'datasets:' list to the params file.")
    if not names:
        return list(params.datasets)
    want = [n.strip() for n in names.split(",") if n.strip()]
    out: List[DatasetConfig] = []
    for n in want:
        try:
            out.append(params.dataset(n))
        except KeyError:
            raise ConfigError(f"Unknown dataset {n!r}; known: {', '.join(d.name for d in params.datasets)}") from None
    return out


def add_dataset_arg(p) -> None:
    p.add_argument("--datasets", type=str, default=None, help="Comma-separated dataset names (default: all).")
