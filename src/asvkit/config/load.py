# src/asvkit/config/load.py
from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import ValidationError

from asvkit.config.schema import Params
from asvkit.errors import ConfigError


def _read_mapping(path: Path) -> Dict[str, Any]:
    if not path.exists():
        raise ConfigError(f"Params file not found: {path}")
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() == ".json":
        data = json.loads(text)
    else:
        data = yaml.safe_load(text)
    if not isinstance(data, dict):
        raise ConfigError("Params file must contain a mapping at the top level.")
    return data


def load_params(path: Optional[Path]) -> Params:
    """Load params from YAML/JSON; accepts either {'params': {...}} or a bare mapping."""
    if not path:
        return Params()
    data = _read_mapping(path)
    body = data.get("params", data)
    try:
        params = Params(**body)
    except ValidationError as e:
        raise ConfigError(f"Invalid params in {path}:\n{e}") from e
    # relative paths in the file are relative to the file itself
    base = path.resolve().parent
    for ds in params.datasets:
        if not ds.fastq_dir.is_absolute():
            ds.fastq_dir = base / ds.fastq_dir
    if params.taxonomy.reference and not params.taxonomy.reference.is_absolute():
        params.taxonomy.reference = base / params.taxonomy.reference
    if params.metadata.file and not params.metadata.file.is_absolute():
        params.metadata.file = base / params.metadata.file
    return params


def write_params(path: Path, params: Dict[str, Any]) -> None:
    payload = {"params": params}
    if path.suffix.lower() == ".json":
        text = json.dumps(payload, indent=2, default=str)
    else:
        text = yaml.safe_dump(payload, sort_keys=False)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")

