# src/asvkit/metadata/template.py
from __future__ import annotations

import csv
from pathlib import Path
from typing import Iterable, List

from asvkit.metadata import DEFAULT_METADATA_COLS


def write_metadata_template(
    sample_ids: Iterable[str],
    output_file: Path,
    columns: Iterable[str] = DEFAULT_METADATA_COLS,
) -> Path:
    """Blank sample sheet: one row per sample id, empty attribute columns."""
    cols: List[str] = [c.strip() for c in columns if c.strip()]
    output_file.parent.mkdir(parents=True, exist_ok=True)
    with output_file.open("w", encoding="utf-8", newline="") as fh:
        w = csv.writer(fh, delimiter="\t", lineterminator="\n")
        w.writerow(["sample", *cols])
        for sid in sample_ids:
            w.writerow([sid, *[""] * len(cols)])
    return output_file
