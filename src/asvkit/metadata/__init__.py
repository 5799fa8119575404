# src/asvkit/metadata/__init__.py
from __future__ import annotations

# columns recorded for each sample in the ITS survey sheets
DEFAULT_METADATA_COLS = ["site", "source", "depth", "number"]
