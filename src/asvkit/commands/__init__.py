"""
Command package.

Submodules are imported explicitly by asvkit.cli to avoid circular imports.
Do NOT import submodules here.
"""
__all__ = [
    "init",
    "doctor",
    "samples",
    "metadata_validate",
    "filter_reads",
    "learn_errors",
    "denoise",
    "remove_chimeras",
    "assign_taxonomy",
    "build",
    "export",
    "stats",
    "auto_run",
]
