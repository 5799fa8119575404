# src/asvkit/__init__.py
"""ITS amplicon pipeline: DADA2 denoising, composite tables and community statistics."""

__version__ = "0.3.0"
