# src/asvkit/errors.py
from __future__ import annotations


class AsvkitError(Exception):
    """Base class for errors surfaced to the CLI as '[fail] ...'."""


class ConfigError(AsvkitError):
    pass


class SampleNameError(AsvkitError):
    pass


class MetadataError(AsvkitError):
    pass


class TableError(AsvkitError):
    pass
