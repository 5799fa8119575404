# src/asvkit/utils/logger.py
from __future__ import annotations

import logging
import os
from typing import Optional

from colorama import Fore, Style, just_fix_windows_console

ROOT = "asvkit"
LOG_FILE_ENV = "ASVKIT_LOG_FILE"

_CONSOLE_FMT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"
_FILE_FMT = "%(asctime)s %(levelname)-7s %(name)s [%(module)s:%(lineno)d] %(message)s"


def get_logger(area: Optional[str] = None) -> logging.Logger:
    """'asvkit.<area>' child logger (or the package logger itself)."""
    return logging.getLogger(f"{ROOT}.{area}" if area else ROOT)


def log_success(message: str, logger: Optional[logging.Logger] = None) -> None:
    (logger or get_logger()).info("%s%s%s", Fore.GREEN, message, Style.RESET_ALL)


def setup_logger(log_file: Optional[str] = None) -> logging.Logger:
    """
    Attach handlers to the 'asvkit' logger once per process.

    Console gets INFO and up. The log file (default ./asvkit.log, overridable
    with $ASVKIT_LOG_FILE; an empty value disables it) gets everything.
    """
    pkg = logging.getLogger(ROOT)
    if any(getattr(h, "_asvkit", False) for h in pkg.handlers):
        return pkg

    just_fix_windows_console()
    pkg.setLevel(logging.DEBUG)
    pkg.propagate = False

    console = logging.StreamHandler()
    console.setLevel(logging.INFO)
    console.setFormatter(logging.Formatter(_CONSOLE_FMT, datefmt="%H:%M:%S"))
    handlers = [console]

    path = log_file if log_file is not None else os.environ.get(LOG_FILE_ENV, "asvkit.log")
    if path:
        to_file = logging.FileHandler(path, encoding="utf-8")
        to_file.setLevel(logging.DEBUG)
        to_file.setFormatter(logging.Formatter(_FILE_FMT))
        handlers.append(to_file)

    for h in handlers:
        h._asvkit = True  # type: ignore[attr-defined]
        pkg.addHandler(h)
    return pkg
