"""Logging utilities to configure rotalog's own diagnostics.

Rotation, pruning and reopen problems are reported through the global
`loguru` logger. This module configures where those diagnostics go; they are
never written into the log files that rotalog itself manages.
"""

from __future__ import annotations

import sys

from loguru import logger

from rotalog.config import settings


def configure_logging(level: str | None = None) -> None:
    """Configure the global Loguru logger for console and optional file output.

    This helper removes default handlers and sets up a stderr handler at
    `settings.diagnostics_level` (or `level` when given), plus a rotating file
    handler when `settings.diagnostics_file` is set.
    """
    logger.remove()
    level = (level or settings.diagnostics_level).upper()

    logger.add(sys.stderr, level=level, backtrace=False, diagnose=False)

    diagnostics_file = settings.diagnostics_file
    if diagnostics_file is not None:
        diagnostics_file.parent.mkdir(parents=True, exist_ok=True)
        logger.add(str(diagnostics_file), rotation="10 MB", retention=5, level="DEBUG")
