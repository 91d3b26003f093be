"""
Logging configuration — central setup for the CLI.

Called once at startup by ``subsysbuild.main``. Every module that does
``logger = logging.getLogger(__name__)`` inherits this config.

Levels are resolved in precedence order:
    CLI flag  >  SUBSYSBUILD_LOG_LEVEL env var  >  WARNING (default)

Optional file output via SUBSYSBUILD_LOG_FILE / SUBSYSBUILD_LOG_FILE_LEVEL.

Output streamed from subsystem commands (configure, make, pacman) is
logged on the ``subsysbuild.output`` logger, which prints the raw lines
without a prefix so compiler diagnostics stay readable.
"""

from __future__ import annotations

import logging
import sys

# ── Format strings ──────────────────────────────────────────────

_FMT_MINIMAL = "%(message)s"

_FMT_VERBOSE = "%(asctime)s [%(name)s] %(message)s"
_DATEFMT_VERBOSE = "%H:%M:%S"

_FMT_DEBUG = "%(asctime)s %(levelname)-5s %(name)s:%(lineno)d — %(message)s"
_DATEFMT_DEBUG = "%H:%M:%S"

_FMT_FILE = "%(asctime)s %(levelname)-5s %(name)s:%(lineno)d — %(message)s"
_DATEFMT_FILE = "%Y-%m-%d %H:%M:%S"

# Child-process output goes through this logger
OUTPUT_LOGGER = "subsysbuild.output"


def setup_logging(
    level: str = "WARNING",
    log_file: str | None = None,
    log_file_level: str | None = None,
    show_output: bool = True,
) -> None:
    """Configure Python logging for the entire process.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_file: Optional path to a log file. Receives child-process
            output too, which makes it the place to look after a
            failed configure.
        log_file_level: Optional separate level for the log file.
            Defaults to the same as ``level``.
        show_output: Print child-process output on the console
            regardless of ``level``. Off for ``--quiet``.
    """
    numeric_level = _parse_level(level)

    if numeric_level <= logging.DEBUG:
        fmt, datefmt = _FMT_DEBUG, _DATEFMT_DEBUG
    elif numeric_level <= logging.INFO:
        fmt, datefmt = _FMT_VERBOSE, _DATEFMT_VERBOSE
    else:
        fmt, datefmt = _FMT_MINIMAL, None

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(numeric_level)
    console.setFormatter(logging.Formatter(fmt, datefmt=datefmt))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(console)

    effective_level = numeric_level

    # ── Child-process output: raw lines on the console ──────────
    output = logging.getLogger(OUTPUT_LOGGER)
    output.handlers.clear()
    output.propagate = False
    raw_console = logging.StreamHandler(sys.stderr)
    output_level = min(numeric_level, logging.INFO) if show_output else numeric_level
    raw_console.setLevel(output_level)
    raw_console.setFormatter(logging.Formatter(_FMT_MINIMAL))
    output.addHandler(raw_console)

    if log_file:
        file_level = _parse_level(log_file_level) if log_file_level else numeric_level
        effective_level = min(effective_level, file_level)

        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setLevel(file_level)
        fh.setFormatter(logging.Formatter(_FMT_FILE, datefmt=_DATEFMT_FILE))
        root.addHandler(fh)
        output.addHandler(fh)

    root.setLevel(effective_level)
    output.setLevel(min(effective_level, output_level))

    logging.raiseExceptions = False


def _parse_level(level: str | None) -> int:
    """Convert a level name string to its numeric constant."""
    if not level:
        return logging.WARNING
    numeric = getattr(logging, level.upper(), None)
    if not isinstance(numeric, int):
        return logging.WARNING
    return numeric
