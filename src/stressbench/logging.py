"""Logging setup for stressbench.

Benchmark output proper goes through reporters; this module only wires
the diagnostic log: a console handler whose level follows the CLI
verbosity flags, plus an optional file handler that always records DEBUG.
"""

from __future__ import annotations

import logging
from pathlib import Path

_LOGGER_NAME = "stressbench"
_FILE_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"
_CONSOLE_FORMAT = "%(levelname)-8s %(message)s"


def setup_logging(
    *,
    verbose: bool = False,
    quiet: bool = False,
    log_file: Path | None = None,
) -> logging.Logger:
    """Configure and return the ``stressbench`` logger.

    Args:
        verbose: Log DEBUG to the console (per-run timings, skipped
            benchmarks).
        quiet: Only log warnings and errors. Ignored if *verbose* is set.
        log_file: If provided, also log everything at DEBUG to this path.

    Returns:
        The configured logger.
    """
    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(logging.DEBUG)

    # Allow reconfiguration when invoked repeatedly (tests, CliRunner).
    for handler in list(logger.handlers):
        handler.close()
    logger.handlers.clear()

    console = logging.StreamHandler()
    if verbose:
        console.setLevel(logging.DEBUG)
    elif quiet:
        console.setLevel(logging.WARNING)
    else:
        console.setLevel(logging.INFO)
    console.setFormatter(logging.Formatter(_CONSOLE_FORMAT))
    logger.addHandler(console)

    if log_file is not None:
        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setLevel(logging.DEBUG)
        fh.setFormatter(logging.Formatter(_FILE_FORMAT))
        logger.addHandler(fh)

    return logger


def get_logger(name: str) -> logging.Logger:
    """Return a child logger, e.g. ``stressbench.runner``."""
    return logging.getLogger(f"{_LOGGER_NAME}.{name}")
