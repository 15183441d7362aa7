"""
Logging configuration for grime.

Quiet by default; debug output to stderr on request; a persistent
operations log per workspace.
"""

import logging
import sys
import warnings
from logging.handlers import RotatingFileHandler
from pathlib import Path

OPS_LOG_FILENAME = "grime-ops.log"


def configure_quiet_mode(quiet: bool = True):
    """
    Configure logging to suppress verbose output.

    Args:
        quiet: If True, only warnings and above from grime are shown.
            If False, grime info messages are let through.
    """
    grime_logger = logging.getLogger("grime")
    if quiet:
        warnings.filterwarnings("ignore")
        grime_logger.setLevel(logging.WARNING)
    else:
        warnings.filterwarnings("default")
        grime_logger.setLevel(logging.INFO)


def enable_debug_mode():
    """Enable debug-level logging to stderr."""
    warnings.filterwarnings("default")

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)

    # Add stderr handler if not already present
    if not any(isinstance(h, logging.StreamHandler) and h.stream == sys.stderr
               for h in root_logger.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.setLevel(logging.DEBUG)
        handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s: %(message)s",
            datefmt="%H:%M:%S"
        ))
        root_logger.addHandler(handler)

    logging.getLogger("grime").setLevel(logging.DEBUG)


def configure_ops_log(storage_dir) -> RotatingFileHandler:
    """Configure a persistent operations log for a workspace.

    Writes to {storage_dir}/grime-ops.log using a rotating file handler
    (1MB max, 3 backups). Always active regardless of --verbose.
    Returns the handler so it can be removed on close().
    """
    log_path = Path(storage_dir) / OPS_LOG_FILENAME
    handler = RotatingFileHandler(
        str(log_path),
        maxBytes=1_000_000,
        backupCount=3,
    )
    handler.setLevel(logging.INFO)
    handler.setFormatter(logging.Formatter(
        "%(asctime)s %(levelname)s %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    ))

    grime_logger = logging.getLogger("grime")
    grime_logger.addHandler(handler)
    # Let INFO through to the file even in quiet mode
    if grime_logger.level == logging.NOTSET or grime_logger.level > logging.INFO:
        grime_logger.setLevel(logging.INFO)

    return handler


def remove_ops_log(handler: RotatingFileHandler) -> None:
    """Detach and close a handler returned by configure_ops_log()."""
    logging.getLogger("grime").removeHandler(handler)
    handler.close()
