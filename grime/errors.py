"""
Error types and error logging utilities for grime.

Logs full stack traces for debugging while showing clean messages to users.
"""

import os
import traceback
from datetime import datetime, timezone
from pathlib import Path


class GrimeError(Exception):
    """Base class for all grime errors."""


class NoWorkspaceError(GrimeError):
    """No workspace root could be resolved. Nothing is initialized."""

    def __init__(self, message: str = "No workspace detected. Initialization skipped."):
        super().__init__(message)


class InvalidAnnotationTypeError(GrimeError, ValueError):
    """An annotation type outside todo/fixme/chore/note was given."""

    def __init__(self, value):
        self.value = value
        super().__init__(
            f"Unknown annotation type: {value!r} (expected todo, fixme, chore or note)"
        )


class CorruptRecordError(GrimeError):
    """A collection file parsed as JSON but holds an undecodable record."""


class DuplicateAnnotationError(GrimeError):
    """An annotation with the same description, file and line already exists."""

    def __init__(self, existing):
        self.existing = existing
        super().__init__("Duplicate annotation detected. Entry not saved.")


class AnnotationNotFoundError(GrimeError, LookupError):
    """The referenced annotation is not in its collection."""

    def __init__(self, annotation_id: str, type_name: str = ""):
        self.annotation_id = annotation_id
        self.type_name = type_name
        where = f" in {type_name}" if type_name else ""
        super().__init__(f"Annotation {annotation_id} not found{where}. Nothing was changed.")


class AmbiguousAnnotationIdError(GrimeError, LookupError):
    """An id prefix matches more than one annotation."""

    def __init__(self, prefix: str, matches: list):
        self.prefix = prefix
        self.matches = matches
        super().__init__(f"Id prefix {prefix!r} matches {len(matches)} annotations. Use more characters.")


class FileNotAssociatedError(GrimeError):
    """Navigation was requested for an annotation without a file."""

    def __init__(self, record):
        self.record = record
        super().__init__("This annotation is not associated with a file.")


class StaleAnnotationError(GrimeError):
    """The file an annotation points at no longer exists."""

    def __init__(self, record, path: Path):
        self.record = record
        self.path = path
        super().__init__(
            f"Associated file could not be found: {path}. This annotation may be stale."
        )


def _error_log_path() -> Path:
    """Resolve error log path, respecting GRIME_CONFIG_DIR."""
    from .paths import get_config_dir
    return get_config_dir() / "grime-errors.log"


def log_exception(exc: Exception, context: str = "") -> Path:
    """
    Log exception with full traceback to file.

    Args:
        exc: The exception that occurred
        context: Optional context string (e.g., command name)

    Returns:
        Path to the error log file
    """
    log_path = _error_log_path()
    timestamp = datetime.now(timezone.utc).isoformat()
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(log_path, os.O_WRONLY | os.O_CREAT | os.O_APPEND, 0o600)
        with os.fdopen(fd, "a") as f:
            f.write(f"\n{'='*60}\n")
            f.write(f"[{timestamp}]")
            if context:
                f.write(f" {context}")
            f.write("\n")
            f.write("".join(traceback.format_exception(type(exc), exc, exc.__traceback__)))
    except OSError:
        pass  # error log is best-effort
    return log_path
