"""
Data types for grime annotations.
"""

import dataclasses
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Optional, Union

from .errors import InvalidAnnotationTypeError


def utc_now() -> str:
    """Current UTC timestamp as ISO-8601 with millisecond precision and Z suffix.

    Example: 2026-01-15T09:30:12.345Z
    """
    ts = datetime.now(timezone.utc).isoformat(timespec="milliseconds")
    return ts.replace("+00:00", "Z")


class AnnotationType(Enum):
    """The closed set of annotation types.

    Declaration order is the canonical display order.
    """
    TODO = "todo"
    FIXME = "fixme"
    CHORE = "chore"
    NOTE = "note"

    @property
    def filename(self) -> str:
        """Name of the JSON collection file holding this type."""
        return _TYPE_FILES[self]

    @property
    def label(self) -> str:
        """Display label: the capitalized type name."""
        return self.value.capitalize()

    @classmethod
    def parse(cls, value: Union[str, "AnnotationType"]) -> "AnnotationType":
        """Convert a type name to an AnnotationType.

        Raises InvalidAnnotationTypeError for anything outside the fixed set.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        raise InvalidAnnotationTypeError(value)


_TYPE_FILES = {
    AnnotationType.TODO: "todos.json",
    AnnotationType.FIXME: "fixes.json",
    AnnotationType.CHORE: "chores.json",
    AnnotationType.NOTE: "notes.json",
}

DuplicateKey = tuple[str, Optional[str], Optional[int]]


def duplicate_key(description: str, file: Optional[str], line: Optional[int]) -> DuplicateKey:
    """Normalized (description, file, line) triple used for duplicate detection.

    Description is trimmed and casefolded; absent file/line become None.
    """
    return (description.strip().casefold(), file or None, line or None)


@dataclass(frozen=True)
class AnnotationRecord:
    """
    A stored annotation.

    Attributes:
        id: Opaque unique identifier, fixed at creation
        type: Which collection the record lives in
        description: Non-empty, trimmed text
        created_at: ISO-8601 creation timestamp
        file: Workspace-relative path, or None
        line: 1-based line number; only set when file is set
        from_comment: Provenance flag, False for user-entered records
    """
    id: str
    type: AnnotationType
    description: str
    created_at: str
    file: Optional[str] = None
    line: Optional[int] = None
    from_comment: bool = False

    @property
    def duplicate_key(self) -> DuplicateKey:
        return duplicate_key(self.description, self.file, self.line)

    @property
    def location_label(self) -> str:
        """'file:line', 'file', or '' when not tied to a file."""
        if not self.file:
            return ""
        if self.line:
            return f"{self.file}:{self.line}"
        return self.file

    def with_changes(self, **changes) -> "AnnotationRecord":
        return dataclasses.replace(self, **changes)

    def to_dict(self) -> dict:
        """Serialize to a JSON-ready dict in stable field order."""
        return {
            "id": self.id,
            "type": self.type.value,
            "description": self.description,
            "created_at": self.created_at,
            "file": self.file,
            "line": self.line,
            "from_comment": self.from_comment,
        }

    @classmethod
    def from_dict(cls, d: dict, default_type: Optional[AnnotationType] = None) -> "AnnotationRecord":
        """Deserialize from a stored dict.

        Raises ValueError when required fields are missing or mistyped.
        """
        if not isinstance(d, dict):
            raise ValueError(f"Record must be an object, got {type(d).__name__}")
        missing = [k for k in ("id", "description") if not d.get(k)]
        if missing:
            raise ValueError(f"Record is missing {', '.join(missing)}")

        raw_type = d.get("type")
        if raw_type is None and default_type is not None:
            record_type = default_type
        else:
            record_type = AnnotationType.parse(raw_type)

        line = d.get("line")
        if line is not None and (isinstance(line, bool) or not isinstance(line, int)):
            raise ValueError(f"Record line must be an integer or null, got {line!r}")

        description = d["description"]
        if not isinstance(description, str) or not description.strip():
            raise ValueError(f"Record description must be non-empty text, got {description!r}")

        file = d.get("file")
        if file is not None and not isinstance(file, str):
            raise ValueError(f"Record file must be a string or null, got {file!r}")

        return cls(
            id=str(d["id"]),
            type=record_type,
            description=description,
            created_at=str(d.get("created_at") or ""),
            file=file or None,
            line=line,
            from_comment=bool(d.get("from_comment", False)),
        )

    def __str__(self) -> str:
        where = f" ({self.location_label})" if self.location_label else ""
        return f"[{self.type.value}] {self.description}{where}"


@dataclass
class AnnotationInput:
    """
    Complete, validated input for creating an annotation.

    Assembled by the interaction layer (CLI, editor integration) before
    calling the engine; the engine never prompts.

    Attributes:
        type: Annotation type (string names are parsed)
        description: Text of the annotation, trimmed on construction
        file_relation: Whether the active file should be recorded
        line: 1-based line in the active file, if known
        active_file: Path of the file the user is looking at, if any
    """
    type: AnnotationType
    description: str
    file_relation: bool = False
    line: Optional[int] = None
    active_file: Optional[Union[str, Path]] = None

    def __post_init__(self):
        self.type = AnnotationType.parse(self.type)
        self.description = (self.description or "").strip()
        if not self.description:
            raise ValueError("Annotation description must not be empty")
        if self.line is not None:
            if isinstance(self.line, bool) or not isinstance(self.line, int) or self.line < 1:
                raise ValueError(f"Line must be a positive integer, got {self.line!r}")


@dataclass(frozen=True)
class Location:
    """A navigation request: absolute path and 0-based line index."""
    path: Path
    line_index: int = 0

    @property
    def line_number(self) -> int:
        """1-based line for display."""
        return self.line_index + 1

    def to_dict(self) -> dict:
        return {"path": str(self.path), "line_index": self.line_index}


@dataclass(frozen=True)
class RepairNotice:
    """A corrupt collection file that was backed up and reset."""
    path: Path
    backup_path: Path
    error: str = field(default="")

    def __str__(self) -> str:
        return (f"JSON file {self.path} was not valid. It has been backed up to "
                f"{self.backup_path.name} and recreated -> {self.error}")
