"""
Record store using one JSON file per annotation type.

Layout under <storage_root>/<workspace_hash>/:
- todos.json
- fixes.json
- chores.json
- notes.json

Each file is a pretty-printed JSON array of records in insertion order.
Types are stored independently, so corruption in one file never affects
the others. Corrupt files are backed up and reset rather than deleted.
"""

import json
import logging
import os
import tempfile
import time
from pathlib import Path
from typing import Callable, Optional, Union

from .errors import CorruptRecordError
from .types import AnnotationRecord, AnnotationType, RepairNotice
from .workspace import WorkspaceContext

logger = logging.getLogger(__name__)

EMPTY_COLLECTION = "[]"

TypeArg = Union[AnnotationType, str]


class RecordStore:
    """
    Durable per-type collections of annotation records.

    Every read parses the file in full and every write replaces it in full;
    nothing is cached between calls.
    """

    def __init__(
        self,
        context: WorkspaceContext,
        on_repair: Optional[Callable[[RepairNotice], None]] = None,
    ) -> None:
        """
        Args:
            context: Workspace the store is bound to
            on_repair: Called with a RepairNotice whenever a corrupt file
                is backed up and reset
        """
        self._context = context
        self._on_repair = on_repair

    @property
    def context(self) -> WorkspaceContext:
        return self._context

    @property
    def directory(self) -> Path:
        return self._context.storage_dir

    def path_for(self, type: TypeArg) -> Path:
        """Collection file for a type. Raises InvalidAnnotationTypeError."""
        return self.directory / AnnotationType.parse(type).filename

    # -------------------------------------------------------------------------
    # Initialization and repair
    # -------------------------------------------------------------------------

    def ensure_workspace_directory(self) -> None:
        """Create the per-workspace directory if it does not exist."""
        self.directory.mkdir(parents=True, exist_ok=True)

    def ensure_type_files(self) -> list[RepairNotice]:
        """
        Create missing collection files and validate existing ones.

        Returns:
            Repairs performed on corrupt files (empty when all were valid)
        """
        repairs = []
        for annotation_type in AnnotationType:
            path = self.path_for(annotation_type)
            if not path.exists():
                path.write_text(EMPTY_COLLECTION, encoding="utf-8")
                logger.debug("Created %s", path)
            else:
                notice = self.validate_and_fix(path)
                if notice is not None:
                    repairs.append(notice)
        return repairs

    def validate_and_fix(self, path: Union[str, Path]) -> Optional[RepairNotice]:
        """
        Check that a collection file holds a JSON array; repair it if not.

        A corrupt file is renamed to <name>.backup-<epoch_millis> and a
        fresh empty collection is written in its place.

        Returns:
            RepairNotice describing the repair, or None if the file was valid
        """
        path = Path(path)
        try:
            _parse_collection(path.read_text(encoding="utf-8"))
        except (ValueError, UnicodeDecodeError) as e:
            return self._repair(path, e)
        return None

    def _repair(self, path: Path, error: Exception) -> RepairNotice:
        backup_path = path.with_name(f"{path.name}.backup-{int(time.time() * 1000)}")
        os.replace(path, backup_path)
        path.write_text(EMPTY_COLLECTION, encoding="utf-8")
        notice = RepairNotice(path=path, backup_path=backup_path, error=str(error))
        logger.warning("%s", notice)
        if self._on_repair is not None:
            self._on_repair(notice)
        return notice

    # -------------------------------------------------------------------------
    # Read / write
    # -------------------------------------------------------------------------

    def load_entries(self, type: TypeArg) -> list[AnnotationRecord]:
        """
        Load all records of a type, in stored order.

        Raises:
            InvalidAnnotationTypeError: If type is not one of the fixed set
            CorruptRecordError: If an element of the array is not a valid record
        """
        annotation_type = AnnotationType.parse(type)
        path = self.path_for(annotation_type)

        if not path.exists():
            return []

        try:
            raw = _parse_collection(path.read_text(encoding="utf-8"))
        except (ValueError, UnicodeDecodeError) as e:
            # File went bad after initialization: same repair as at startup
            self._repair(path, e)
            return []

        entries = []
        for index, item in enumerate(raw):
            try:
                record = AnnotationRecord.from_dict(item, default_type=annotation_type)
            except ValueError as e:
                raise CorruptRecordError(f"{path.name}[{index}]: {e}") from e
            if record.type is not annotation_type:
                # The collection a record lives in decides its type
                logger.warning(
                    "%s[%d]: stored type %s, treating as %s",
                    path.name, index, record.type.value, annotation_type.value,
                )
                record = record.with_changes(type=annotation_type)
            entries.append(record)
        return entries

    def save_entries(self, type: TypeArg, entries: list[AnnotationRecord]) -> None:
        """
        Replace the full collection of a type.

        The file is written to a temporary sibling and renamed over the
        target, so readers see either the old or the new collection.

        Raises:
            InvalidAnnotationTypeError: If type is not one of the fixed set
        """
        annotation_type = AnnotationType.parse(type)
        path = self.path_for(annotation_type)
        content = json.dumps(
            [entry.to_dict() for entry in entries],
            indent=2,
            ensure_ascii=False,
        ) + "\n"
        _atomic_write(path, content)
        logger.debug("Saved %d %s entries", len(entries), annotation_type.value)

    def read_raw(self, type: TypeArg) -> Optional[bytes]:
        """Exact bytes of a collection file, or None if it is missing."""
        path = self.path_for(type)
        if not path.exists():
            return None
        return path.read_bytes()

    def restore_raw(self, type: TypeArg, content: Optional[bytes]) -> None:
        """Put back bytes captured by read_raw(). None removes the file."""
        path = self.path_for(type)
        if content is None:
            path.unlink(missing_ok=True)
            return
        _atomic_write(path, content.decode("utf-8"))

    def load_all(self) -> dict[AnnotationType, list[AnnotationRecord]]:
        """All collections, keyed by type in canonical order."""
        return {t: self.load_entries(t) for t in AnnotationType}


def _parse_collection(text: str) -> list:
    """Parse collection file content. Raises ValueError unless it is a JSON array."""
    data = json.loads(text)
    if not isinstance(data, list):
        raise ValueError(f"expected a JSON array, found {type(data).__name__}")
    return data


def _atomic_write(path: Path, content: str) -> None:
    fd, temp_path = tempfile.mkstemp(
        dir=path.parent,
        prefix=f".{path.name}.",
        suffix=".tmp",
        text=True,
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        os.replace(temp_path, path)
    except BaseException:
        try:
            os.unlink(temp_path)
        except OSError:
            pass
        raise
