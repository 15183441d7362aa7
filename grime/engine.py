"""
Annotation engine: the business rules around the record store.

This is the only place that decides whether an annotation is a duplicate
or whether an edit is valid. It keeps no state between operations; every
operation reloads the collections it touches from the store.
"""

import logging
import uuid
from pathlib import Path
from typing import Callable, Optional, Union

from .errors import (
    AmbiguousAnnotationIdError,
    AnnotationNotFoundError,
    DuplicateAnnotationError,
    FileNotAssociatedError,
    StaleAnnotationError,
)
from .events import ChangeNotifier
from .record_store import RecordStore
from .types import (
    AnnotationInput,
    AnnotationRecord,
    AnnotationType,
    Location,
    utc_now,
)
from .workspace import WorkspaceContext, relative_file

logger = logging.getLogger(__name__)


class AnnotationEngine:
    """
    Create, edit, migrate, delete and navigate annotations.

    Example:
        engine = AnnotationEngine(context, store)
        record = engine.create(AnnotationInput("todo", "fix login bug"))
        engine.edit(record, "fixme", "Fix login bug urgently")
    """

    def __init__(
        self,
        context: WorkspaceContext,
        store: RecordStore,
        notifier: Optional[ChangeNotifier] = None,
    ) -> None:
        self._context = context
        self._store = store
        self._notifier = notifier or ChangeNotifier()

    @property
    def notifier(self) -> ChangeNotifier:
        return self._notifier

    @property
    def store(self) -> RecordStore:
        return self._store

    # -------------------------------------------------------------------------
    # Write Operations
    # -------------------------------------------------------------------------

    def create(self, data: AnnotationInput) -> AnnotationRecord:
        """
        Build and store a new annotation.

        The file is recorded only when data.file_relation is set and the
        active file lies inside the workspace. The line is kept only
        alongside a file.

        Returns:
            The stored record

        Raises:
            DuplicateAnnotationError: If the type's collection already holds
                a record with the same description, file and line
        """
        file = None
        if data.file_relation and data.active_file is not None:
            file = relative_file(self._context, data.active_file)
            if file is None:
                logger.debug("Active file %s is outside the workspace; not recorded", data.active_file)
        line = data.line if file is not None else None

        record = AnnotationRecord(
            id=str(uuid.uuid4()),
            type=data.type,
            description=data.description,
            created_at=utc_now(),
            file=file,
            line=line,
            from_comment=False,
        )

        entries = self._store.load_entries(record.type)
        existing = _find_duplicate(entries, record)
        if existing is not None:
            logger.info("Duplicate %s not saved: %s", record.type.value, record.description)
            raise DuplicateAnnotationError(existing)

        entries.append(record)
        self._store.save_entries(record.type, entries)
        logger.info("Created %s %s", record.type.value, record.id)

        self._notifier.fire()
        return record

    def edit(
        self,
        record: AnnotationRecord,
        new_type: Union[AnnotationType, str],
        new_description: str,
    ) -> AnnotationRecord:
        """
        Change an annotation's description, and its type if new_type differs.

        A type change moves the record to the new type's collection,
        keeping id, created_at, file and line.

        Returns:
            The updated record

        Raises:
            AnnotationNotFoundError: If the record is no longer stored
            DuplicateAnnotationError: If the result would duplicate another
                record in the target collection
            ValueError: If the new description is empty
        """
        target_type = AnnotationType.parse(new_type)
        description = (new_description or "").strip()
        if not description:
            raise ValueError("Annotation description must not be empty")

        source_entries = self._store.load_entries(record.type)
        index = _index_of(source_entries, record.id)
        if index is None:
            raise AnnotationNotFoundError(record.id, record.type.value)

        current = source_entries[index]
        updated = current.with_changes(type=target_type, description=description)

        if target_type == record.type:
            existing = _find_duplicate(source_entries, updated, exclude_id=current.id)
            if existing is not None:
                raise DuplicateAnnotationError(existing)
            source_entries[index] = updated
            self._store.save_entries(record.type, source_entries)
            logger.info("Updated %s %s", target_type.value, record.id)
        else:
            self._migrate(source_entries, index, updated)
            logger.info("Moved %s from %s to %s", record.id, record.type.value, target_type.value)

        self._notifier.fire()
        return updated

    def _migrate(
        self,
        source_entries: list[AnnotationRecord],
        index: int,
        updated: AnnotationRecord,
    ) -> None:
        """Move a record between collections.

        The destination is written first. If removing the record from the
        source then fails, the destination file is put back as it was.
        """
        source_type = source_entries[index].type
        dest_entries = self._store.load_entries(updated.type)
        existing = _find_duplicate(dest_entries, updated, exclude_id=updated.id)
        if existing is not None:
            raise DuplicateAnnotationError(existing)

        dest_snapshot = self._store.read_raw(updated.type)
        # Drop any stale copy under the same id so ids stay unique
        dest_entries = [e for e in dest_entries if e.id != updated.id]
        dest_entries.append(updated)
        self._store.save_entries(updated.type, dest_entries)

        remaining = source_entries[:index] + source_entries[index + 1:]
        try:
            self._store.save_entries(source_type, remaining)
        except Exception:
            logger.error(
                "Failed to remove %s from %s; restoring %s",
                updated.id, source_type.value, updated.type.value,
            )
            self._store.restore_raw(updated.type, dest_snapshot)
            raise

    def delete(self, type: Union[AnnotationType, str], annotation_id: str) -> AnnotationRecord:
        """
        Delete an annotation by id.

        Returns:
            The removed record

        Raises:
            AnnotationNotFoundError: If no record with that id exists in the
                type's collection (the file is left untouched)
        """
        annotation_type = AnnotationType.parse(type)
        entries = self._store.load_entries(annotation_type)
        remaining = [e for e in entries if e.id != annotation_id]

        if len(remaining) == len(entries):
            raise AnnotationNotFoundError(annotation_id, annotation_type.value)

        removed = next(e for e in entries if e.id == annotation_id)
        self._store.save_entries(annotation_type, remaining)
        logger.info("Deleted %s %s", annotation_type.value, annotation_id)

        self._notifier.fire()
        return removed

    # -------------------------------------------------------------------------
    # Navigation
    # -------------------------------------------------------------------------

    def navigate(
        self,
        record: AnnotationRecord,
        confirm_delete: Optional[Callable[[AnnotationRecord], bool]] = None,
    ) -> Optional[Location]:
        """
        Resolve where an annotation points.

        When the file no longer exists, confirm_delete is asked whether to
        delete the stale annotation. The record is never deleted without it.

        Returns:
            Location to open, or None if the stale record was deleted

        Raises:
            FileNotAssociatedError: If the record has no file
            StaleAnnotationError: If the file is missing and deletion was
                not confirmed
        """
        if not record.file:
            raise FileNotAssociatedError(record)

        path = self._context.root / Path(record.file)
        if not path.exists():
            if confirm_delete is not None and confirm_delete(record):
                self.delete(record.type, record.id)
                return None
            raise StaleAnnotationError(record, path)

        line_index = record.line - 1 if isinstance(record.line, int) and record.line > 0 else 0
        return Location(path=path, line_index=line_index)

    # -------------------------------------------------------------------------
    # Read Operations
    # -------------------------------------------------------------------------

    def list(self, type: Optional[Union[AnnotationType, str]] = None) -> list[AnnotationRecord]:
        """Records of one type, or of all types in canonical order."""
        if type is not None:
            return self._store.load_entries(type)
        records = []
        for entries in self._store.load_all().values():
            records.extend(entries)
        return records

    def get(self, type: Union[AnnotationType, str], annotation_id: str) -> AnnotationRecord:
        """Fetch a record by type and exact id. Raises AnnotationNotFoundError."""
        annotation_type = AnnotationType.parse(type)
        for entry in self._store.load_entries(annotation_type):
            if entry.id == annotation_id:
                return entry
        raise AnnotationNotFoundError(annotation_id, annotation_type.value)

    def find(self, id_or_prefix: str) -> AnnotationRecord:
        """
        Find a record in any collection by id or unique id prefix.

        Raises:
            AnnotationNotFoundError: If nothing matches
            AmbiguousAnnotationIdError: If a prefix matches several records
        """
        needle = id_or_prefix.strip()
        if not needle:
            raise AnnotationNotFoundError(id_or_prefix)
        matches = []
        for record in self.list():
            if record.id == needle:
                return record
            if record.id.startswith(needle):
                matches.append(record)
        if not matches:
            raise AnnotationNotFoundError(needle)
        if len(matches) > 1:
            raise AmbiguousAnnotationIdError(needle, matches)
        return matches[0]


def _index_of(entries: list[AnnotationRecord], annotation_id: str) -> Optional[int]:
    for i, entry in enumerate(entries):
        if entry.id == annotation_id:
            return i
    return None


def _find_duplicate(
    entries: list[AnnotationRecord],
    record: AnnotationRecord,
    exclude_id: Optional[str] = None,
) -> Optional[AnnotationRecord]:
    key = record.duplicate_key
    for entry in entries:
        if exclude_id is not None and entry.id == exclude_id:
            continue
        if entry.duplicate_key == key:
            return entry
    return None
