"""
Core API for grime.

Wires a workspace to its record store, engine and tree view:
- resolve the workspace identity (abort if there is none)
- create the storage directory and collection files, repairing corrupt ones
- expose add / edit / delete / goto / list over the engine
"""

import logging
from pathlib import Path
from typing import Callable, Optional, Union

from .config import GrimeConfig, load_or_create_config
from .engine import AnnotationEngine
from .errors import NoWorkspaceError
from .events import ChangeNotifier
from .logging_config import configure_ops_log, remove_ops_log
from .paths import get_config_dir
from .record_store import RecordStore
from .types import (
    AnnotationInput,
    AnnotationRecord,
    AnnotationType,
    Location,
    RepairNotice,
)
from .view import AnnotationTreeView
from .workspace import WorkspaceContext, resolve_workspace, workspace_hash

logger = logging.getLogger(__name__)

PathArg = Union[str, Path]


class Grime:
    """
    Annotation tracker bound to one workspace.

    Example:
        with Grime("/path/to/project") as gr:
            rec = gr.add("todo", "fix login bug", file="src/auth.js", line=42)
            gr.edit(rec.id, type="fixme")
    """

    def __init__(
        self,
        workspace_root: Optional[PathArg] = None,
        storage_root: Optional[PathArg] = None,
        *,
        config: Optional[GrimeConfig] = None,
        on_repair: Optional[Callable[[RepairNotice], None]] = None,
    ) -> None:
        """
        Initialize annotation storage for a workspace.

        Args:
            workspace_root: Absolute path of the workspace. None means no
                workspace is open, which raises NoWorkspaceError before any
                storage is touched.
            storage_root: Global storage root. Defaults to the configured one.
            config: Pre-loaded config (skips config discovery).
            on_repair: Called for each corrupt collection file that was reset.

        Raises:
            NoWorkspaceError: If workspace_root is None or empty
        """
        if workspace_hash(workspace_root) is None:
            raise NoWorkspaceError()

        if config is None and storage_root is None:
            config = load_or_create_config(get_config_dir())
        self._config = config

        if storage_root is None:
            storage_root = config.resolved_storage_root()

        self._context: WorkspaceContext = resolve_workspace(workspace_root, storage_root)

        self._store = RecordStore(self._context, on_repair=on_repair)
        self._store.ensure_workspace_directory()

        self._ops_log_handler = None
        if config is None or config.ops_log:
            self._ops_log_handler = configure_ops_log(self._context.storage_dir)

        try:
            self.repairs: list[RepairNotice] = self._store.ensure_type_files()
        except Exception:
            self.close()
            raise

        self._notifier = ChangeNotifier()
        self._engine = AnnotationEngine(self._context, self._store, self._notifier)
        self._view = AnnotationTreeView(self._store, self._notifier)
        logger.debug("Workspace %s -> %s", self._context.root, self._context.storage_dir)

    # -------------------------------------------------------------------------
    # Accessors
    # -------------------------------------------------------------------------

    @property
    def context(self) -> WorkspaceContext:
        return self._context

    @property
    def store(self) -> RecordStore:
        return self._store

    @property
    def engine(self) -> AnnotationEngine:
        return self._engine

    @property
    def view(self) -> AnnotationTreeView:
        return self._view

    @property
    def config(self) -> Optional[GrimeConfig]:
        return self._config

    # -------------------------------------------------------------------------
    # Commands
    # -------------------------------------------------------------------------

    def add(
        self,
        type: Union[AnnotationType, str],
        description: str,
        *,
        file: Optional[PathArg] = None,
        line: Optional[int] = None,
    ) -> AnnotationRecord:
        """Create an annotation, optionally tied to a file (and line) in the workspace."""
        return self._engine.create(AnnotationInput(
            type=type,
            description=description,
            file_relation=file is not None,
            line=line,
            active_file=file,
        ))

    def edit(
        self,
        annotation_id: str,
        *,
        type: Optional[Union[AnnotationType, str]] = None,
        description: Optional[str] = None,
    ) -> AnnotationRecord:
        """Edit by id (or unique prefix). Unspecified fields keep their value."""
        record = self._engine.find(annotation_id)
        new_type = type if type is not None else record.type
        new_description = description if description is not None else record.description
        return self._engine.edit(record, new_type, new_description)

    def delete(self, annotation_id: str, type: Optional[Union[AnnotationType, str]] = None) -> AnnotationRecord:
        """Delete by id. Without a type, the id (or unique prefix) is looked up in all collections."""
        if type is None:
            record = self._engine.find(annotation_id)
            return self._engine.delete(record.type, record.id)
        return self._engine.delete(type, annotation_id)

    def goto(
        self,
        annotation_id: str,
        confirm_delete: Optional[Callable[[AnnotationRecord], bool]] = None,
    ) -> Optional[Location]:
        """Location of an annotation's file and line. See AnnotationEngine.navigate()."""
        record = self._engine.find(annotation_id)
        return self._engine.navigate(record, confirm_delete=confirm_delete)

    def find(self, annotation_id: str) -> AnnotationRecord:
        return self._engine.find(annotation_id)

    def tree(self, types: Optional[list[AnnotationType]] = None) -> str:
        return self._view.render_text(types)

    def list(self, type: Optional[Union[AnnotationType, str]] = None) -> list[AnnotationRecord]:
        return self._engine.list(type)

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def close(self) -> None:
        """Detach the operations log."""
        if self._ops_log_handler is not None:
            remove_ops_log(self._ops_log_handler)
            self._ops_log_handler = None

    def __enter__(self) -> "Grime":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
