"""
Grime

A per-workspace annotation tracker: todos, fixmes, chores and notes,
optionally tied to a file and line, kept in plain JSON files.

Quick Start:
    from grime import Grime

    with Grime("/path/to/project") as gr:
        rec = gr.add("todo", "fix login bug", file="src/auth.js", line=42)
        gr.edit(rec.id, type="fixme", description="Fix login bug urgently")
        print(gr.tree())

CLI Usage:
    grime add todo "fix login bug" --file src/auth.js --line 42
    grime list
    grime goto <id>

Storage:
    <storage root>/<workspace hash>/{todos,fixes,chores,notes}.json
    The storage root defaults to ~/.grime/storage.

Environment Variables:
    GRIME_STORAGE_ROOT  - Override the global storage root
    GRIME_CONFIG_DIR    - Override the config directory (~/.grime)
    GRIME_WORKSPACE     - Workspace root for the CLI (default: cwd)
    GRIME_VERBOSE       - Set to 1 for debug logging
"""

from .api import Grime
from .engine import AnnotationEngine
from .errors import (
    AmbiguousAnnotationIdError,
    AnnotationNotFoundError,
    CorruptRecordError,
    DuplicateAnnotationError,
    FileNotAssociatedError,
    GrimeError,
    InvalidAnnotationTypeError,
    NoWorkspaceError,
    StaleAnnotationError,
)
from .events import ChangeNotifier
from .record_store import RecordStore
from .types import AnnotationInput, AnnotationRecord, AnnotationType, Location, RepairNotice
from .view import AnnotationTreeView, TreeNode
from .workspace import WorkspaceContext, resolve_workspace, workspace_hash

__version__ = "0.1.0"
__all__ = [
    "Grime",
    "AnnotationEngine",
    "AnnotationTreeView",
    "TreeNode",
    "RecordStore",
    "ChangeNotifier",
    "AnnotationInput",
    "AnnotationRecord",
    "AnnotationType",
    "Location",
    "RepairNotice",
    "WorkspaceContext",
    "resolve_workspace",
    "workspace_hash",
    "GrimeError",
    "NoWorkspaceError",
    "InvalidAnnotationTypeError",
    "CorruptRecordError",
    "DuplicateAnnotationError",
    "AnnotationNotFoundError",
    "AmbiguousAnnotationIdError",
    "FileNotAssociatedError",
    "StaleAnnotationError",
]
