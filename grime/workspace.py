"""
Workspace identity.

Each workspace gets a stable identifier derived from its absolute path so
that annotations of different projects never share storage.
"""

import hashlib
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from .errors import NoWorkspaceError

HASH_LENGTH = 16


def normalize_workspace_path(workspace_root: Union[str, Path]) -> str:
    """Absolute, normalized form of a workspace path.

    Backslashes are folded to the OS separator before normalizing.
    """
    raw = str(workspace_root).replace("\\", os.sep)
    return os.path.normpath(os.path.abspath(raw))


def workspace_hash(workspace_root: Optional[Union[str, Path]]) -> Optional[str]:
    """
    Stable 16-hex-character identifier for a workspace.

    sha256 of the normalized absolute path, truncated. Returns None when
    no workspace root is given.
    """
    if workspace_root is None or not str(workspace_root).strip():
        return None
    normalized = normalize_workspace_path(workspace_root)
    return hashlib.sha256(normalized.encode("utf-8")).hexdigest()[:HASH_LENGTH]


@dataclass(frozen=True)
class WorkspaceContext:
    """The workspace a store and engine are bound to."""
    root: Path
    workspace_hash: str
    storage_root: Path

    @property
    def storage_dir(self) -> Path:
        """Per-workspace directory holding the collection files."""
        return self.storage_root / self.workspace_hash


def resolve_workspace(
    workspace_root: Optional[Union[str, Path]],
    storage_root: Union[str, Path],
) -> WorkspaceContext:
    """
    Build the context for a workspace.

    Raises:
        NoWorkspaceError: If no workspace root is available
    """
    ws_hash = workspace_hash(workspace_root)
    if ws_hash is None:
        raise NoWorkspaceError()
    return WorkspaceContext(
        root=Path(normalize_workspace_path(workspace_root)),
        workspace_hash=ws_hash,
        storage_root=Path(storage_root),
    )


def relative_file(context: WorkspaceContext, path: Union[str, Path]) -> Optional[str]:
    """Workspace-relative POSIX path of a file, or None if it lies outside the workspace."""
    candidate = Path(path)
    if not candidate.is_absolute():
        candidate = context.root / candidate
    candidate = Path(os.path.normpath(candidate))
    try:
        rel = candidate.relative_to(context.root)
    except ValueError:
        return None
    if rel == Path("."):
        return None
    return rel.as_posix()
