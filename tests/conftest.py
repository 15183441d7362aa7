"""
Shared pytest fixtures for grime tests.

Every test gets its own workspace and storage root under tmp_path, and the
config directory is redirected so nothing touches ~/.grime.
"""

from pathlib import Path

import pytest

from grime.api import Grime
from grime.engine import AnnotationEngine
from grime.events import ChangeNotifier
from grime.record_store import RecordStore
from grime.workspace import WorkspaceContext, resolve_workspace


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    """Point config at a temp dir and clear grime environment overrides."""
    monkeypatch.setenv("GRIME_CONFIG_DIR", str(tmp_path / "config"))
    monkeypatch.delenv("GRIME_STORAGE_ROOT", raising=False)
    monkeypatch.delenv("GRIME_WORKSPACE", raising=False)
    monkeypatch.delenv("GRIME_VERBOSE", raising=False)


@pytest.fixture
def workspace(tmp_path) -> Path:
    """A workspace with a couple of source files."""
    root = tmp_path / "project"
    (root / "src").mkdir(parents=True)
    (root / "src" / "auth.js").write_text("// auth\n" * 50)
    (root / "README.md").write_text("# project\n")
    return root


@pytest.fixture
def storage_root(tmp_path) -> Path:
    return tmp_path / "storage"


@pytest.fixture
def context(workspace, storage_root) -> WorkspaceContext:
    return resolve_workspace(workspace, storage_root)


@pytest.fixture
def store(context) -> RecordStore:
    """An initialized store with four empty collections."""
    s = RecordStore(context)
    s.ensure_workspace_directory()
    s.ensure_type_files()
    return s


@pytest.fixture
def notifier() -> ChangeNotifier:
    return ChangeNotifier()


@pytest.fixture
def engine(context, store, notifier) -> AnnotationEngine:
    return AnnotationEngine(context, store, notifier)


@pytest.fixture
def grime(workspace, storage_root):
    """A Grime facade bound to the test workspace."""
    gr = Grime(workspace, storage_root)
    yield gr
    gr.close()
