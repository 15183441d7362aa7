"""Tests for grime.toml configuration."""

from pathlib import Path

import pytest

from grime.config import (
    CONFIG_FILENAME,
    CONFIG_VERSION,
    GrimeConfig,
    load_config,
    load_or_create_config,
    save_config,
)
from grime.paths import get_config_dir, get_default_storage_root


def test_round_trip(tmp_path):
    config = GrimeConfig(path=tmp_path, storage_root=tmp_path / "data", ops_log=False)
    save_config(config)

    loaded = load_config(tmp_path)
    assert loaded.storage_root == tmp_path / "data"
    assert loaded.ops_log is False
    assert loaded.version == CONFIG_VERSION
    assert loaded.created == config.created


def test_round_trip_without_storage_root(tmp_path):
    save_config(GrimeConfig(path=tmp_path))
    loaded = load_config(tmp_path)
    assert loaded.storage_root is None
    assert loaded.ops_log is True


def test_load_missing_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path)


def test_newer_version_rejected(tmp_path):
    (tmp_path / CONFIG_FILENAME).write_text(f"[grime]\nversion = {CONFIG_VERSION + 1}\n")
    with pytest.raises(ValueError):
        load_config(tmp_path)


def test_bad_ops_log_rejected(tmp_path):
    (tmp_path / CONFIG_FILENAME).write_text('[logging]\nops_log = "yes"\n')
    with pytest.raises(ValueError):
        load_config(tmp_path)


def test_load_or_create_creates_file(tmp_path):
    config_dir = tmp_path / "new"
    config = load_or_create_config(config_dir)
    assert config.exists()
    assert load_or_create_config(config_dir).created == config.created


def test_config_dir_from_env(tmp_path):
    assert get_config_dir() == (tmp_path / "config").resolve()


def test_config_dir_default(monkeypatch):
    monkeypatch.delenv("GRIME_CONFIG_DIR")
    assert get_config_dir() == Path.home() / ".grime"


def test_storage_root_priority(tmp_path, monkeypatch):
    configured = tmp_path / "configured"
    assert get_default_storage_root() == get_config_dir() / "storage"
    assert get_default_storage_root(configured) == configured.resolve()
    monkeypatch.setenv("GRIME_STORAGE_ROOT", str(tmp_path / "env"))
    assert get_default_storage_root(configured) == (tmp_path / "env").resolve()
