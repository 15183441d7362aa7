"""
Filesystem locations for grime.

The config directory holds grime.toml and the error log. The storage root
holds one directory per workspace hash.
"""

import os
from pathlib import Path
from typing import Optional

CONFIG_DIR_ENV = "GRIME_CONFIG_DIR"
STORAGE_ROOT_ENV = "GRIME_STORAGE_ROOT"


def get_config_dir() -> Path:
    """Config directory: $GRIME_CONFIG_DIR or ~/.grime."""
    override = os.environ.get(CONFIG_DIR_ENV)
    if override:
        return Path(override).expanduser().resolve()
    return Path.home() / ".grime"


def get_default_storage_root(configured: Optional[Path] = None) -> Path:
    """
    Resolve the global storage root.

    Priority:
    1. GRIME_STORAGE_ROOT environment variable
    2. storage_root from grime.toml
    3. <config dir>/storage
    """
    override = os.environ.get(STORAGE_ROOT_ENV)
    if override:
        return Path(override).expanduser().resolve()
    if configured is not None:
        return Path(configured).expanduser().resolve()
    return get_config_dir() / "storage"
