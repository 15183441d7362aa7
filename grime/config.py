"""
Configuration management for grime.

The configuration is stored as a TOML file in the config directory.
It specifies where annotation collections are stored and whether the
per-workspace operations log is written.
"""

import tomllib
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import tomli_w

from .paths import get_default_storage_root


CONFIG_FILENAME = "grime.toml"
CONFIG_VERSION = 1


@dataclass
class GrimeConfig:
    """Complete grime configuration."""
    path: Path
    version: int = CONFIG_VERSION
    created: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    storage_root: Optional[Path] = None
    ops_log: bool = True

    @property
    def config_path(self) -> Path:
        """Path to the TOML config file."""
        return self.path / CONFIG_FILENAME

    def exists(self) -> bool:
        """Check if config file exists."""
        return self.config_path.exists()

    def resolved_storage_root(self) -> Path:
        """Storage root after environment overrides and defaults."""
        return get_default_storage_root(self.storage_root)


def load_config(config_dir: Path) -> GrimeConfig:
    """
    Load configuration from a config directory.

    Raises:
        FileNotFoundError: If config doesn't exist
        ValueError: If config is invalid
    """
    config_path = config_dir / CONFIG_FILENAME

    if not config_path.exists():
        raise FileNotFoundError(f"Config not found: {config_path}")

    with open(config_path, "rb") as f:
        data = tomllib.load(f)

    meta = data.get("grime", {})
    version = meta.get("version", 1)
    if version > CONFIG_VERSION:
        raise ValueError(f"Config version {version} is newer than supported ({CONFIG_VERSION})")

    storage = data.get("storage", {})
    root = storage.get("root")
    if root is not None and not isinstance(root, str):
        raise ValueError(f"storage.root must be a string, got {type(root).__name__}")

    ops_log = data.get("logging", {}).get("ops_log", True)
    if not isinstance(ops_log, bool):
        raise ValueError("logging.ops_log must be true or false")

    return GrimeConfig(
        path=config_dir,
        version=version,
        created=meta.get("created", ""),
        storage_root=Path(root) if root else None,
        ops_log=ops_log,
    )


def save_config(config: GrimeConfig) -> None:
    """
    Save configuration to the config directory.

    Creates the directory if it doesn't exist.
    """
    config.path.mkdir(parents=True, exist_ok=True)

    data = {
        "grime": {
            "version": config.version,
            "created": config.created,
        },
        "logging": {
            "ops_log": config.ops_log,
        },
    }
    if config.storage_root is not None:
        data["storage"] = {"root": str(config.storage_root)}

    with open(config.config_path, "wb") as f:
        tomli_w.dump(data, f)


def load_or_create_config(config_dir: Path) -> GrimeConfig:
    """
    Load existing config or create a new one with defaults.

    This is the main entry point for config management.
    """
    config_path = config_dir / CONFIG_FILENAME

    if config_path.exists():
        return load_config(config_dir)
    else:
        config = GrimeConfig(path=config_dir)
        save_config(config)
        return config
