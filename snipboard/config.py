"""
Configuration management for a SnipBoard data directory.

The configuration is stored as a TOML file in the data directory. It holds
the ingestion bridge settings, the export base, and any legacy data
locations to migrate from. UI preferences live separately in config.json.
"""

import tomllib
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

# tomli_w for writing TOML (tomllib is read-only)
try:
    import tomli_w
except ImportError:
    tomli_w = None  # type: ignore

from .types import EXPORT_BASE

CONFIG_FILENAME = "snipboard.toml"
CONFIG_VERSION = 1

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 4050
DEFAULT_MAX_BODY_BYTES = 1_000_000

# Origins allowed to POST clips besides any chrome-extension:// origin
DEFAULT_ALLOWED_ORIGINS = ("https://chat.openai.com", "https://chatgpt.com")


@dataclass
class BridgeConfig:
    """Settings for the local HTTP ingestion bridge."""
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    max_body_bytes: int = DEFAULT_MAX_BODY_BYTES
    allowed_origins: list[str] = field(default_factory=lambda: list(DEFAULT_ALLOWED_ORIGINS))


@dataclass
class AppConfig:
    """Complete data directory configuration."""
    path: Path
    version: int = CONFIG_VERSION
    created: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    export_base: str = EXPORT_BASE
    bridge: BridgeConfig = field(default_factory=BridgeConfig)

    # Older data directories whose files are moved in on startup
    legacy_dirs: list[Path] = field(default_factory=list)
    # Older whole data root, copied when the data directory does not exist yet
    legacy_base_dir: Path | None = None

    @property
    def config_path(self) -> Path:
        """Path to the TOML config file."""
        return self.path / CONFIG_FILENAME

    def exists(self) -> bool:
        """Check if config file exists."""
        return self.config_path.exists()


def load_config(data_dir: Path) -> AppConfig:
    """
    Load configuration from a data directory.

    Raises:
        FileNotFoundError: If config doesn't exist
        ValueError: If config is invalid
    """
    config_path = data_dir / CONFIG_FILENAME

    if not config_path.exists():
        raise FileNotFoundError(f"Config not found: {config_path}")

    with open(config_path, "rb") as f:
        data = tomllib.load(f)

    store = data.get("store", {})
    version = store.get("version", 1)
    if version > CONFIG_VERSION:
        raise ValueError(f"Config version {version} is newer than supported ({CONFIG_VERSION})")

    bridge_data = data.get("bridge", {})
    try:
        bridge = BridgeConfig(
            host=str(bridge_data.get("host", DEFAULT_HOST)),
            port=int(bridge_data.get("port", DEFAULT_PORT)),
            max_body_bytes=int(bridge_data.get("max_body_bytes", DEFAULT_MAX_BODY_BYTES)),
            allowed_origins=[str(o) for o in bridge_data.get("allowed_origins", DEFAULT_ALLOWED_ORIGINS)],
        )
    except (TypeError, ValueError) as e:
        raise ValueError(f"Invalid [bridge] section in {config_path}: {e}") from e

    migration = data.get("migration", {})
    legacy_base = migration.get("legacy_base_dir")

    return AppConfig(
        path=data_dir,
        version=version,
        created=store.get("created", ""),
        export_base=store.get("export_base", EXPORT_BASE),
        bridge=bridge,
        legacy_dirs=[Path(p).expanduser() for p in migration.get("legacy_dirs", [])],
        legacy_base_dir=Path(legacy_base).expanduser() if legacy_base else None,
    )


def save_config(config: AppConfig) -> None:
    """
    Save configuration to the data directory.

    Creates the directory if it doesn't exist.
    """
    if tomli_w is None:
        raise RuntimeError("tomli_w is required to save config. Install with: pip install tomli-w")

    config.path.mkdir(parents=True, exist_ok=True)

    migration: dict[str, Any] = {"legacy_dirs": [str(p) for p in config.legacy_dirs]}
    if config.legacy_base_dir is not None:
        migration["legacy_base_dir"] = str(config.legacy_base_dir)

    data = {
        "store": {
            "version": config.version,
            "created": config.created,
            "export_base": config.export_base,
        },
        "bridge": {
            "host": config.bridge.host,
            "port": config.bridge.port,
            "max_body_bytes": config.bridge.max_body_bytes,
            "allowed_origins": list(config.bridge.allowed_origins),
        },
        "migration": migration,
    }

    with open(config.config_path, "wb") as f:
        tomli_w.dump(data, f)


def load_or_create_config(data_dir: Path) -> AppConfig:
    """
    Load existing config or create a new one with defaults.

    This is the main entry point for config management.
    """
    config_path = data_dir / CONFIG_FILENAME

    if config_path.exists():
        return load_config(data_dir)
    config = AppConfig(path=data_dir)
    save_config(config)
    return config
