"""Load and validate storage configuration from a YAML file."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("config") / "equiptrack.yaml"
DATA_DIR_ENV = "EQUIPTRACK_DATA_DIR"


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------


def _validate_range(value: Any, name: str, minimum: int = 1, maximum: int | None = None) -> None:
    """Validate a numeric config value is within bounds."""
    if not isinstance(value, int) or isinstance(value, bool) or value < minimum:
        raise ValueError(f"Config '{name}' must be an integer >= {minimum}, got {value!r}")
    if maximum is not None and value > maximum:
        raise ValueError(f"Config '{name}' must be <= {maximum}, got {value!r}")


def _validate_choice(value: Any, name: str, choices: tuple[str, ...]) -> None:
    if value not in choices:
        raise ValueError(f"Config '{name}' must be one of {', '.join(choices)}; got {value!r}")


def _section(data: dict, key: str) -> dict:
    raw = data.get(key) or {}
    if not isinstance(raw, dict):
        raise ValueError(f"Config section '{key}' must be a mapping, got {type(raw).__name__}")
    return raw


# ---------------------------------------------------------------------------
# Configuration dataclasses
# ---------------------------------------------------------------------------


@dataclass
class StorageConfig:
    """Where the database, its snapshots and the migration log live."""

    data_dir: Path = field(default_factory=lambda: Path.home() / ".equiptrack")
    db_filename: str = "database.db"
    backup_dirname: str = "backups"
    log_filename: str = "migration.log"
    max_backups: int = 10


@dataclass
class DocumentsConfig:
    """Managed-documents directory and the path policy applied to it."""

    dirname: str = "documents"
    require_managed: bool = False


@dataclass
class LoggingConfig:
    format: str = "dev"
    level: str = "INFO"


@dataclass
class AppConfig:
    """Top-level settings loaded from ``config/equiptrack.yaml``."""

    storage: StorageConfig = field(default_factory=StorageConfig)
    documents: DocumentsConfig = field(default_factory=DocumentsConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @property
    def db_path(self) -> Path:
        return self.storage.data_dir / self.storage.db_filename

    @property
    def backup_dir(self) -> Path:
        return self.storage.data_dir / self.storage.backup_dirname

    @property
    def log_path(self) -> Path:
        return self.storage.data_dir / self.storage.log_filename

    @property
    def documents_dir(self) -> Path:
        return self.storage.data_dir / self.documents.dirname


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


def parse_config(data: dict | None) -> AppConfig:
    """Build an :class:`AppConfig` from already-parsed YAML data."""
    data = data or {}
    if not isinstance(data, dict):
        raise ValueError(f"Config root must be a mapping, got {type(data).__name__}")

    storage_raw = _section(data, "storage")
    documents_raw = _section(data, "documents")
    logging_raw = _section(data, "logging")

    defaults = StorageConfig()
    data_dir = os.environ.get(DATA_DIR_ENV) or storage_raw.get("data_dir")
    storage = StorageConfig(
        data_dir=Path(data_dir).expanduser() if data_dir else defaults.data_dir,
        db_filename=storage_raw.get("db_filename", defaults.db_filename),
        backup_dirname=storage_raw.get("backup_dirname", defaults.backup_dirname),
        log_filename=storage_raw.get("log_filename", defaults.log_filename),
        max_backups=storage_raw.get("max_backups", defaults.max_backups),
    )
    documents = DocumentsConfig(
        dirname=documents_raw.get("dirname", "documents"),
        require_managed=bool(documents_raw.get("require_managed", False)),
    )
    log_cfg = LoggingConfig(
        format=logging_raw.get("format", "dev"),
        level=str(logging_raw.get("level", "INFO")).upper(),
    )

    _validate_range(storage.max_backups, "storage.max_backups", 1)
    _validate_choice(log_cfg.format, "logging.format", ("dev", "json"))
    _validate_choice(
        log_cfg.level, "logging.level", ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"),
    )
    for name, value in (
        ("storage.db_filename", storage.db_filename),
        ("storage.backup_dirname", storage.backup_dirname),
        ("storage.log_filename", storage.log_filename),
        ("documents.dirname", documents.dirname),
    ):
        if not isinstance(value, str) or not value.strip():
            raise ValueError(f"Config '{name}' must be a non-empty string, got {value!r}")

    return AppConfig(storage=storage, documents=documents, logging=log_cfg)


def load_config(path: Path | None = None) -> AppConfig:
    """Load application configuration from a YAML file.

    Parameters
    ----------
    path:
        Path to the YAML file.  When omitted, ``config/equiptrack.yaml`` is
        used if it exists and built-in defaults otherwise.

    Returns
    -------
    AppConfig
        Parsed configuration.

    Raises
    ------
    FileNotFoundError
        If an explicitly given *path* does not exist.
    ValueError
        If a value is out of range or of the wrong kind.
    """
    if path is None:
        path = DEFAULT_CONFIG_PATH
        if not path.exists():
            logger.debug("No config file at %s, using defaults", path)
            return parse_config({})
    elif not path.exists():
        raise FileNotFoundError(f"Config not found: {path}")

    with open(path) as f:
        data = yaml.safe_load(f)

    return parse_config(data)
