"""Tests for configuration loading."""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from equiptrack.config_loader import DATA_DIR_ENV, AppConfig, load_config, parse_config


def _write(path: Path, data: dict) -> Path:
    path.write_text(yaml.safe_dump(data))
    return path


def test_defaults():
    config = AppConfig()
    assert config.storage.max_backups == 10
    assert config.db_path.name == "database.db"
    assert config.backup_dir.name == "backups"
    assert config.log_path.name == "migration.log"
    assert config.documents_dir.name == "documents"
    assert not config.documents.require_managed


def test_load_from_yaml(tmp_path: Path, monkeypatch):
    monkeypatch.delenv(DATA_DIR_ENV, raising=False)
    path = _write(tmp_path / "equiptrack.yaml", {
        "storage": {"data_dir": str(tmp_path / "store"), "max_backups": 3},
        "documents": {"require_managed": True},
        "logging": {"format": "json", "level": "debug"},
    })

    config = load_config(path)

    assert config.db_path == tmp_path / "store" / "database.db"
    assert config.storage.max_backups == 3
    assert config.documents.require_managed
    assert config.logging.format == "json"
    assert config.logging.level == "DEBUG"


def test_env_overrides_data_dir(tmp_path: Path, monkeypatch):
    monkeypatch.setenv(DATA_DIR_ENV, str(tmp_path / "override"))
    config = parse_config({"storage": {"data_dir": "/somewhere/else"}})
    assert config.storage.data_dir == tmp_path / "override"


def test_missing_explicit_file_raises(tmp_path: Path):
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "absent.yaml")


def test_missing_default_file_uses_defaults(tmp_path: Path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv(DATA_DIR_ENV, raising=False)
    config = load_config()
    assert config.storage.max_backups == 10


def test_empty_file_uses_defaults(tmp_path: Path):
    path = tmp_path / "empty.yaml"
    path.write_text("")
    assert load_config(path).storage.db_filename == "database.db"


@pytest.mark.parametrize("data,key", [
    ({"storage": {"max_backups": 0}}, "storage.max_backups"),
    ({"storage": {"max_backups": "ten"}}, "storage.max_backups"),
    ({"logging": {"format": "xml"}}, "logging.format"),
    ({"logging": {"level": "LOUD"}}, "logging.level"),
    ({"storage": {"db_filename": ""}}, "storage.db_filename"),
    ({"storage": ["not", "a", "mapping"]}, "storage"),
])
def test_invalid_values_rejected(data, key):
    with pytest.raises(ValueError, match=key):
        parse_config(data)
