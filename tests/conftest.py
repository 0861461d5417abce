# tests/conftest.py
from pathlib import Path

import pytest

from equiptrack.config_loader import AppConfig, StorageConfig
from equiptrack.main import open_storage


@pytest.fixture
def app_config(tmp_path: Path) -> AppConfig:
    """Configuration rooted in a temporary data directory."""
    return AppConfig(storage=StorageConfig(data_dir=tmp_path / "data"))


@pytest.fixture
async def storage(app_config: AppConfig):
    """A fully migrated storage core on disk."""
    opened = await open_storage(app_config)
    yield opened
    await opened.close()


@pytest.fixture
def executor(storage):
    return storage.executor


@pytest.fixture
async def crane(executor) -> int:
    """Insert one piece of equipment and return its row id."""
    result = await executor.execute("equipment", "create", {
        "equipment_id": "CR-001",
        "type": "Overhead Crane",
        "manufacturer": "Demag",
        "model": "EKDR 5",
        "capacity": 5000,
        "location": "Bay 3",
        "status": "active",
    })
    return result.inserted_id
