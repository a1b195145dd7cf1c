"""
Shared pytest fixtures for snipboard tests.

Every test gets its own data directory; SNIPBOARD_DATA_DIR is pointed at it
so the error log never lands in the real home directory.
"""

import logging
from pathlib import Path

import pytest

from snipboard.api import SnipBoard
from snipboard.paths import DataPaths
from snipboard.store import SnipStore


@pytest.fixture
def data_dir(tmp_path: Path, monkeypatch) -> Path:
    """Empty data directory, also exported as SNIPBOARD_DATA_DIR."""
    path = tmp_path / "data"
    monkeypatch.setenv("SNIPBOARD_DATA_DIR", str(path))
    return path


@pytest.fixture
def paths(data_dir: Path) -> DataPaths:
    return DataPaths(data_dir)


@pytest.fixture
def store(paths: DataPaths) -> SnipStore:
    """A freshly loaded store with the default sections."""
    return SnipStore(paths=paths).load()


@pytest.fixture
def board(data_dir: Path):
    """SnipBoard on a fresh data directory."""
    b = SnipBoard(data_dir)
    yield b
    b.close()


@pytest.fixture(autouse=True)
def _detach_ops_log():
    """Drop ops log handlers a test may have left on the snipboard logger."""
    yield
    logger = logging.getLogger("snipboard")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
