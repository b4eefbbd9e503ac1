"""Shared test fixtures."""

from __future__ import annotations

from pathlib import Path

import pytest

from session_keeper.paths import KeeperPaths, resolve_paths
from session_keeper.storage import EncryptedFileStore, MemorySecureStore


@pytest.fixture
def memory_store() -> MemorySecureStore:
    return MemorySecureStore()


@pytest.fixture
def keeper_paths(tmp_path: Path) -> KeeperPaths:
    """Temporary ~/.session_keeper equivalent."""
    return resolve_paths(tmp_path / ".session_keeper")


@pytest.fixture
def file_store(keeper_paths: KeeperPaths) -> EncryptedFileStore:
    return EncryptedFileStore(keeper_paths.store_dir, keeper_paths.master_key_path)
