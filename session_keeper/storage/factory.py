"""Store factory: picks the backend named in the config."""

from __future__ import annotations

import logging

from session_keeper.config import KeeperConfig
from session_keeper.paths import KeeperPaths
from session_keeper.storage.base import SecureStore
from session_keeper.storage.file import EncryptedFileStore
from session_keeper.storage.memory import MemorySecureStore

logger = logging.getLogger(__name__)


def build_store(config: KeeperConfig, paths: KeeperPaths) -> SecureStore:
    """Create the secure store backend selected by ``config.storage.backend``."""
    backend = config.storage.backend
    if backend == "memory":
        logger.info("Using in-memory store, sessions will not survive restarts")
        return MemorySecureStore()
    logger.debug("Using encrypted file store at %s", paths.store_dir)
    return EncryptedFileStore(paths.store_dir, paths.master_key_path)
