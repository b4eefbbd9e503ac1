"""Secure storage backends for the session record."""

from session_keeper.storage.base import SecureStore as SecureStore
from session_keeper.storage.factory import build_store as build_store
from session_keeper.storage.file import EncryptedFileStore as EncryptedFileStore
from session_keeper.storage.memory import MemorySecureStore as MemorySecureStore

__all__ = ["EncryptedFileStore", "MemorySecureStore", "SecureStore", "build_store"]
