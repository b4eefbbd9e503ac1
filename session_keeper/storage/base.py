"""Secure key-value store contract consumed by the session layer."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class SecureStore(Protocol):
    """Durable bytes storage keyed by ``(key, namespace)``.

    Implementations keep values until cleared and never leak a value across
    namespaces. Failures surface as ``StorageUnavailableError`` on reads and
    ``StorageWriteFailedError`` on writes. Calls may block on I/O.
    """

    def get(self, key: str, namespace: str) -> bytes | None: ...

    def put(self, value: bytes, key: str, namespace: str) -> None: ...

    def clear(self, key: str, namespace: str) -> None: ...
