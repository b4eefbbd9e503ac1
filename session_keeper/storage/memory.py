"""In-process secure store for tests and ephemeral sessions."""

from __future__ import annotations

import threading


class MemorySecureStore:
    """Dict-backed store; values are lost when the process exits."""

    def __init__(self) -> None:
        self._data: dict[tuple[str, str], bytes] = {}
        self._lock = threading.Lock()

    def get(self, key: str, namespace: str) -> bytes | None:
        with self._lock:
            return self._data.get((namespace, key))

    def put(self, value: bytes, key: str, namespace: str) -> None:
        with self._lock:
            self._data[(namespace, key)] = bytes(value)

    def clear(self, key: str, namespace: str) -> None:
        with self._lock:
            self._data.pop((namespace, key), None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)
