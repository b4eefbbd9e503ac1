"""AES-GCM encrypted, file-backed secure store."""

from __future__ import annotations

import hashlib
import json
import logging
import os
import re
import tempfile
import threading
from pathlib import Path

from cryptography.exceptions import InvalidTag

from session_keeper.errors import StorageUnavailableError, StorageWriteFailedError
from session_keeper.storage.crypto import (
    MasterKeyError,
    aesgcm_decrypt,
    aesgcm_encrypt,
    load_or_create_master_key,
    restrict_permissions,
)

logger = logging.getLogger(__name__)

_NAMESPACE_RE = re.compile(r"^[A-Za-z0-9_.-]+$")
_AAD_PREFIX = b"session_keeper.store.v1"


class EncryptedFileStore:
    """One encrypted file per ``(namespace, key)`` below *root*.

    Layout: ``root/<namespace>/<sha256(key)[:32]>.json``. Each file holds an
    AES-GCM blob whose associated data binds namespace and key, so a blob
    copied into another slot fails to decrypt instead of leaking across
    namespaces. Writes are atomic (temp file + rename).
    """

    def __init__(self, root: Path, key_path: Path) -> None:
        self._root = root
        self._key_path = key_path
        self._master_key: bytes | None = None
        self._key_lock = threading.Lock()

    @property
    def root(self) -> Path:
        return self._root

    def path_for(self, key: str, namespace: str) -> Path:
        if not _NAMESPACE_RE.match(namespace) or namespace in {".", ".."}:
            msg = f"Invalid namespace: {namespace!r}"
            raise ValueError(msg)
        digest = hashlib.sha256(key.encode("utf-8")).hexdigest()[:32]
        return self._root / namespace / f"{digest}.json"

    def get(self, key: str, namespace: str) -> bytes | None:
        try:
            path = self.path_for(key, namespace)
            if not path.exists():
                return None
            blob = json.loads(path.read_text(encoding="utf-8"))
            if not isinstance(blob, dict):
                raise ValueError("Encrypted blob must be a JSON object.")
            return aesgcm_decrypt(self._get_master_key(), blob, aad=_aad(key, namespace))
        except InvalidTag as exc:
            msg = f"Stored value for {namespace}/{key} failed authentication"
            raise StorageUnavailableError(msg) from exc
        except (OSError, ValueError, MasterKeyError) as exc:
            msg = f"Cannot read {namespace}/{key}: {exc}"
            raise StorageUnavailableError(msg) from exc

    def put(self, value: bytes, key: str, namespace: str) -> None:
        try:
            path = self.path_for(key, namespace)
            blob = aesgcm_encrypt(self._get_master_key(), value, aad=_aad(key, namespace))
            _atomic_write(path, json.dumps(blob, sort_keys=True) + "\n")
        except (OSError, ValueError, MasterKeyError) as exc:
            msg = f"Cannot write {namespace}/{key}: {exc}"
            raise StorageWriteFailedError(msg) from exc
        logger.debug("Stored %d bytes at %s", len(value), path.name)

    def clear(self, key: str, namespace: str) -> None:
        try:
            self.path_for(key, namespace).unlink(missing_ok=True)
        except (OSError, ValueError) as exc:
            msg = f"Cannot clear {namespace}/{key}: {exc}"
            raise StorageWriteFailedError(msg) from exc

    def _get_master_key(self) -> bytes:
        with self._key_lock:
            if self._master_key is None:
                self._master_key = load_or_create_master_key(self._key_path)
            return self._master_key


def _aad(key: str, namespace: str) -> bytes:
    return b"|".join((_AAD_PREFIX, namespace.encode("utf-8"), key.encode("utf-8")))


def _atomic_write(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_fd, tmp_path_str = tempfile.mkstemp(dir=path.parent, suffix=".tmp")
    os.close(tmp_fd)
    tmp = Path(tmp_path_str)
    try:
        tmp.write_text(content, encoding="utf-8")
        restrict_permissions(tmp)
        tmp.replace(path)
    except Exception:
        tmp.unlink(missing_ok=True)
        raise
