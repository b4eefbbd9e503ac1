from __future__ import annotations

import base64
import contextlib
import os
import secrets
from pathlib import Path

from cryptography.hazmat.primitives.ciphers.aead import AESGCM

KEY_SIZE = 32  # AES-256
NONCE_SIZE = 12
BLOB_VERSION = 1


class MasterKeyError(RuntimeError):
    pass


def _b64e(b: bytes) -> str:
    return base64.urlsafe_b64encode(b).decode("ascii")


def _b64d(s: str) -> bytes:
    return base64.urlsafe_b64decode(s.encode("ascii"))


def restrict_permissions(path: Path) -> None:
    """Best-effort 0o600 on POSIX; a no-op on Windows."""
    if os.name != "nt":
        with contextlib.suppress(OSError):
            os.chmod(path, 0o600)


def read_master_key(path: Path) -> bytes:
    key = path.read_bytes()
    if len(key) != KEY_SIZE:
        msg = f"Master key at {path} must be {KEY_SIZE} bytes (AES-256), got {len(key)}"
        raise MasterKeyError(msg)
    return key


def load_or_create_master_key(path: Path) -> bytes:
    """Read the master key, generating and persisting a new one if missing."""
    if path.exists():
        return read_master_key(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    key = secrets.token_bytes(KEY_SIZE)
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
    with os.fdopen(fd, "wb") as f:
        f.write(key)
    restrict_permissions(path)
    return key


def aesgcm_encrypt(key: bytes, plaintext: bytes, aad: bytes = b"") -> dict[str, object]:
    aes = AESGCM(key)
    nonce = secrets.token_bytes(NONCE_SIZE)
    ct = aes.encrypt(nonce, plaintext, aad or None)
    return {"v": BLOB_VERSION, "nonce": _b64e(nonce), "ciphertext": _b64e(ct)}


def aesgcm_decrypt(key: bytes, blob: dict[str, object], aad: bytes = b"") -> bytes:
    if blob.get("v") != BLOB_VERSION:
        raise ValueError("Unsupported encrypted blob version.")
    nonce, ct = blob.get("nonce"), blob.get("ciphertext")
    if not isinstance(nonce, str) or not isinstance(ct, str):
        raise ValueError("Encrypted blob is missing nonce or ciphertext.")
    aes = AESGCM(key)
    return aes.decrypt(_b64d(nonce), _b64d(ct), aad or None)
