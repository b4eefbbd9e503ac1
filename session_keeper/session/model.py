"""Session config record: id + absolute expiry, JSON wire format."""

from __future__ import annotations

import json
import time
import uuid
from dataclasses import dataclass
from typing import Any

from session_keeper.errors import MalformedRecordError

_ID_FIELD = "sessionId"
_EXPIRY_FIELD = "expiryDate"


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


def new_session_id() -> str:
    return str(uuid.uuid4())


@dataclass(frozen=True)
class SessionConfig:
    """A session identifier paired with its expiry (epoch milliseconds)."""

    session_id: str
    expires_at: int

    def is_valid(self, now: int | None = None) -> bool:
        if not self.session_id:
            return False
        return self.expires_at > (now_ms() if now is None else now)

    def to_dict(self) -> dict[str, Any]:
        return {_ID_FIELD: self.session_id, _EXPIRY_FIELD: self.expires_at}

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def from_dict(cls, data: Any) -> SessionConfig:
        if not isinstance(data, dict):
            msg = f"Session record must be an object, got {type(data).__name__}"
            raise MalformedRecordError(msg)
        session_id = data.get(_ID_FIELD)
        expires_at = data.get(_EXPIRY_FIELD)
        if not isinstance(session_id, str):
            msg = f"Session record field {_ID_FIELD!r} must be a string"
            raise MalformedRecordError(msg)
        # bool is an int subclass; reject it explicitly.
        if not isinstance(expires_at, int) or isinstance(expires_at, bool):
            msg = f"Session record field {_EXPIRY_FIELD!r} must be an integer"
            raise MalformedRecordError(msg)
        return cls(session_id=session_id, expires_at=expires_at)

    @classmethod
    def from_json(cls, raw: str | bytes) -> SessionConfig:
        """Decode a stored record.

        Raises:
            MalformedRecordError: *raw* is not UTF-8 JSON with a string
                ``sessionId`` and an integer ``expiryDate``.
        """
        try:
            data = json.loads(raw)
        except (UnicodeDecodeError, ValueError, RecursionError) as exc:
            msg = f"Session record is not valid JSON: {exc}"
            raise MalformedRecordError(msg) from exc
        return cls.from_dict(data)

    @classmethod
    def fresh(cls, duration_seconds: int, now: int | None = None) -> SessionConfig:
        start = now_ms() if now is None else now
        return cls(session_id=new_session_id(), expires_at=start + duration_seconds * 1000)

    def renewed(self, duration_seconds: int, now: int | None = None) -> SessionConfig:
        """Same id, expiry pushed to ``now + duration``."""
        start = now_ms() if now is None else now
        return SessionConfig(session_id=self.session_id, expires_at=start + duration_seconds * 1000)
