"""Session config lifecycle: warm start, sliding expiry, reset, rotation."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any

from session_keeper.config import (
    DEFAULT_SESSION_DURATION,
    SESSION_CONFIG_KEY,
    SESSION_CONFIG_NAMESPACE,
)
from session_keeper.errors import (
    ExpiredRecordError,
    MalformedRecordError,
    StorageUnavailableError,
    StorageWriteFailedError,
)
from session_keeper.log_context import set_log_context
from session_keeper.session.executor import SerialExecutor
from session_keeper.session.model import SessionConfig, now_ms
from session_keeper.storage.base import SecureStore

_module_logger = logging.getLogger(__name__)


class SessionConfigManager:
    """Owns the single persisted session record of one store namespace.

    Construction is two-phase: ``__init__`` only wires collaborators, and
    ``start()`` (inside a running loop) queues the warm start that loads or
    creates the record. Every store operation runs on one ``SerialExecutor``,
    so operations apply in submission order and this instance is the sole
    writer of its namespace.

    ``get_config`` returns a renewed projection of a valid record without
    writing it back; persistence only happens through ``save_config``,
    ``create_fresh_config``, ``update_session_duration`` and ``clear_session``.
    """

    def __init__(
        self,
        store: SecureStore,
        session_duration: int = DEFAULT_SESSION_DURATION,
        logger: logging.Logger | None = None,
        *,
        key: str = SESSION_CONFIG_KEY,
        namespace: str = SESSION_CONFIG_NAMESPACE,
    ) -> None:
        _check_duration(session_duration)
        self._store = store
        self._duration = session_duration
        self._log = logger or _module_logger
        self._key = key
        self._namespace = namespace
        self._executor = SerialExecutor(name=f"session:{namespace}")
        self._session_id = ""
        self._ready = asyncio.Event()
        self._init_error: BaseException | None = None
        self._init_future: asyncio.Future[SessionConfig] | None = None
        self._on_initialized: list[Callable[[], Any]] = []

    # -- State --

    @property
    def session_id(self) -> str:
        """Last known session id; empty until the warm start completes."""
        return self._session_id

    @property
    def session_duration(self) -> int:
        return self._duration

    @property
    def key(self) -> str:
        return self._key

    @property
    def namespace(self) -> str:
        return self._namespace

    @property
    def is_ready(self) -> bool:
        return self._ready.is_set() and self._init_error is None

    # -- Lifecycle --

    def start(self) -> asyncio.Future[SessionConfig]:
        """Queue the warm start. Idempotent; returns the warm start future."""
        if self._init_future is None:
            self._init_future = self._executor.submit(self._initialize, label="init")
            self._init_future.add_done_callback(_consume_failure)
        return self._init_future

    async def close(self) -> None:
        """Let queued operations finish and stop the worker."""
        await self._executor.close()

    async def __aenter__(self) -> SessionConfigManager:
        self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    def on_initialized(self, callback: Callable[[], Any]) -> None:
        """Register a zero-argument callback fired once after the warm start.

        Callbacks registered after a successful warm start run immediately.
        """
        if self.is_ready:
            callback()
            return
        self._on_initialized.append(callback)

    async def wait_ready(self) -> None:
        """Wait for the warm start; re-raise its error if it failed."""
        self.start()
        await self._ready.wait()
        if self._init_error is not None:
            raise self._init_error

    async def get_session_id(self) -> str:
        """Session id gated behind the ready signal."""
        await self.wait_ready()
        return self._session_id

    async def _initialize(self) -> SessionConfig:
        set_log_context(namespace=self._namespace)
        try:
            config = await self._load_config()
        except Exception as exc:
            self._init_error = exc
            self._ready.set()
            self._log.error("SessionConfigManager: warm start failed: %s", exc)
            raise
        self._session_id = config.session_id
        set_log_context(session_id=config.session_id)
        self._ready.set()
        callbacks, self._on_initialized = self._on_initialized, []
        for callback in callbacks:
            try:
                callback()
            except Exception:
                self._log.exception("SessionConfigManager: on_initialized callback failed")
        self._log.debug("Session ready, expires_at=%d", config.expires_at)
        return config

    # -- Public operations (queued) --

    async def get_config(self, reset: bool = False) -> SessionConfig:
        """Return the current session config.

        A valid stored record comes back renewed (same id, expiry pushed to
        now + duration) but the renewal is NOT persisted; call
        ``save_config`` to commit it. Missing, unreadable, corrupt or expired
        records are replaced by a fresh, persisted config. ``reset=True``
        clears the record first and always returns a fresh config.

        Raises:
            StorageWriteFailedError: A fresh config could not be persisted.
        """
        return await self._executor.submit(lambda: self._load_config(reset), label="get")

    async def save_config(self, config: SessionConfig) -> None:
        """Persist *config* as-is. No validation; expired configs are stored too.

        Raises:
            StorageWriteFailedError: The store rejected the write.
        """
        await self._executor.submit(lambda: self._save_config(config), label="save")

    async def create_fresh_config(self) -> SessionConfig:
        """Create and persist a config with a new id and a full-duration expiry.

        Raises:
            StorageWriteFailedError: The store rejected the write.
        """
        return await self._executor.submit(self._create_fresh_config, label="create")

    def update_session_duration(self, duration: int) -> asyncio.Future[SessionConfig]:
        """Change the session duration and re-persist the current id with it.

        Returns a future for the persisted config; awaiting it is optional.

        Raises:
            ValueError: *duration* is not a positive number of seconds.
        """
        _check_duration(duration)
        self._log.info(
            "SessionConfigManager: session duration set to %.2f days", duration / 3600 / 24
        )
        return self._executor.submit(
            lambda: self._apply_duration(duration), label="duration", log_errors=True
        )

    def clear_session(
        self, on_complete: Callable[[], Any] | None = None
    ) -> asyncio.Future[SessionConfig]:
        """Rotate the session: clear the record, persist a fresh one, then notify.

        The cached ``session_id`` switches to the new id before *on_complete*
        runs. Returns a future for the new config; awaiting it is optional.
        """
        return self._executor.submit(
            lambda: self._clear_session(on_complete), label="clear", log_errors=True
        )

    # -- Worker-side implementations (never queue from here) --

    async def _load_config(self, reset: bool = False) -> SessionConfig:
        if reset:
            await self._store_clear()
            return await self._create_fresh_config()

        try:
            raw = await asyncio.to_thread(self._store.get, self._key, self._namespace)
        except StorageUnavailableError as exc:
            self._log.error("SessionConfigManager: %s", exc)
            return await self._create_fresh_config()

        if raw is None:
            return await self._create_fresh_config()

        now = now_ms()
        try:
            stored = _decode_valid(raw, now)
        except MalformedRecordError as exc:
            self._log.error("SessionConfigManager: %s", exc)
            return await self._create_fresh_config()
        except ExpiredRecordError as exc:
            self._log.info("SessionConfigManager: %s, starting a new session", exc)
            return await self._create_fresh_config()

        return stored.renewed(self._duration, now)

    async def _save_config(self, config: SessionConfig) -> None:
        payload = config.to_json().encode("utf-8")
        try:
            await asyncio.to_thread(self._store.put, payload, self._key, self._namespace)
        except StorageWriteFailedError:
            raise
        except StorageUnavailableError as exc:
            raise StorageWriteFailedError(str(exc)) from exc

    async def _create_fresh_config(self) -> SessionConfig:
        config = SessionConfig.fresh(self._duration)
        await self._save_config(config)
        self._log.debug("Created session config expires_at=%d", config.expires_at)
        return config

    async def _apply_duration(self, duration: int) -> SessionConfig:
        self._duration = duration
        current = await self._load_config()
        config = SessionConfig(current.session_id, now_ms() + duration * 1000)
        await self._save_config(config)
        return config

    async def _clear_session(self, on_complete: Callable[[], Any] | None) -> SessionConfig:
        await self._store_clear()
        config = await self._create_fresh_config()
        self._session_id = config.session_id
        set_log_context(session_id=config.session_id)
        self._log.info("Session rotated")
        if on_complete is not None:
            on_complete()
        return config

    async def _store_clear(self) -> None:
        try:
            await asyncio.to_thread(self._store.clear, self._key, self._namespace)
        except StorageWriteFailedError:
            raise
        except StorageUnavailableError as exc:
            raise StorageWriteFailedError(str(exc)) from exc


def _decode_valid(raw: bytes, now: int) -> SessionConfig:
    """Decode a stored record and require it to be valid at *now*.

    Raises:
        MalformedRecordError: The bytes are not a session record.
        ExpiredRecordError: The record has expired or carries an empty id.
    """
    stored = SessionConfig.from_json(raw)
    if not stored.session_id:
        raise ExpiredRecordError("Stored session has an empty id")
    if not stored.is_valid(now):
        msg = f"Session expired at {stored.expires_at}"
        raise ExpiredRecordError(msg)
    return stored


def _consume_failure(future: asyncio.Future[Any]) -> None:
    # Warm start failures are logged and re-raised by wait_ready().
    if not future.cancelled():
        future.exception()


def _check_duration(duration: int) -> None:
    if isinstance(duration, bool) or not isinstance(duration, int) or duration <= 0:
        msg = f"Session duration must be a positive number of seconds, got {duration!r}"
        raise ValueError(msg)
