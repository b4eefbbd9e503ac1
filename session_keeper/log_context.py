"""Logging context: ContextVar-based log enrichment for async operations.

Every log record is automatically enriched with a ``[op:namespace:sid]`` prefix
via a `ContextFilter` attached to the root logger handlers.

Operation codes: ``init`` (warm start), ``get`` (config read), ``save``,
``duration`` (duration update), ``clear`` (session rotation).
"""

from __future__ import annotations

import logging
from contextvars import ContextVar

# Cross-cutting context propagated through asyncio tasks.
ctx_operation: ContextVar[str | None] = ContextVar("ctx_operation", default=None)
ctx_namespace: ContextVar[str | None] = ContextVar("ctx_namespace", default=None)
ctx_session_id: ContextVar[str | None] = ContextVar("ctx_session_id", default=None)


class ContextFilter(logging.Filter):
    """Inject ContextVar values into every LogRecord as ``record.ctx``."""

    def filter(self, record: logging.LogRecord) -> bool:
        op = ctx_operation.get(None)
        ns = ctx_namespace.get(None)
        sid = ctx_session_id.get(None)
        parts: list[str] = []
        if op:
            parts.append(op)
        if ns:
            parts.append(ns)
        if sid:
            parts.append(sid[:8])
        record.ctx = f"[{':'.join(parts)}] " if parts else ""
        return True


def set_log_context(
    *,
    operation: str | None = None,
    namespace: str | None = None,
    session_id: str | None = None,
) -> None:
    """Set logging context for the current asyncio task.

    Values propagate to all coroutines called within the same task.
    Each ``asyncio.create_task()`` copies the current context automatically.
    """
    if operation is not None:
        ctx_operation.set(operation)
    if namespace is not None:
        ctx_namespace.set(namespace)
    if session_id is not None:
        ctx_session_id.set(session_id)
