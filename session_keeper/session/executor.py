"""Single-worker async queue: jobs run one at a time, in submission order."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, TypeVar

from session_keeper.errors import SessionError
from session_keeper.log_context import set_log_context

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(slots=True)
class _QueuedJob:
    """A job waiting for the worker."""

    label: str
    job: Callable[[], Awaitable[Any]]
    future: asyncio.Future[Any]
    queued_at: float = field(default_factory=lambda: asyncio.get_running_loop().time())


class SerialExecutor:
    """Runs submitted coroutine factories on one background worker task.

    Jobs never overlap, so state touched only from jobs needs no lock.
    A job that is already running must not submit-and-await another job on
    the same executor; it would wait on itself.
    """

    def __init__(self, name: str = "session") -> None:
        self._name = name
        self._queue: asyncio.Queue[_QueuedJob | None] | None = None
        self._worker: asyncio.Task[None] | None = None
        self._closed = False

    @property
    def running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    @property
    def closed(self) -> bool:
        return self._closed

    def pending(self) -> int:
        """Number of jobs waiting behind the current one."""
        return self._queue.qsize() if self._queue is not None else 0

    def start(self) -> None:
        """Start the worker. Must be called from inside a running event loop."""
        if self._closed:
            msg = f"Executor {self._name!r} is closed"
            raise SessionError(msg)
        if self._worker is not None:
            return
        self._queue = asyncio.Queue()
        self._worker = asyncio.create_task(self._run(), name=f"{self._name}-worker")
        logger.debug("Executor %s started", self._name)

    def submit(
        self,
        job: Callable[[], Awaitable[T]],
        *,
        label: str,
        log_errors: bool = False,
    ) -> asyncio.Future[T]:
        """Queue *job* and return a future for its result.

        With ``log_errors`` the failure of a job nobody awaits is still logged.
        """
        if self._closed:
            msg = f"Executor {self._name!r} is closed"
            raise SessionError(msg)
        self.start()
        assert self._queue is not None
        future: asyncio.Future[T] = asyncio.get_running_loop().create_future()
        if log_errors:
            future.add_done_callback(_make_failure_logger(label))
        self._queue.put_nowait(_QueuedJob(label=label, job=job, future=future))
        logger.debug("Job queued: %s position=%d", label, self._queue.qsize())
        return future

    async def close(self) -> None:
        """Stop accepting jobs, let queued jobs finish, then stop the worker."""
        if self._closed:
            return
        self._closed = True
        if self._queue is None or self._worker is None:
            return
        self._queue.put_nowait(None)
        await self._worker
        logger.debug("Executor %s stopped", self._name)

    async def _run(self) -> None:
        assert self._queue is not None
        loop = asyncio.get_running_loop()
        while True:
            item = await self._queue.get()
            try:
                if item is None:
                    return
                set_log_context(operation=item.label)
                logger.debug(
                    "Job started: %s waited=%.3fs", item.label, loop.time() - item.queued_at
                )
                try:
                    result = await item.job()
                except Exception as exc:
                    if not item.future.done():
                        item.future.set_exception(exc)
                else:
                    if not item.future.done():
                        item.future.set_result(result)
            finally:
                self._queue.task_done()


def _make_failure_logger(label: str) -> Callable[[asyncio.Future[Any]], None]:
    def _log_failure(future: asyncio.Future[Any]) -> None:
        if future.cancelled():
            return
        exc = future.exception()
        if exc is not None:
            logger.error("Job %s failed: %s", label, exc)

    return _log_failure
