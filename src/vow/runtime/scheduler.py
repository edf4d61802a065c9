"""Scheduler adapters - concrete SchedulerPort implementations.

AsyncioScheduler follows the single-threaded event loop contract: every
unit of work runs on one loop thread, but work may be submitted from any
thread. ThreadPoolScheduler follows the multi-threaded contract: units of
work may run concurrently on pool workers.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any

logger = logging.getLogger(__name__)


class AsyncioScheduler:
    """Schedule work on an asyncio event loop from any thread."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop

    @classmethod
    def running(cls) -> AsyncioScheduler:
        """Bind a scheduler to the currently running loop."""
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError as exc:
            raise RuntimeError(
                "vow needs a running event loop or a configured scheduler"
            ) from exc
        return cls(loop)

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = AsyncioScheduler.running().loop
        return self._loop

    def call_soon(self, fn: Callable[[], Any]) -> None:
        # Exceptions raised by fn reach loop.call_exception_handler
        self.loop.call_soon_threadsafe(fn)

    def call_later(self, delay: float, fn: Callable[[], Any]) -> None:
        loop = self.loop
        # loop.call_later is not thread-safe, so hop onto the loop first
        loop.call_soon_threadsafe(loop.call_later, delay, fn)

    def __repr__(self) -> str:
        return f"AsyncioScheduler(loop={self._loop!r})"


class ThreadPoolScheduler:
    """Schedule work on a pool of worker threads.

    Delayed work waits on a ``threading.Timer`` and is then submitted to the
    pool. Exceptions escaping a unit of work are logged, never re-raised.

    The unhandled-rejection check of a promise may run on one worker while
    another is still draining that promise, so a rejection passed on to
    a child through then(on_fulfilled) can occasionally be reported on
    the parent as well. Treat reports under this scheduler as best-effort.
    """

    def __init__(
        self,
        max_workers: int | None = None,
        thread_name_prefix: str = "vow",
    ) -> None:
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers,
            thread_name_prefix=thread_name_prefix,
        )
        self._timers: set[threading.Timer] = set()
        self._lock = threading.Lock()
        self._closed = False

    def call_soon(self, fn: Callable[[], Any]) -> None:
        future = self._executor.submit(fn)
        future.add_done_callback(_log_failure)

    def call_later(self, delay: float, fn: Callable[[], Any]) -> None:
        if delay <= 0:
            self.call_soon(fn)
            return

        def _fire() -> None:
            with self._lock:
                self._timers.discard(timer)
                if self._closed:
                    return
            self.call_soon(fn)

        timer = threading.Timer(delay, _fire)
        timer.daemon = True
        with self._lock:
            if self._closed:
                raise RuntimeError("cannot schedule work after shutdown")
            self._timers.add(timer)
        timer.start()

    def shutdown(self, wait: bool = True) -> None:
        """Cancel pending timers and stop the worker pool."""
        with self._lock:
            self._closed = True
            timers = list(self._timers)
            self._timers.clear()
        for timer in timers:
            timer.cancel()
        self._executor.shutdown(wait=wait)

    def __enter__(self) -> ThreadPoolScheduler:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.shutdown()


def _log_failure(future: Future[Any]) -> None:
    exc = future.exception()
    if exc is not None:
        logger.error("Unhandled exception in scheduled callback", exc_info=exc)
