"""Port protocols for vow - pure abstractions."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Protocol, runtime_checkable


class SchedulerPort(Protocol):
    """Async scheduler port.

    Runs zero-argument units of work at some later point without blocking
    the caller. No FIFO ordering across unrelated units is assumed.
    """

    def call_soon(self, fn: Callable[[], Any]) -> None:
        """Run ``fn`` on a later turn."""
        ...

    def call_later(self, delay: float, fn: Callable[[], Any]) -> None:
        """Run ``fn`` after ``delay`` seconds."""
        ...


@runtime_checkable
class Thenable(Protocol):
    """Anything exposing a two-handler ``then`` can be adopted by a Promise."""

    def then(
        self,
        on_fulfilled: Callable[[Any], Any] | None = None,
        on_rejected: Callable[[Any], Any] | None = None,
    ) -> Any: ...
