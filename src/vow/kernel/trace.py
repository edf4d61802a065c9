"""Runtime trace infrastructure - separate from promise state.

This module captures promise lifecycle events for debugging and for
asserting ordering in tests. Trace is runtime infrastructure: it never
influences settlement or dispatch.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any


@dataclass(frozen=True)
class Evidence:
    """One lifecycle event of one promise.

    Actions: "create", "fulfill", "reject", "adopt", "dispatch",
    "finalize", "unhandled".
    """

    action: str
    id: int = 0
    promise_id: int | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))
    info: dict[str, Any] = field(default_factory=dict)

    def matches(self, **criteria: Any) -> bool:
        return all(
            self.info.get(k) == v or getattr(self, k, None) == v
            for k, v in criteria.items()
        )


class Trace:
    """Runtime trace context for capturing promise lifecycle events.

    Safe to share between scheduler worker threads.

    Performance guarantees:
    - Trace disabled → single None check overhead at the call site
    - Evidence append is O(1)
    """

    def __init__(self, enabled: bool = True) -> None:
        self.enabled = enabled
        self._events: list[Evidence] = []
        self._next_id: int = 0
        self._lock = threading.Lock()

    def record(
        self,
        action: str,
        promise_id: int | None = None,
        info: dict[str, Any] | None = None,
    ) -> int | None:
        """Record an evidence event.

        Args:
            action: What happened (e.g., "fulfill", "dispatch")
            promise_id: The promise the event belongs to
            info: Additional context

        Returns:
            Event ID, or None if tracing disabled
        """
        if not self.enabled:
            return None

        with self._lock:
            event_id = self._next_id
            self._next_id += 1
            self._events.append(
                Evidence(
                    action=action,
                    id=event_id,
                    promise_id=promise_id,
                    timestamp=datetime.now(UTC),
                    info=info or {},
                )
            )
        return event_id

    def get_events(self) -> list[Evidence]:
        """Get all recorded events in recording order."""
        with self._lock:
            return list(self._events)

    def find_all(self, **criteria: Any) -> list[Evidence]:
        """Find all events matching the given criteria.

        Args:
            **criteria: Attribute or info values to match (e.g., action="reject")
        """
        return [e for e in self.get_events() if e.matches(**criteria)]

    def actions(self, promise_id: int | None = None) -> list[str]:
        """Action names in recording order, optionally for one promise."""
        return [
            e.action
            for e in self.get_events()
            if promise_id is None or e.promise_id == promise_id
        ]

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)

    def clear(self) -> None:
        """Clear all events (for reuse)."""
        with self._lock:
            self._events.clear()
            self._next_id = 0
