"""Error types raised by the promise engine."""

from __future__ import annotations


class PromiseError(Exception):
    """Base class for errors raised by vow."""


class RejectedError(PromiseError):
    """Raised when awaiting a promise rejected with a non-exception reason.

    The raw reason is preserved so callers can still inspect it.
    """

    def __init__(self, reason: object) -> None:
        self.reason = reason
        super().__init__(f"Promise rejected: {reason!r}")

    def __repr__(self) -> str:
        return f"RejectedError(reason={self.reason!r})"


class ChainingCycleError(PromiseError, TypeError):
    """A promise was resolved with itself."""


class PromiseTimeoutError(PromiseError, TimeoutError):
    """A promise did not settle before its deadline."""
