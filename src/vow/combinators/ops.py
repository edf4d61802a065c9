"""Combinator primitives: all_of, race, all_settled, delay, retry, timeout."""

# Combinators satisfy the following laws:
#
# 1. Order: all_of(ps) lists values in input order, whatever the settlement order
#
# 2. First rejection wins: all_of(ps) rejects with the reason of the input
#    that rejected first in time, not first in the sequence
#
# 3. Totality: all_settled(ps) never rejects
#
# 4. Lifting: a plain value x in any input behaves as Promise.resolve(x)
#
# 5. Timeout is a race: timeout(p, s) == race([p, delay(s) -> reject])


from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Sequence
from typing import Any

from vow.kernel.errors import PromiseTimeoutError
from vow.kernel.ports import SchedulerPort
from vow.kernel.promise import Deferred, Promise
from vow.kernel.records import SettledResult
from vow.runtime.config import default_scheduler

logger = logging.getLogger(__name__)


def _require_sequence(name: str, promises: Any) -> list[Any]:
    if isinstance(promises, (str, bytes, bytearray)) or not isinstance(promises, Sequence):
        raise TypeError(
            f"{name} requires a sequence of promises, got {type(promises).__name__}"
        )
    return list(promises)


def all_of(
    promises: Sequence[Any],
    *,
    scheduler: SchedulerPort | None = None,
) -> Promise[list[Any]]:
    """Wait for every input to fulfill.

    Semantics:
        - Fulfill with the list of values, in input order
        - Reject with the reason of the first input to reject
        - Empty input fulfills with []

    Args:
        promises: Sequence of promises, thenables or plain values.
        scheduler: Scheduler for the promises created here.

    Returns:
        Promise[list[Any]]: The combined promise.

    Raises:
        TypeError: If promises is not a sequence
    """
    items = _require_sequence("all_of", promises)
    deferred: Deferred[list[Any]] = Deferred(scheduler)
    scheduler = deferred.promise.scheduler

    total = len(items)
    if total == 0:
        deferred.resolve([])
        return deferred.promise

    results: list[Any] = [None] * total
    remaining = total
    lock = threading.Lock()

    def make_on_fulfilled(index: int) -> Callable[[Any], None]:
        # This function gives us a closure for index
        def on_fulfilled(value: Any) -> None:
            nonlocal remaining
            with lock:
                results[index] = value
                remaining -= 1
                done = remaining == 0
            if done:
                deferred.resolve(results)

        return on_fulfilled

    for index, item in enumerate(items):
        Promise.resolve(item, scheduler=scheduler).then(
            make_on_fulfilled(index),
            deferred.reject,
        )

    return deferred.promise


def race(
    promises: Sequence[Any],
    *,
    scheduler: SchedulerPort | None = None,
) -> Promise[Any]:
    """Settle like whichever input settles first.

    Semantics:
        - Input order is irrelevant, only settlement time counts
        - Later settlements are ignored
        - Empty input never settles

    Raises:
        TypeError: If promises is not a sequence
    """
    items = _require_sequence("race", promises)
    deferred: Deferred[Any] = Deferred(scheduler)
    scheduler = deferred.promise.scheduler

    for item in items:
        Promise.resolve(item, scheduler=scheduler).then(deferred.resolve, deferred.reject)

    return deferred.promise


def all_settled(
    promises: Sequence[Any],
    *,
    scheduler: SchedulerPort | None = None,
) -> Promise[list[SettledResult]]:
    """Wait for every input to settle, successfully or not.

    Never rejects. Fulfills with one SettledResult per input, in input order.

    Raises:
        TypeError: If promises is not a sequence
    """
    items = _require_sequence("all_settled", promises)
    scheduler = scheduler if scheduler is not None else default_scheduler()

    wrapped = [
        Promise.resolve(item, scheduler=scheduler).then(
            SettledResult.fulfilled,
            SettledResult.rejected,
        )
        for item in items
    ]
    return all_of(wrapped, scheduler=scheduler)


def delay(seconds: float, *, scheduler: SchedulerPort | None = None) -> Promise[None]:
    """Fulfill with None after ``seconds``.

    Raises:
        ValueError: If seconds is negative
    """
    if seconds < 0:
        raise ValueError("delay must be non-negative")
    scheduler = scheduler if scheduler is not None else default_scheduler()

    def executor(resolve: Callable[[Any], None], _reject: Callable[[Any], None]) -> None:
        scheduler.call_later(seconds, resolve)

    return Promise(executor, scheduler=scheduler)


def retry(
    fn: Callable[[], Any],
    attempts: int,
    interval: float = 0,
    *,
    scheduler: SchedulerPort | None = None,
) -> Promise[Any]:
    """Call ``fn`` until its promise fulfills, at most ``attempts`` times.

    Semantics:
        - Fulfill with the first successful attempt's value
        - Wait ``interval`` seconds between attempts
        - Reject with the last attempt's reason once attempts are exhausted
        - An exception raised by fn itself counts as a failed attempt

    Args:
        fn: Zero-argument callable returning a promise (or a plain value).
        attempts: Maximum number of calls (must be > 0).
        interval: Seconds to wait before each retry.

    Raises:
        TypeError: If fn is not callable
        ValueError: If attempts < 1 or interval is negative
    """
    if not callable(fn):
        raise TypeError(f"retry requires a callable, got {type(fn).__name__}")
    if attempts < 1:
        raise ValueError("attempts must be positive")
    if interval < 0:
        raise ValueError("interval must be non-negative")

    deferred: Deferred[Any] = Deferred(scheduler)
    scheduler = deferred.promise.scheduler
    attempt = 0

    def on_rejected(reason: Any) -> None:
        if attempt >= attempts:
            deferred.reject(reason)
            return
        logger.debug(
            "Attempt %d/%d failed with %r, retrying in %ss",
            attempt,
            attempts,
            reason,
            interval,
        )
        scheduler.call_later(interval, try_once)

    def try_once() -> None:
        nonlocal attempt
        attempt += 1
        try:
            outcome = Promise.resolve(fn(), scheduler=scheduler)
        except (KeyboardInterrupt, SystemExit):
            raise
        except BaseException as exc:
            on_rejected(exc)
            return
        outcome.then(deferred.resolve, on_rejected)

    scheduler.call_soon(try_once)
    return deferred.promise


def timeout(
    promise: Any,
    seconds: float,
    reason: Any = None,
    *,
    scheduler: SchedulerPort | None = None,
) -> Promise[Any]:
    """Settle like ``promise``, or reject if it takes longer than ``seconds``.

    Args:
        promise: Promise, thenable or plain value to wait for.
        seconds: Deadline in seconds.
        reason: Rejection reason on expiry. Defaults to PromiseTimeoutError.
    """
    scheduler = scheduler if scheduler is not None else default_scheduler()

    def expire(_: Any) -> Promise[Any]:
        expired = reason if reason is not None else PromiseTimeoutError(
            f"Promise did not settle within {seconds}s"
        )
        return Promise.reject(expired, scheduler=scheduler)

    deadline = delay(seconds, scheduler=scheduler).then(expire)
    return race([promise, deadline], scheduler=scheduler)
