"""Promise - the deferred-value engine.

A Promise starts pending and settles exactly once, either fulfilled with a
value or rejected with a reason. Continuations attached with then/catch are
dispatched in attachment order, always on a later scheduler turn than both
their registration and the settlement that released them.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
import threading
from collections.abc import Awaitable, Callable, Generator, Sequence
from dataclasses import dataclass
from typing import Any, Generic, Literal, TypeVar

from vow.kernel.errors import ChainingCycleError, PromiseError, RejectedError
from vow.kernel.ports import SchedulerPort, Thenable
from vow.runtime.config import default_scheduler, get_config

T = TypeVar("T")

PromiseState = Literal["pending", "fulfilled", "rejected"]
PENDING: PromiseState = "pending"
FULFILLED: PromiseState = "fulfilled"
REJECTED: PromiseState = "rejected"

Resolver = Callable[[Any], None]
Executor = Callable[[Resolver, Resolver], Any]

logger = logging.getLogger(__name__)

_ids = itertools.count(1)

# Never turned into rejections
_FATAL = (KeyboardInterrupt, SystemExit)


@dataclass(frozen=True)
class _Continuation:
    on_fulfilled: Callable[[Any], Any] | None
    on_rejected: Callable[[Any], Any] | None
    resolve: Resolver
    reject: Resolver


def is_thenable(value: Any) -> bool:
    """Whether ``value`` can be adopted by a promise."""
    if not isinstance(value, Thenable) or isinstance(value, type):
        return False
    return callable(value.then)


def _ensure_callable(name: str, fn: Any) -> None:
    if fn is not None and not callable(fn):
        raise TypeError(f"{name} must be callable or None, got {type(fn).__name__}")


class Promise(Generic[T]):
    """Promise/A+-style deferred value.

    Args:
        executor: Called as ``executor(resolve, reject)`` on a later turn.
            An exception raised by it rejects the promise.
        scheduler: Scheduler for all asynchronous work of this promise.
            Defaults to the configured scheduler (see vow.runtime.config).

    Raises:
        TypeError: If executor is not callable
    """

    def __init__(self, executor: Executor, *, scheduler: SchedulerPort | None = None) -> None:
        if not callable(executor):
            raise TypeError(
                f"Promise executor must be callable, got {type(executor).__name__}"
            )
        self._setup(scheduler)
        self._scheduler.call_soon(lambda: self._run_executor(executor))

    def _setup(self, scheduler: SchedulerPort | None) -> None:
        self._scheduler = scheduler if scheduler is not None else default_scheduler()
        self._id = next(_ids)
        self._lock = threading.Lock()
        self._state: PromiseState = PENDING
        self._value: Any = None
        self._reason: Any = None
        # Set by the first resolve/reject call, before adoption completes
        self._locked = False
        self._handled = False
        self._draining = False
        self._continuations: list[_Continuation] = []
        self._finalizers: list[Callable[[], Any]] = []
        self._trace("create")

    @classmethod
    def _pending(cls, scheduler: SchedulerPort | None = None) -> Promise[Any]:
        """Create a pending promise with no executor."""
        promise = cls.__new__(cls)
        promise._setup(scheduler)
        return promise

    # Inspection

    @property
    def id(self) -> int:
        return self._id

    @property
    def scheduler(self) -> SchedulerPort:
        return self._scheduler

    @property
    def state(self) -> PromiseState:
        return self._state

    @property
    def is_pending(self) -> bool:
        return self._state == PENDING

    @property
    def is_fulfilled(self) -> bool:
        return self._state == FULFILLED

    @property
    def is_rejected(self) -> bool:
        return self._state == REJECTED

    @property
    def value(self) -> T:
        if self._state != FULFILLED:
            raise PromiseError(f"Promise is {self._state}, not fulfilled.")
        return self._value

    @property
    def reason(self) -> Any:
        if self._state != REJECTED:
            raise PromiseError(f"Promise is {self._state}, not rejected.")
        return self._reason

    def __repr__(self) -> str:
        if self._state == FULFILLED:
            return f"<Promise #{self._id} fulfilled value={self._value!r}>"
        if self._state == REJECTED:
            return f"<Promise #{self._id} rejected reason={self._reason!r}>"
        return f"<Promise #{self._id} pending>"

    # Settlement

    def _run_executor(self, executor: Executor) -> None:
        try:
            executor(self._resolve, self._reject)
        except _FATAL:
            raise
        except BaseException as exc:
            self._reject(exc)

    def _resolve(self, value: Any = None) -> None:
        with self._lock:
            if self._locked:
                return
            self._locked = True
        self._resolve_locked(value)

    def _reject(self, reason: Any = None) -> None:
        with self._lock:
            if self._locked:
                return
            self._locked = True
        self._settle(REJECTED, reason)

    def _resolve_locked(self, value: Any) -> None:
        if value is self:
            self._settle(REJECTED, ChainingCycleError("Promise cannot be resolved with itself"))
        elif is_thenable(value):
            self._adopt(value)
        else:
            self._settle(FULFILLED, value)

    def _adopt(self, thenable: Thenable) -> None:
        """Follow ``thenable`` until it settles and copy its outcome."""
        self._trace("adopt", source=type(thenable).__name__)
        called = False
        guard = threading.Lock()

        def first_call() -> bool:
            nonlocal called
            with guard:
                if called:
                    return False
                called = True
                return True

        def on_fulfilled(value: Any) -> None:
            if first_call():
                self._resolve_locked(value)

        def on_rejected(reason: Any) -> None:
            if first_call():
                self._settle(REJECTED, reason)

        try:
            thenable.then(on_fulfilled, on_rejected)
        except _FATAL:
            raise
        except BaseException as exc:
            if first_call():
                self._settle(REJECTED, exc)

    def _settle(self, state: PromiseState, payload: Any) -> None:
        with self._lock:
            if self._state != PENDING:
                return
            self._state = state
            if state == FULFILLED:
                self._value = payload
            else:
                self._reason = payload

        self._trace("fulfill" if state == FULFILLED else "reject")
        self._scheduler.call_soon(self._process_queue)
        if state == REJECTED:
            self._scheduler.call_later(0, self._check_unhandled)

    def _check_unhandled(self) -> None:
        with self._lock:
            if self._handled or self._state != REJECTED:
                return
        config = get_config()
        if not config.warn_unhandled:
            return
        self._trace("unhandled")
        if config.on_unhandled_rejection is not None:
            config.on_unhandled_rejection(self, self._reason)
            return
        reason = self._reason
        logger.warning(
            "Unhandled promise rejection: %r",
            reason,
            exc_info=reason if isinstance(reason, BaseException) else None,
        )

    # Dispatch

    def _schedule_drain(self) -> None:
        self._scheduler.call_soon(self._process_queue)

    def _process_queue(self) -> None:
        """Dispatch queued continuations, then run queued finalizers.

        Only one drain runs per promise at a time; work queued while a drain
        is active is picked up by that drain's next pass.
        """
        with self._lock:
            if self._draining or self._state == PENDING:
                return
            self._draining = True
        try:
            while True:
                with self._lock:
                    continuations, self._continuations = self._continuations, []
                    finalizers, self._finalizers = self._finalizers, []
                    if not continuations and not finalizers:
                        self._draining = False
                        return
                for index, continuation in enumerate(continuations):
                    try:
                        self._dispatch(continuation)
                    except _FATAL:
                        self._requeue(continuations[index + 1:], finalizers)
                        raise
                for index, finalizer in enumerate(finalizers):
                    try:
                        self._finalize(finalizer)
                    except _FATAL:
                        self._requeue([], finalizers[index + 1:])
                        raise
        except BaseException:
            with self._lock:
                self._draining = False
            raise

    def _dispatch(self, continuation: _Continuation) -> None:
        state = self._state
        self._trace("dispatch", state=state)
        if state == FULFILLED:
            handler, payload, forward = continuation.on_fulfilled, self._value, continuation.resolve
        else:
            # The child now carries the rejection, handled or not
            self._handled = True
            handler, payload, forward = continuation.on_rejected, self._reason, continuation.reject

        if handler is None:
            forward(payload)
            return
        try:
            result = handler(payload)
        except _FATAL:
            raise
        except BaseException as exc:
            continuation.reject(exc)
        else:
            continuation.resolve(result)

    def _requeue(
        self,
        continuations: list[_Continuation],
        finalizers: list[Callable[[], Any]],
    ) -> None:
        """Put undispatched work back ahead of anything queued since."""
        with self._lock:
            self._continuations[:0] = continuations
            self._finalizers[:0] = finalizers
        if continuations or finalizers:
            self._schedule_drain()

    def _finalize(self, finalizer: Callable[[], Any]) -> None:
        self._trace("finalize")
        try:
            finalizer()
        except _FATAL:
            raise
        except BaseException:
            logger.exception("Exception in promise finalizer %r", finalizer)

    # Chaining

    def then(
        self,
        on_fulfilled: Callable[[T], Any] | None = None,
        on_rejected: Callable[[Any], Any] | None = None,
    ) -> Promise[Any]:
        """Attach handlers and return the promise of their result.

        Args:
            on_fulfilled: Called with the value; None passes the value through
            on_rejected: Called with the reason; None passes the rejection through

        Returns:
            A new promise settled by whichever handler runs
        """
        _ensure_callable("on_fulfilled", on_fulfilled)
        _ensure_callable("on_rejected", on_rejected)

        child = type(self)._pending(self._scheduler)
        continuation = _Continuation(on_fulfilled, on_rejected, child._resolve, child._reject)
        with self._lock:
            self._continuations.append(continuation)
            if on_rejected is not None:
                self._handled = True
            settled = self._state != PENDING
        if settled:
            self._schedule_drain()
        return child

    def catch(self, on_rejected: Callable[[Any], Any]) -> Promise[Any]:
        """Attach a rejection handler."""
        return self.then(None, on_rejected)

    def finally_(self, on_settled: Callable[[], Any]) -> Promise[T]:
        """Run ``on_settled()`` after settlement, whatever the outcome.

        The callback cannot change the outcome; this promise is returned.
        """
        if not callable(on_settled):
            raise TypeError(f"on_settled must be callable, got {type(on_settled).__name__}")
        with self._lock:
            self._finalizers.append(on_settled)
            settled = self._state != PENDING
        if settled:
            self._schedule_drain()
        return self

    # Factories

    @classmethod
    def resolve(cls, value: Any = None, *, scheduler: SchedulerPort | None = None) -> Promise[Any]:
        """Promise fulfilled with ``value``, or following it if it is a thenable.

        A Promise argument is returned unchanged.
        """
        if isinstance(value, Promise):
            return value
        promise = cls._pending(scheduler)
        promise._resolve(value)
        return promise

    @classmethod
    def reject(cls, reason: Any = None, *, scheduler: SchedulerPort | None = None) -> Promise[Any]:
        """Promise rejected with ``reason``."""
        promise = cls._pending(scheduler)
        promise._reject(reason)
        return promise

    @classmethod
    def from_awaitable(
        cls,
        awaitable: Awaitable[T],
        *,
        scheduler: SchedulerPort | None = None,
    ) -> Promise[T]:
        """Mirror a coroutine or asyncio future as a promise.

        Requires a running event loop.
        """
        promise = cls._pending(scheduler)
        future = asyncio.ensure_future(awaitable)

        def _on_done(fut: asyncio.Future[T]) -> None:
            if fut.cancelled():
                promise._reject(asyncio.CancelledError())
                return
            exc = fut.exception()
            if exc is not None:
                promise._reject(exc)
            else:
                promise._resolve(fut.result())

        future.add_done_callback(_on_done)
        return promise

    # Combinators

    @staticmethod
    def all(promises: Sequence[Any], *, scheduler: SchedulerPort | None = None) -> Promise[list[Any]]:
        from vow.combinators.ops import all_of

        return all_of(promises, scheduler=scheduler)

    @staticmethod
    def race(promises: Sequence[Any], *, scheduler: SchedulerPort | None = None) -> Promise[Any]:
        from vow.combinators.ops import race

        return race(promises, scheduler=scheduler)

    @staticmethod
    def all_settled(promises: Sequence[Any], *, scheduler: SchedulerPort | None = None) -> Promise[list[Any]]:
        from vow.combinators.ops import all_settled

        return all_settled(promises, scheduler=scheduler)

    @staticmethod
    def delay(seconds: float, *, scheduler: SchedulerPort | None = None) -> Promise[None]:
        from vow.combinators.ops import delay

        return delay(seconds, scheduler=scheduler)

    @staticmethod
    def retry(
        fn: Callable[[], Any],
        attempts: int,
        interval: float = 0,
        *,
        scheduler: SchedulerPort | None = None,
    ) -> Promise[Any]:
        from vow.combinators.ops import retry

        return retry(fn, attempts, interval, scheduler=scheduler)

    # asyncio interop

    def __await__(self) -> Generator[Any, None, T]:
        loop = asyncio.get_running_loop()
        future: asyncio.Future[T] = loop.create_future()

        def _on_fulfilled(value: Any) -> None:
            loop.call_soon_threadsafe(_settle_future, future, value, None)

        def _on_rejected(reason: Any) -> None:
            loop.call_soon_threadsafe(_settle_future, future, None, _as_exception(reason))

        self.then(_on_fulfilled, _on_rejected)
        return (yield from future.__await__())

    def _trace(self, action: str, **info: Any) -> None:
        trace = get_config().trace
        if trace is not None:
            trace.record(action, promise_id=self._id, info=info)


class Deferred(Generic[T]):
    """The creator side of a promise.

    Exposes resolve/reject as methods so the promise can be settled from
    code that did not construct it. The first call wins.
    """

    def __init__(self, scheduler: SchedulerPort | None = None) -> None:
        self.promise: Promise[T] = Promise._pending(scheduler)

    def resolve(self, value: Any = None) -> None:
        self.promise._resolve(value)

    def reject(self, reason: Any = None) -> None:
        self.promise._reject(reason)


def _as_exception(reason: Any) -> BaseException:
    if isinstance(reason, BaseException):
        return reason
    return RejectedError(reason)


def _settle_future(future: asyncio.Future[Any], value: Any, exc: BaseException | None) -> None:
    if future.done():
        return
    if exc is not None:
        future.set_exception(exc)
    else:
        future.set_result(value)
