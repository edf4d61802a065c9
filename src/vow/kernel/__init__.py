"""Kernel layer - the deferred-value engine and its pure abstractions."""

from vow.kernel.errors import (
    ChainingCycleError,
    PromiseError,
    PromiseTimeoutError,
    RejectedError,
)
from vow.kernel.ports import SchedulerPort, Thenable
from vow.kernel.promise import (
    FULFILLED,
    PENDING,
    REJECTED,
    Deferred,
    Promise,
    PromiseState,
    is_thenable,
)
from vow.kernel.records import SettledResult
from vow.kernel.trace import Evidence, Trace

__all__ = [
    "Promise",
    "Deferred",
    "PromiseState",
    "PENDING",
    "FULFILLED",
    "REJECTED",
    "is_thenable",
    "SettledResult",
    # Errors
    "PromiseError",
    "RejectedError",
    "ChainingCycleError",
    "PromiseTimeoutError",
    # Ports
    "SchedulerPort",
    "Thenable",
    # Tracing
    "Evidence",
    "Trace",
]
