from .kernel import (
    ChainingCycleError,
    Deferred,
    Evidence,
    Promise,
    PromiseError,
    PromiseTimeoutError,
    RejectedError,
    SchedulerPort,
    SettledResult,
    Thenable,
    Trace,
)
from .combinators import all_of, all_settled, delay, race, retry, timeout
from .runtime import (
    AsyncioScheduler,
    PromiseConfig,
    ThreadPoolScheduler,
    configure,
    get_config,
    reset_config,
)

__all__ = [
    # Core
    "Promise",
    "Deferred",
    "SettledResult",
    # Combinators
    "all_of",
    "race",
    "all_settled",
    "delay",
    "retry",
    "timeout",
    # Errors
    "PromiseError",
    "RejectedError",
    "ChainingCycleError",
    "PromiseTimeoutError",
    # Ports
    "SchedulerPort",
    "Thenable",
    # Runtime
    "AsyncioScheduler",
    "ThreadPoolScheduler",
    "PromiseConfig",
    "configure",
    "get_config",
    "reset_config",
    # Tracing
    "Evidence",
    "Trace",
]
