"""Package-wide configuration for vow."""

from __future__ import annotations

import threading
from collections.abc import Callable
from dataclasses import dataclass, fields, replace
from typing import TYPE_CHECKING, Any

from vow.kernel.ports import SchedulerPort
from vow.kernel.trace import Trace
from vow.runtime.scheduler import AsyncioScheduler

if TYPE_CHECKING:
    from vow.kernel.promise import Promise


@dataclass(frozen=True)
class PromiseConfig:
    """Defaults applied to promises created without explicit arguments.

    Attributes:
        scheduler: Scheduler used when none is passed. None means an
            AsyncioScheduler bound to the running loop.
        trace: Lifecycle trace receiving events, or None to disable.
        on_unhandled_rejection: Hook called instead of logging when a
            rejection is never handled.
        warn_unhandled: Whether unhandled rejections are reported at all.
    """

    scheduler: SchedulerPort | None = None
    trace: Trace | None = None
    on_unhandled_rejection: Callable[[Promise[Any], Any], None] | None = None
    warn_unhandled: bool = True


_config = PromiseConfig()
_config_lock = threading.Lock()


def get_config() -> PromiseConfig:
    return _config


def configure(**changes: Any) -> PromiseConfig:
    """Replace selected configuration fields.

    Args:
        **changes: Field values to update (see PromiseConfig)

    Returns:
        The new active configuration

    Raises:
        TypeError: If a key is not a PromiseConfig field
    """
    global _config
    known = {f.name for f in fields(PromiseConfig)}
    unknown = set(changes) - known
    if unknown:
        raise TypeError(f"Unknown config option(s): {', '.join(sorted(unknown))}")
    with _config_lock:
        _config = replace(_config, **changes)
        return _config


def reset_config() -> PromiseConfig:
    """Restore the default configuration."""
    global _config
    with _config_lock:
        _config = PromiseConfig()
        return _config


def default_scheduler() -> SchedulerPort:
    """Configured scheduler, else one bound to the running event loop."""
    scheduler = _config.scheduler
    if scheduler is not None:
        return scheduler
    return AsyncioScheduler.running()
