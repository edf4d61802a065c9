"""Runtime module - scheduler adapters and configuration for vow."""

from vow.runtime.config import (
    PromiseConfig,
    configure,
    default_scheduler,
    get_config,
    reset_config,
)
from vow.runtime.scheduler import AsyncioScheduler, ThreadPoolScheduler

__all__ = [
    "AsyncioScheduler",
    "ThreadPoolScheduler",
    "PromiseConfig",
    "configure",
    "default_scheduler",
    "get_config",
    "reset_config",
]
