"""Combinators - higher-order promise composition primitives."""

from vow.combinators.ops import all_of, all_settled, delay, race, retry, timeout

__all__ = [
    "all_of",
    "race",
    "all_settled",
    "delay",
    "retry",
    "timeout",
]
