"""Monotonic time source used to bracket timed regions.

All durations in stressbench are non-negative integer nanoseconds.
"""

from __future__ import annotations

import time
from typing import Callable

NANOS_PER_SECOND = 1_000_000_000


class Clock:
    """Monotonic clock returning integer nanosecond timestamps.

    The *source* defaults to :func:`time.perf_counter_ns`, the highest
    resolution monotonic counter available.  Tests substitute a fake
    source to make timing deterministic.
    """

    def __init__(self, source: Callable[[], int] | None = None) -> None:
        self._source = source or time.perf_counter_ns

    def now(self) -> int:
        """Current timestamp in nanoseconds (arbitrary epoch)."""
        return self._source()

    def elapsed(self, start: int) -> int:
        """Nanoseconds since *start*, clamped to zero.

        A backwards step in the underlying source should never happen,
        but it must not produce a negative duration either.
        """
        return max(self.now() - start, 0)


def ns_to_seconds(ns: int) -> float:
    """Convert integer nanoseconds to float seconds."""
    return ns / NANOS_PER_SECOND
