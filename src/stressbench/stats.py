"""Aggregation math for measured runs.

Single-shot benchmarks have few, expensive runs, so the reported value is
a plain median over the measured durations.  For an even number of runs
the *lower* middle element is reported rather than the average of the
two middle elements: the result is always a duration that was actually
observed.
"""

from __future__ import annotations

import math
import statistics
from dataclasses import dataclass
from typing import Sequence

from stressbench.clock import NANOS_PER_SECOND


def median_ns(durations: Sequence[int]) -> int:
    """Return the lower median of *durations*.

    Sort ascending; odd count takes the middle element, even count the
    lower-middle one.  No interpolation.

    Raises:
        ValueError: If *durations* is empty.
    """
    if not durations:
        raise ValueError("Cannot aggregate an empty sequence of runs.")
    ordered = sorted(durations)
    return ordered[(len(ordered) - 1) // 2]


def rate_per_second(count: int | None, duration_ns: int) -> float | None:
    """Throughput in units per second for *count* units over *duration_ns*.

    Returns None when there is no denominator to report, or when the
    duration is zero (no finite rate exists).
    """
    if count is None or duration_ns <= 0:
        return None
    return count / (duration_ns / NANOS_PER_SECOND)


# ---------------------------------------------------------------------------
# Run summary
# ---------------------------------------------------------------------------


@dataclass
class RunSummary:
    """Spread of the measured runs, for display only.

    The reported duration of a benchmark is always :func:`median_ns`;
    these values help judge how noisy the measurement was.
    """

    n: int
    median_ns: int
    min_ns: int
    max_ns: int
    mean_ns: float
    stdev_ns: float | None  # None with fewer than 2 runs
    cv: float | None  # coefficient of variation (stdev/mean)

    def to_dict(self) -> dict[str, float | int | None]:
        """Serialize to a dict with rounded values."""
        return {
            "n": self.n,
            "median_ns": self.median_ns,
            "min_ns": self.min_ns,
            "max_ns": self.max_ns,
            "mean_ns": round(self.mean_ns, 1),
            "stdev_ns": round(self.stdev_ns, 1) if self.stdev_ns is not None else None,
            "cv": round(self.cv, 6) if self.cv is not None else None,
        }


def summarize(durations: Sequence[int]) -> RunSummary:
    """Summarize measured run durations.

    Raises:
        ValueError: If *durations* is empty.
    """
    if not durations:
        raise ValueError("Cannot summarize an empty sequence of runs.")

    ordered = sorted(durations)
    mean = statistics.fmean(ordered)

    stdev: float | None = None
    cv: float | None = None
    if len(ordered) >= 2:
        stdev = statistics.stdev(ordered)
        cv = stdev / mean if mean else math.inf

    return RunSummary(
        n=len(ordered),
        median_ns=median_ns(ordered),
        min_ns=ordered[0],
        max_ns=ordered[-1],
        mean_ns=mean,
        stdev_ns=stdev,
        cv=cv,
    )
