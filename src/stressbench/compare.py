"""Baseline regression comparison.

A baseline is a previously saved suite result, reduced to a mapping of
full benchmark name → reported duration.  A current result regresses
when ``current / baseline > 1.0 + threshold``; hitting the threshold
exactly is not a regression.

Missing or unreadable baselines are an expected state (the first run of
a suite has nothing to compare against).  :func:`load_baseline` raises
:class:`BaselineError`, which callers treat as "skip comparison", never
as a failed run.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Mapping

from stressbench.results import BenchResult, SuiteResult

log = logging.getLogger("stressbench")


class BaselineError(Exception):
    """The baseline source is missing, malformed or empty."""


@dataclass(frozen=True)
class Baseline:
    """Reference durations keyed by full benchmark name."""

    durations: Mapping[str, int] = field(default_factory=dict)
    source: str = ""

    def __contains__(self, name: object) -> bool:
        return name in self.durations

    def __len__(self) -> int:
        return len(self.durations)

    def get(self, name: str) -> int | None:
        return self.durations.get(name)


@dataclass(frozen=True)
class Regression:
    """A benchmark slower than its baseline by more than the threshold."""

    name: str
    baseline_ns: int
    current_ns: int
    ratio: float

    @property
    def slowdown_pct(self) -> float:
        """How much slower, in percent (``6.0`` for a ratio of 1.06)."""
        return (self.ratio - 1.0) * 100.0


@dataclass(frozen=True)
class Comparison:
    """One current result set against the baseline, for display.

    ``baseline_ns`` and ``ratio`` are None for a benchmark the baseline
    does not know about (a new benchmark, not a failure).
    """

    name: str
    current_ns: int
    baseline_ns: int | None = None
    ratio: float | None = None
    regression: bool = False

    @property
    def is_new(self) -> bool:
        return self.baseline_ns is None


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


def baseline_from_suite(suite: SuiteResult, *, source: str = "") -> Baseline:
    """Reduce a suite result to a baseline (last duplicate name wins)."""
    return Baseline(
        durations={r.name: r.duration_ns for r in suite.results},
        source=source or suite.suite,
    )


def load_baseline(source: str | Path) -> Baseline:
    """Load a baseline from a saved suite result file.

    Raises:
        BaselineError: If the file is missing, unreadable, not valid
            JSON, not shaped like a suite result, or has no results.
    """
    path = Path(source)
    try:
        text = path.read_text()
    except FileNotFoundError as exc:
        raise BaselineError(f"Baseline not found: {path}") from exc
    except OSError as exc:
        raise BaselineError(f"Cannot read baseline {path}: {exc}") from exc

    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise BaselineError(f"Baseline {path} is not valid JSON: {exc}") from exc

    if not isinstance(data, dict) or not isinstance(data.get("results"), list):
        raise BaselineError(f"Baseline {path} has no 'results' list")

    durations: dict[str, int] = {}
    for i, entry in enumerate(data["results"]):
        if not isinstance(entry, dict):
            raise BaselineError(f"Baseline {path}: result #{i} is not an object")
        name = entry.get("name")
        duration = entry.get("duration_ns")
        if not isinstance(name, str) or not name:
            raise BaselineError(f"Baseline {path}: result #{i} has no name")
        if isinstance(duration, bool) or not isinstance(duration, int) or duration < 0:
            raise BaselineError(
                f"Baseline {path}: result '{name}' has invalid duration_ns {duration!r}"
            )
        durations[name] = duration

    if not durations:
        raise BaselineError(f"Baseline {path} contains no results")

    log.debug("Loaded baseline with %d results from %s", len(durations), path)
    return Baseline(durations=durations, source=str(path))


# ---------------------------------------------------------------------------
# Comparison logic
# ---------------------------------------------------------------------------


def _ratio(current_ns: int, baseline_ns: int) -> float | None:
    if baseline_ns <= 0:
        return None
    return current_ns / baseline_ns


def compare(
    current: BenchResult,
    baseline: Baseline,
    threshold: float,
) -> Regression | None:
    """Return a Regression if *current* is slower than allowed, else None.

    None is also returned when the benchmark is not in the baseline or
    the baseline duration is zero (no meaningful ratio).
    """
    base_ns = baseline.get(current.name)
    if base_ns is None:
        return None
    ratio = _ratio(current.duration_ns, base_ns)
    if ratio is None or not ratio > 1.0 + threshold:
        return None
    return Regression(
        name=current.name,
        baseline_ns=base_ns,
        current_ns=current.duration_ns,
        ratio=ratio,
    )


def find_regressions(
    results: Iterable[BenchResult],
    baseline: Baseline,
    threshold: float,
) -> list[Regression]:
    """All regressions among *results*, in result order."""
    found: list[Regression] = []
    for r in results:
        regression = compare(r, baseline, threshold)
        if regression is not None:
            found.append(regression)
    return found


def compare_all(
    results: Iterable[BenchResult],
    baseline: Baseline,
    threshold: float,
) -> list[Comparison]:
    """One Comparison per current result, in result order.

    Names present only in the baseline (removed or renamed benchmarks)
    are not reported.
    """
    rows: list[Comparison] = []
    for r in results:
        base_ns = baseline.get(r.name)
        if base_ns is None:
            rows.append(Comparison(name=r.name, current_ns=r.duration_ns))
            continue
        rows.append(
            Comparison(
                name=r.name,
                current_ns=r.duration_ns,
                baseline_ns=base_ns,
                ratio=_ratio(r.duration_ns, base_ns),
                regression=compare(r, baseline, threshold) is not None,
            )
        )
    return rows
