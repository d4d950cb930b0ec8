"""Benchmark execution engine.

Orchestrates, per benchmark:
1. Name filtering and ignored-benchmark selection
2. Warmup invocations (executed, then discarded)
3. Measured invocations with single-shot timing capture
4. Median aggregation into a BenchResult
5. Reporter notification

and, per suite:
6. Optional baseline comparison
7. Handing the finished SuiteResult and regressions to reporters

Execution is strictly sequential on the calling thread, in registration
order.  Nothing is cancelled or timed out: once an invocation starts it
runs to completion.

Usage::

    runner = BenchRunner("storage", RunConfig(runs=5, warmup=1))
    runner.run("write_1kb_file", write_1kb_file)
    with_io = runner.group("io")
    with_io.run("fsync", fsync_bench)
    results = runner.finish()
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable, Iterable

from stressbench.clock import Clock
from stressbench.compare import (
    Baseline,
    BaselineError,
    Regression,
    find_regressions,
    load_baseline,
)
from stressbench.config import DEFAULT_THRESHOLD, RunConfig, check_config
from stressbench.context import MeasurementContext, MeasurementRecord
from stressbench.matching import name_matches
from stressbench.registry import BenchBody, BenchmarkEntry, normalize_entries
from stressbench.results import BenchResult, SuiteResult
from stressbench.system import epoch_millis

if TYPE_CHECKING:
    from stressbench.report import Reporter

log = logging.getLogger("stressbench")


def is_selected(name: str, config: RunConfig, *, ignored: bool = False) -> bool:
    """Whether a benchmark named *name* runs under *config*."""
    if ignored and not config.include_ignored:
        return False
    return name_matches(name, pattern=config.pattern, substring=config.filter)


def select_entries(entries: Iterable[Any], config: RunConfig) -> list[BenchmarkEntry]:
    """Registration entries that would run under *config*, in order."""
    return [
        e for e in normalize_entries(entries) if is_selected(e.name, config, ignored=e.ignored)
    ]


# ---------------------------------------------------------------------------
# BenchRunner
# ---------------------------------------------------------------------------


class BenchRunner:
    """Runs single-shot benchmarks and collects their results.

    The configuration is validated up front: an invalid ``RunConfig``
    raises ``ValueError`` before any benchmark executes.
    """

    def __init__(
        self,
        suite: str,
        config: RunConfig | None = None,
        *,
        reporters: Iterable[Reporter] | None = None,
        clock: Clock | None = None,
        git_sha: str | None = None,
        metadata: dict[str, str] | None = None,
    ) -> None:
        self.suite = suite
        self.config = config or RunConfig()
        check_config(self.config)

        self.reporters: list[Reporter] = list(reporters or [])
        self.git_sha = git_sha
        self.metadata: dict[str, str] = dict(metadata or {})
        self.suite_result: SuiteResult | None = None
        self.failed: str | None = None  # Name of the benchmark that raised, if any

        self._clock = clock or Clock()
        self._results: list[BenchResult] = []
        self._index: dict[str, int] = {}
        self._finished = False
        self._started_at = epoch_millis()
        self._start_ns = self._clock.now()

        for reporter in self.reporters:
            reporter.suite_start(self.suite, self.config)

    # -- configuration ------------------------------------------------------

    def set_metadata(self, key: str, value: str) -> BenchRunner:
        """Attach a key/value pair to the suite result."""
        self.metadata[str(key)] = str(value)
        return self

    def add_reporter(self, reporter: Reporter) -> BenchRunner:
        self.reporters.append(reporter)
        return self

    @property
    def results(self) -> list[BenchResult]:
        """Results collected so far (a copy)."""
        return list(self._results)

    # -- execution ----------------------------------------------------------

    def should_run(self, name: str, *, ignored: bool = False) -> bool:
        """Whether *name* passes the ignored flag and the active filter."""
        return is_selected(name, self.config, ignored=ignored)

    def run(
        self,
        name: str,
        body: BenchBody,
        *,
        ignored: bool = False,
    ) -> BenchResult | None:
        """Run one benchmark: warmups, measured runs, aggregation.

        Returns None if the benchmark was filtered out or is ignored.

        Raises:
            MeasureContractError: If any invocation does not record
                exactly one timed region.
            RuntimeError: If the runner has already been finished.
        """
        self._check_open()
        if not self.should_run(name, ignored=ignored):
            log.debug("Skipping %s (%s)", name, "ignored" if ignored else "filtered")
            return None

        full_name = f"{self.suite}/{name}"
        for reporter in self.reporters:
            reporter.bench_start(name)

        try:
            result = self._execute(name, full_name, body)
        except Exception as exc:
            self.failed = name
            for reporter in self.reporters:
                reporter.bench_failed(name, exc)
            raise

        self._store(result)
        for reporter in self.reporters:
            reporter.bench_end(result)
        return result

    def _execute(self, name: str, full_name: str, body: BenchBody) -> BenchResult:
        cfg = self.config

        for i in range(cfg.warmup):
            record = self._invoke(name, body)
            log.debug(
                "  %s warmup %d/%d: %d ns (discarded)",
                name,
                i + 1,
                cfg.warmup,
                record.elapsed_ns,
            )

        runs_ns: list[int] = []
        last: MeasurementRecord | None = None
        for i in range(cfg.runs):
            last = self._invoke(name, body)
            assert last.elapsed_ns is not None
            runs_ns.append(last.elapsed_ns)
            log.debug("  %s run %d/%d: %d ns", name, i + 1, cfg.runs, last.elapsed_ns)

        assert last is not None  # runs >= 1 is validated at construction
        # Throughput and tags come from the last measured invocation only.
        return BenchResult.from_runs(
            full_name,
            runs_ns,
            bytes=last.bytes,
            elements=last.elements,
            tags=last.tags,
        )

    def _invoke(self, name: str, body: BenchBody) -> MeasurementRecord:
        """Run *body* once with a fresh context and close the context."""
        ctx = MeasurementContext(self._clock)
        body(ctx)
        return ctx.finish(name)

    def _store(self, result: BenchResult) -> None:
        existing = self._index.get(result.name)
        if existing is not None:
            log.warning(
                "Duplicate benchmark name '%s'; the earlier result is replaced",
                result.name,
            )
            self._results[existing] = result
            return
        self._index[result.name] = len(self._results)
        self._results.append(result)

    def run_all(self, entries: Iterable[Any]) -> list[BenchResult]:
        """Run registration entries in order; returns the results produced.

        Entries are :class:`~stressbench.registry.BenchmarkEntry` objects
        or ``(name, ignored, body)`` tuples.
        """
        produced: list[BenchResult] = []
        for entry in normalize_entries(entries):
            result = self.run(entry.name, entry.body, ignored=entry.ignored)
            if result is not None:
                produced.append(result)
        return produced

    def group(
        self,
        name: str,
        body: Callable[[BenchGroup], Any] | None = None,
    ) -> BenchGroup:
        """Namespace benchmarks under ``name/``.

        Grouping only affects names.  If *body* is given it is called
        with the group.
        """
        group = BenchGroup(self, name)
        if body is not None:
            body(group)
        return group

    # -- completion ---------------------------------------------------------

    def finish(self) -> list[BenchResult]:
        """Finish the suite and return its results.

        The runner cannot be used afterwards.
        """
        suite_result = self._close()
        self._notify_end(suite_result, [])
        return list(suite_result.results)

    def finish_with_baseline(
        self,
        baseline: str | Path | Baseline,
        threshold: float = DEFAULT_THRESHOLD,
    ) -> tuple[list[BenchResult], list[Regression]]:
        """Finish the suite and compare it against *baseline*.

        An unusable baseline is not an error: a warning is logged and
        the regression list is empty.
        """
        self._check_open()
        regressions: list[Regression] = []
        loaded: Baseline | None
        if isinstance(baseline, Baseline):
            loaded = baseline
        else:
            try:
                loaded = load_baseline(baseline)
            except BaselineError as exc:
                log.warning("Skipping regression check: %s", exc)
                loaded = None

        if loaded is not None:
            regressions = find_regressions(self._results, loaded, threshold)

        suite_result = self._close()
        self._notify_end(suite_result, regressions)
        return list(suite_result.results), regressions

    def _close(self) -> SuiteResult:
        self._check_open()
        self._finished = True
        self.suite_result = SuiteResult(
            suite=self.suite,
            results=list(self._results),
            total_duration_ns=self._clock.elapsed(self._start_ns),
            started_at=self._started_at,
            runs=self.config.runs,
            warmup_runs=self.config.warmup,
            git_sha=self.git_sha or "",
            metadata=dict(self.metadata),
        )
        return self.suite_result

    def _notify_end(self, suite_result: SuiteResult, regressions: list[Regression]) -> None:
        # Results survive a failing reporter.
        for reporter in self.reporters:
            try:
                reporter.suite_end(suite_result, regressions)
            except Exception as exc:
                log.warning("Reporter %s failed: %s", type(reporter).__name__, exc)

    def _check_open(self) -> None:
        if self._finished:
            raise RuntimeError(f"Runner for suite '{self.suite}' is already finished")


# ---------------------------------------------------------------------------
# Groups
# ---------------------------------------------------------------------------


class BenchGroup:
    """Name prefix for related benchmarks; execution is unchanged."""

    def __init__(self, runner: BenchRunner, prefix: str) -> None:
        self.runner = runner
        self.prefix = prefix

    def run(
        self,
        name: str,
        body: BenchBody,
        *,
        ignored: bool = False,
    ) -> BenchResult | None:
        return self.runner.run(f"{self.prefix}/{name}", body, ignored=ignored)

    def group(
        self,
        name: str,
        body: Callable[[BenchGroup], Any] | None = None,
    ) -> BenchGroup:
        """Nested group: ``outer/inner/benchmark``."""
        return self.runner.group(f"{self.prefix}/{name}", body)
