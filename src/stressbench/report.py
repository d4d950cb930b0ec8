"""Pluggable reporters notified by the runner.

A reporter receives lifecycle callbacks; every hook is optional.  The
runner calls them in order::

    suite_start → (bench_start → bench_end | bench_failed)* → suite_end

Reporters are result sinks: a reporter that cannot write its output
logs a warning and carries on, so in-memory results are never lost.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import IO, Iterable

import click

from stressbench.compare import Regression
from stressbench.config import RunConfig
from stressbench.display import (
    format_all_runs,
    format_duration,
    format_regressions,
    format_result_line,
    format_suite_footer,
    format_suite_header,
)
from stressbench.results import BenchResult, SuiteResult, save_suite

log = logging.getLogger("stressbench")


class Reporter:
    """Base reporter: all hooks are no-ops."""

    def suite_start(self, suite: str, config: RunConfig) -> None:
        pass

    def bench_start(self, name: str) -> None:
        pass

    def bench_end(self, result: BenchResult) -> None:
        pass

    def bench_failed(self, name: str, error: BaseException) -> None:
        pass

    def suite_end(self, suite: SuiteResult, regressions: list[Regression]) -> None:
        pass


class ConsoleReporter(Reporter):
    """Live progress and summary on stderr (or a given stream)."""

    def __init__(self, stream: IO[str] | None = None, *, show_all_runs: bool = False) -> None:
        self.stream = stream
        self.show_all_runs = show_all_runs

    def _echo(self, text: str = "", *, nl: bool = True) -> None:
        click.echo(text, file=self.stream, err=self.stream is None, nl=nl)

    def suite_start(self, suite: str, config: RunConfig) -> None:
        self._echo(format_suite_header(suite, config.runs, config.warmup))

    def bench_start(self, name: str) -> None:
        self._echo(f"  {name} ... ", nl=False)

    def bench_end(self, result: BenchResult) -> None:
        self._echo(format_result_line(result))
        if self.show_all_runs and len(result.all_runs_ns) > 1:
            self._echo(f"      {format_all_runs(result)}")

    def bench_failed(self, name: str, error: BaseException) -> None:
        self._echo(f"FAILED ({type(error).__name__})")

    def suite_end(self, suite: SuiteResult, regressions: list[Regression]) -> None:
        self._echo(format_suite_footer(suite))
        if regressions:
            self._echo(format_regressions(regressions))


class JsonReporter(Reporter):
    """Writes the finished suite to ``output_dir/<suite>.json``."""

    def __init__(self, output_dir: Path) -> None:
        self.output_dir = Path(output_dir)
        self.written: Path | None = None

    def suite_end(self, suite: SuiteResult, regressions: list[Regression]) -> None:
        try:
            self.written = save_suite(self.output_dir, suite)
        except OSError as exc:
            log.warning("Failed to write JSON results to %s: %s", self.output_dir, exc)


class GitHubActionsReporter(Reporter):
    """Emits workflow annotations when running under GitHub Actions.

    Enabled automatically when ``GITHUB_ACTIONS`` is set, unless
    *enabled* is given explicitly.
    """

    def __init__(self, stream: IO[str] | None = None, *, enabled: bool | None = None) -> None:
        self.stream = stream
        self.enabled = enabled if enabled is not None else bool(os.environ.get("GITHUB_ACTIONS"))

    def suite_end(self, suite: SuiteResult, regressions: list[Regression]) -> None:
        if not self.enabled:
            return
        for r in regressions:
            click.echo(
                f"::warning title=Performance Regression::Benchmark '{r.name}' "
                f"is {r.slowdown_pct:.1f}% slower than baseline",
                file=self.stream,
            )
        click.echo("::group::Benchmark Results", file=self.stream)
        for result in suite.results:
            click.echo(f"  {result.name}: {format_duration(result.duration_ns)}", file=self.stream)
        click.echo("::endgroup::", file=self.stream)


class MultiReporter(Reporter):
    """Fans every hook out to several reporters, in order."""

    def __init__(self, reporters: Iterable[Reporter]) -> None:
        self.reporters = list(reporters)

    def suite_start(self, suite: str, config: RunConfig) -> None:
        for r in self.reporters:
            r.suite_start(suite, config)

    def bench_start(self, name: str) -> None:
        for r in self.reporters:
            r.bench_start(name)

    def bench_end(self, result: BenchResult) -> None:
        for r in self.reporters:
            r.bench_end(result)

    def bench_failed(self, name: str, error: BaseException) -> None:
        for r in self.reporters:
            r.bench_failed(name, error)

    def suite_end(self, suite: SuiteResult, regressions: list[Regression]) -> None:
        for r in self.reporters:
            r.suite_end(suite, regressions)
