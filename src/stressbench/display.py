"""Terminal display formatting for benchmark results.

Produces aligned tables for a finished suite, per-benchmark result
lines for live progress, and baseline comparison summaries.  All
functions return strings; callers decide where to print them.
Output depends only on the input values, so rendering the same
results twice gives identical text.
"""

from __future__ import annotations

import math

from stressbench.clock import NANOS_PER_SECOND
from stressbench.compare import Comparison, Regression
from stressbench.results import BenchResult, SuiteResult

_RULE = "━" * 60


# ---------------------------------------------------------------------------
# Unit formatting
# ---------------------------------------------------------------------------


def format_duration(ns: int) -> str:
    """Format nanoseconds with adaptive units (s, ms, µs, ns)."""
    if ns >= NANOS_PER_SECOND:
        return f"{ns / NANOS_PER_SECOND:.2f}s"
    if ns >= 1_000_000:
        return f"{ns / 1_000_000:.2f}ms"
    if ns >= 1_000:
        return f"{ns / 1_000:.2f}µs"
    return f"{ns}ns"


def format_bytes_rate(bps: float) -> str:
    """Format a bytes/second rate in decimal units."""
    if bps >= 1e9:
        return f"{bps / 1e9:.2f} GB/s"
    if bps >= 1e6:
        return f"{bps / 1e6:.2f} MB/s"
    return f"{bps / 1e3:.2f} KB/s"


def format_ops_rate(eps: float) -> str:
    """Format an elements/second rate."""
    if eps > 1e6:
        return f"{eps / 1e6:.2f}M ops/s"
    if eps > 1e3:
        return f"{eps / 1e3:.2f}K ops/s"
    return f"{eps:.0f} ops/s"


def format_throughput(result: BenchResult) -> str:
    """Throughput of *result*, or an empty string if none was declared.

    When both denominators are set both rates are shown, bytes first.
    """
    rates: list[str] = []
    bps = result.bytes_per_sec
    if bps is not None:
        rates.append(format_bytes_rate(bps))
    eps = result.elements_per_sec
    if eps is not None:
        rates.append(format_ops_rate(eps))
    return ", ".join(rates)


def format_pct(value: float, precision: int = 1) -> str:
    """Format a percentage with sign."""
    if math.isnan(value):
        return "N/A"
    sign = "+" if value >= 0 else ""
    return f"{sign}{value:.{precision}f}%"


def format_ratio_change(ratio: float | None) -> str:
    """``1.06`` → ``+6.0%``; None → ``new``."""
    if ratio is None:
        return "new"
    return format_pct((ratio - 1.0) * 100.0)


# ---------------------------------------------------------------------------
# Live progress lines
# ---------------------------------------------------------------------------


def format_result_line(result: BenchResult) -> str:
    """``12.34ms (81.03 MB/s)`` for one finished benchmark."""
    text = format_duration(result.duration_ns)
    throughput = format_throughput(result)
    if throughput:
        text += f" ({throughput})"
    return text


def format_all_runs(result: BenchResult) -> str:
    """``runs: [1.00ms, 2.00ms]`` in execution order."""
    runs = ", ".join(format_duration(d) for d in result.all_runs_ns)
    return f"runs: [{runs}]"


def format_suite_header(suite: str, runs: int, warmup: int) -> str:
    return "\n".join(
        [
            _RULE,
            f"  Benchmark Suite: {suite}",
            f"  Runs: {runs}, Warmup: {warmup}",
            _RULE,
        ]
    )


def format_suite_footer(suite: SuiteResult) -> str:
    total_s = suite.total_duration_ns / NANOS_PER_SECOND
    return "\n".join(
        [
            _RULE,
            f"  Completed {len(suite.results)} benchmarks in {total_s:.2f}s",
            _RULE,
        ]
    )


# ---------------------------------------------------------------------------
# Suite tables
# ---------------------------------------------------------------------------


def format_suite_table(suite: SuiteResult, *, show_all_runs: bool = False) -> str:
    """Format a finished suite as a table, in result order."""
    if not suite.results:
        return "No benchmark results."

    name_w = max(30, *(len(r.name) for r in suite.results))
    header = (
        f"{'Benchmark':<{name_w}s} {'Median':>10s} {'Min':>10s} "
        f"{'Max':>10s} {'CV':>7s}  Throughput"
    )
    lines = [header, "─" * len(header)]

    for r in suite.results:
        cv = r.summary.cv
        cv_str = f"{cv:.3f}" if cv is not None else "-"
        lines.append(
            f"{r.name:<{name_w}s} {format_duration(r.duration_ns):>10s} "
            f"{format_duration(r.min_ns):>10s} {format_duration(r.max_ns):>10s} "
            f"{cv_str:>7s}  {format_throughput(r)}".rstrip()
        )
        if show_all_runs and len(r.all_runs_ns) > 1:
            lines.append(f"    {format_all_runs(r)}")

    return "\n".join(lines)


def format_suite_show(suite: SuiteResult, *, show_all_runs: bool = False) -> str:
    """Header, provenance and result table for a saved suite."""
    lines = [suite.suite, "─" * len(suite.suite)]
    lines.append(f"Runs: {suite.runs} measured + {suite.warmup_runs} warmup")
    if suite.git_sha:
        lines.append(f"Commit: {suite.git_sha}")
    if suite.started_at:
        lines.append(f"Started: {suite.started_at} (epoch ms)")
    for key, value in suite.metadata.items():
        lines.append(f"{key}: {value}")
    lines.append("")
    lines.append(format_suite_table(suite, show_all_runs=show_all_runs))
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Baseline comparison
# ---------------------------------------------------------------------------


def format_comparison_table(comparisons: list[Comparison]) -> str:
    """Format current-vs-baseline rows."""
    if not comparisons:
        return "No benchmark results."

    name_w = max(30, *(len(c.name) for c in comparisons))
    header = f"{'Benchmark':<{name_w}s} {'Baseline':>10s} {'Current':>10s} {'Change':>9s}"
    lines = [header, "─" * len(header)]
    for c in comparisons:
        base = format_duration(c.baseline_ns) if c.baseline_ns is not None else "-"
        marker = "  REGRESSION" if c.regression else ""
        lines.append(
            f"{c.name:<{name_w}s} {base:>10s} {format_duration(c.current_ns):>10s} "
            f"{format_ratio_change(c.ratio):>9s}{marker}"
        )
    return "\n".join(lines)


def format_regressions(regressions: list[Regression]) -> str:
    """Summary block listing regressions, or a success line."""
    if not regressions:
        return "No regressions detected."
    lines = [f"{len(regressions)} regression(s) detected:"]
    for r in regressions:
        lines.append(
            f"  {r.name} is {r.slowdown_pct:.1f}% slower "
            f"({format_duration(r.baseline_ns)} → {format_duration(r.current_ns)})"
        )
    return "\n".join(lines)
