"""Export suite results to JSON, CSV and Markdown.

JSON format: the suite document as saved on disk.

CSV format: one row per benchmark per measured run (long format for
pandas/R), so every single measurement is available.

Markdown format: a summary table suitable for reports, README files
and pull request comments, optionally with a baseline comparison.
"""

from __future__ import annotations

import csv
import io

from stressbench.compare import Comparison
from stressbench.display import format_duration, format_ratio_change, format_throughput
from stressbench.results import SuiteResult


def export_json(suite: SuiteResult) -> str:
    """The suite document, identical to what :func:`save_suite` writes."""
    return suite.to_json()


# ---------------------------------------------------------------------------
# CSV export
# ---------------------------------------------------------------------------


def export_csv(suite: SuiteResult) -> str:
    """Export results as CSV (long format).

    Columns:
        name, run, duration_ns, median_ns, bytes, elements
    """
    output = io.StringIO()
    writer = csv.writer(output, lineterminator="\n")
    writer.writerow(["name", "run", "duration_ns", "median_ns", "bytes", "elements"])

    for r in suite.results:
        runs = r.all_runs_ns or (r.duration_ns,)
        for i, d in enumerate(runs, start=1):
            writer.writerow(
                [
                    r.name,
                    i,
                    d,
                    r.duration_ns,
                    "" if r.bytes is None else r.bytes,
                    "" if r.elements is None else r.elements,
                ]
            )

    return output.getvalue()


# ---------------------------------------------------------------------------
# Markdown export
# ---------------------------------------------------------------------------


def export_markdown(
    suite: SuiteResult,
    comparisons: list[Comparison] | None = None,
) -> str:
    """Export results as a Markdown report."""
    lines: list[str] = [f"# {suite.suite}", ""]
    lines.append(f"Runs: {suite.runs} measured + {suite.warmup_runs} warmup")
    if suite.git_sha:
        lines.append(f"Commit: `{suite.git_sha}`")
    lines.append("")

    by_name = {c.name: c for c in comparisons or []}

    lines.append("## Results")
    lines.append("")
    if by_name:
        lines.append("| Benchmark | Median | Min | Max | Throughput | Baseline | Change |")
        lines.append("|---|---:|---:|---:|---:|---:|---:|")
    else:
        lines.append("| Benchmark | Median | Min | Max | Throughput |")
        lines.append("|---|---:|---:|---:|---:|")

    for r in suite.results:
        row = (
            f"| {r.name} | {format_duration(r.duration_ns)} | {format_duration(r.min_ns)} | "
            f"{format_duration(r.max_ns)} | {format_throughput(r) or '-'} |"
        )
        if by_name:
            c = by_name.get(r.name)
            if c is None or c.baseline_ns is None:
                row += " - | new |"
            else:
                change = format_ratio_change(c.ratio)
                if c.regression:
                    change = f"**{change}**"
                row += f" {format_duration(c.baseline_ns)} | {change} |"
        lines.append(row)

    if by_name:
        regressed = [c for c in by_name.values() if c.regression]
        lines.append("")
        lines.append(f"Regressions: {len(regressed)}")

    return "\n".join(lines) + "\n"
