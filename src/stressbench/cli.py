"""Command-line interface for stressbench.

Subcommands:
    stressbench run       Run benchmark files and save the suite result
    stressbench list      List the benchmarks a file registers
    stressbench show      Display a saved suite result
    stressbench compare   Compare a suite result against a baseline
    stressbench export    Export a suite result to JSON/CSV/Markdown

Exit codes: 0 success, 1 regressions detected, 2 configuration,
benchmark-file or measurement-contract errors.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import NoReturn

import click

from stressbench import __version__
from stressbench.compare import BaselineError, compare_all, find_regressions, load_baseline
from stressbench.context import MeasureContractError
from stressbench.logging import setup_logging
from stressbench.registry import BenchmarkEntry, RegistrationError, load_benchmark_file

log = logging.getLogger("stressbench")

EXIT_REGRESSION = 1
EXIT_ERROR = 2


def _fail(message: str) -> NoReturn:
    click.echo(f"Error: {message}", err=True)
    raise SystemExit(EXIT_ERROR)


def _load_entries(files: tuple[Path, ...]) -> list[BenchmarkEntry]:
    entries: list[BenchmarkEntry] = []
    for path in files:
        try:
            entries.extend(load_benchmark_file(path))
        except (FileNotFoundError, RegistrationError) as exc:
            _fail(str(exc))
    return entries


@click.group()
@click.version_option(version=__version__)
def main() -> None:
    """stressbench: single-shot benchmarks for expensive operations."""


# ---------------------------------------------------------------------------
# run
# ---------------------------------------------------------------------------


@main.command()
@click.argument("files", nargs=-1, required=True, type=click.Path(path_type=Path))
@click.option(
    "--profile",
    "profile_path",
    type=click.Path(exists=True, path_type=Path),
    help="YAML profile with suite settings.",
)
@click.option("--suite", type=str, default=None, help="Suite name (default: file stem).")
@click.option(
    "--workload",
    type=str,
    default=None,
    envvar="BENCH_WORKLOAD",
    help="Glob pattern on benchmark names, e.g. 'write*'.",
)
@click.option(
    "--filter",
    "name_filter",
    type=str,
    default=None,
    envvar="BENCH_FILTER",
    help="Substring filter on benchmark names (--workload wins).",
)
@click.option(
    "--runs",
    type=int,
    default=None,
    envvar="BENCH_RUNS",
    help="Measured runs per benchmark; the median is reported (default: 1).",
)
@click.option(
    "--warmup",
    type=int,
    default=None,
    envvar="BENCH_WARMUP",
    help="Discarded warmup runs per benchmark (default: 0).",
)
@click.option("--include-ignored", is_flag=True, default=False, help="Run ignored benchmarks.")
@click.option(
    "--baseline",
    type=click.Path(path_type=Path),
    default=None,
    help="Suite result JSON to check for regressions.",
)
@click.option(
    "--threshold",
    type=float,
    default=None,
    help="Allowed slowdown before a regression, as a fraction (default: 0.05).",
)
@click.option(
    "--output-dir",
    type=click.Path(path_type=Path),
    default=None,
    envvar="BENCH_OUTPUT_DIR",
    help="Directory for the JSON result (default: target/stress).",
)
@click.option("--no-save", is_flag=True, default=False, help="Do not write the JSON result.")
@click.option(
    "--git-sha",
    type=str,
    default=None,
    envvar="BENCH_GIT_SHA",
    help="Commit to record (default: git rev-parse HEAD).",
)
@click.option("--show-runs", is_flag=True, default=False, help="Print every measured run.")
@click.option("-v", "--verbose", is_flag=True, help="Show per-run debug output.")
@click.option("-q", "--quiet", is_flag=True, help="Only show warnings and errors.")
@click.option("--log-file", type=click.Path(path_type=Path), default=None)
def run(  # noqa: PLR0913
    files: tuple[Path, ...],
    profile_path: Path | None,
    suite: str | None,
    workload: str | None,
    name_filter: str | None,
    runs: int | None,
    warmup: int | None,
    include_ignored: bool,
    baseline: Path | None,
    threshold: float | None,
    output_dir: Path | None,
    no_save: bool,
    git_sha: str | None,
    show_runs: bool,
    verbose: bool,
    quiet: bool,
    log_file: Path | None,
) -> None:
    """Run the benchmarks registered by FILES.

    Each file defines register_benchmarks() returning its benchmarks.

    \b
    Examples:
        stressbench run benches/storage.py --runs 5 --warmup 1
        stressbench run benches/storage.py --workload 'write*'
        stressbench run benches/storage.py --baseline main.json
    """
    from stressbench.config import config_from_profile, load_profile
    from stressbench.report import ConsoleReporter, GitHubActionsReporter, JsonReporter, Reporter
    from stressbench.runner import BenchRunner, select_entries
    from stressbench.system import detect_git_sha

    setup_logging(verbose=verbose, quiet=quiet, log_file=log_file)

    profile_data: dict[str, object] = {}
    if profile_path:
        try:
            profile_data = load_profile(profile_path)
        except ValueError as exc:
            _fail(str(exc))

    if suite is None and "suite" not in profile_data:
        suite = files[0].stem if len(files) == 1 else "stress"

    cli_overrides: dict[str, object] = {
        "suite": suite,
        "runs": runs,
        "warmup": warmup,
        "pattern": workload,
        "filter": name_filter,
        "include_ignored": include_ignored,
        "baseline": baseline,
        "threshold": threshold,
        "output_dir": output_dir,
        "git_sha": git_sha,
        "show_all_runs": show_runs,
        "save": not no_save,
    }
    try:
        config = config_from_profile(profile_data, cli_overrides=cli_overrides)
    except ValueError as exc:
        _fail(str(exc))

    entries = _load_entries(files)
    if not entries:
        click.echo("No benchmarks registered. Define register_benchmarks() in your file.", err=True)
        return
    run_config = config.run_config
    if not select_entries(entries, run_config):
        click.echo("No benchmarks matched the workload pattern.", err=True)
        return

    reporters: list[Reporter] = [ConsoleReporter(show_all_runs=config.show_all_runs)]
    json_reporter: JsonReporter | None = None
    if config.save:
        json_reporter = JsonReporter(config.output_dir)
        reporters.append(json_reporter)
    reporters.append(GitHubActionsReporter())

    try:
        runner = BenchRunner(
            config.suite,
            run_config,
            reporters=reporters,
            git_sha=config.git_sha or detect_git_sha(),
            metadata=config.metadata,
        )
    except ValueError as exc:
        _fail(str(exc))

    try:
        runner.run_all(entries)
    except MeasureContractError as exc:
        _fail(str(exc))
    except KeyboardInterrupt:
        click.echo("\nBenchmark interrupted.", err=True)
        raise SystemExit(130)  # noqa: B904
    except Exception as exc:
        _fail(f"Benchmark '{runner.failed}' failed: {type(exc).__name__}: {exc}")

    if config.baseline is not None:
        results, regressions = runner.finish_with_baseline(config.baseline, config.threshold)
    else:
        results = runner.finish()
        regressions = []

    if json_reporter is not None and json_reporter.written is not None:
        click.echo(f"Results saved to: {json_reporter.written}")

    if regressions:
        raise SystemExit(EXIT_REGRESSION)
    click.echo(f"{len(results)} benchmark(s) completed")


# ---------------------------------------------------------------------------
# list
# ---------------------------------------------------------------------------


@main.command("list")
@click.argument("files", nargs=-1, required=True, type=click.Path(path_type=Path))
@click.option("--include-ignored", is_flag=True, default=False, help="Also list ignored ones.")
def list_cmd(files: tuple[Path, ...], include_ignored: bool) -> None:
    """List the benchmarks registered by FILES, in run order."""
    entries = _load_entries(files)
    for entry in entries:
        if entry.ignored and not include_ignored:
            continue
        marker = "  (ignored)" if entry.ignored else ""
        click.echo(f"{entry.name}{marker}")


# ---------------------------------------------------------------------------
# show
# ---------------------------------------------------------------------------


@main.command("show")
@click.argument("result_file", type=click.Path(exists=True, path_type=Path))
@click.option("--show-runs", is_flag=True, default=False, help="Print every measured run.")
def show(result_file: Path, show_runs: bool) -> None:
    """Display a saved suite result."""
    from stressbench.display import format_suite_show
    from stressbench.results import load_suite

    try:
        suite = load_suite(result_file)
    except ValueError as exc:
        _fail(str(exc))
    click.echo(format_suite_show(suite, show_all_runs=show_runs))


# ---------------------------------------------------------------------------
# compare
# ---------------------------------------------------------------------------


@main.command("compare")
@click.argument("baseline_file", type=click.Path(path_type=Path))
@click.argument("current_file", type=click.Path(exists=True, path_type=Path))
@click.option(
    "--threshold",
    type=float,
    default=0.05,
    show_default=True,
    help="Allowed slowdown before a regression, as a fraction.",
)
def compare(baseline_file: Path, current_file: Path, threshold: float) -> None:
    """Compare CURRENT_FILE against BASELINE_FILE.

    Exits with status 1 if any benchmark regressed by more than the
    threshold.
    """
    from stressbench.display import format_comparison_table, format_regressions
    from stressbench.results import load_suite

    try:
        baseline = load_baseline(baseline_file)
    except BaselineError as exc:
        _fail(str(exc))
    try:
        current = load_suite(current_file)
    except ValueError as exc:
        _fail(str(exc))

    click.echo(format_comparison_table(compare_all(current.results, baseline, threshold)))
    click.echo()
    regressions = find_regressions(current.results, baseline, threshold)
    click.echo(format_regressions(regressions))
    if regressions:
        raise SystemExit(EXIT_REGRESSION)


# ---------------------------------------------------------------------------
# export
# ---------------------------------------------------------------------------


@main.command("export")
@click.argument("result_file", type=click.Path(exists=True, path_type=Path))
@click.option(
    "--format",
    "fmt",
    type=click.Choice(["json", "csv", "markdown"]),
    default="json",
    help="Export format.",
)
@click.option(
    "--baseline",
    type=click.Path(path_type=Path),
    default=None,
    help="Include a baseline comparison (markdown only).",
)
@click.option("--threshold", type=float, default=0.05, show_default=True)
@click.option(
    "--output",
    "-o",
    type=click.Path(path_type=Path),
    default=None,
    help="Output file (default: stdout).",
)
def export(
    result_file: Path,
    fmt: str,
    baseline: Path | None,
    threshold: float,
    output: Path | None,
) -> None:
    """Export a suite result to JSON, CSV or Markdown.

    \b
    Examples:
        stressbench export target/stress/storage.json --format csv > runs.csv
        stressbench export target/stress/storage.json --format markdown \\
            --baseline main.json -o report.md
    """
    from stressbench.export import export_csv, export_json, export_markdown
    from stressbench.results import load_suite

    try:
        suite = load_suite(result_file)
    except ValueError as exc:
        _fail(str(exc))

    if fmt == "json":
        text = export_json(suite)
    elif fmt == "csv":
        text = export_csv(suite)
    else:
        comparisons = None
        if baseline is not None:
            try:
                comparisons = compare_all(suite.results, load_baseline(baseline), threshold)
            except BaselineError as exc:
                log.warning("Skipping baseline comparison: %s", exc)
        text = export_markdown(suite, comparisons)

    if output:
        output.write_text(text)
        click.echo(f"Exported to {output}")
    else:
        click.echo(text, nl=False)


if __name__ == "__main__":
    main()
