"""Tests for stressbench.runner — the benchmark execution engine."""

from __future__ import annotations

import json
import tempfile
import unittest
from pathlib import Path
from typing import Any

from bench_test_helpers import MS, make_clock, timed_body

from stressbench.compare import Baseline
from stressbench.config import RunConfig
from stressbench.context import MeasureContractError, MeasurementContext
from stressbench.registry import BenchmarkEntry
from stressbench.report import Reporter
from stressbench.results import BenchResult
from stressbench.runner import BenchRunner, is_selected, select_entries


def _noop(ctx: MeasurementContext) -> None:
    ctx.measure(lambda: None)


def _runner(config: RunConfig | None = None, **kwargs: Any) -> BenchRunner:
    return BenchRunner("storage", config, **kwargs)


class RecordingReporter(Reporter):
    """Reporter that remembers every hook call."""

    def __init__(self) -> None:
        self.calls: list[tuple[Any, ...]] = []

    def suite_start(self, suite, config):  # type: ignore[no-untyped-def]
        self.calls.append(("suite_start", suite))

    def bench_start(self, name):  # type: ignore[no-untyped-def]
        self.calls.append(("bench_start", name))

    def bench_end(self, result):  # type: ignore[no-untyped-def]
        self.calls.append(("bench_end", result.name))

    def bench_failed(self, name, error):  # type: ignore[no-untyped-def]
        self.calls.append(("bench_failed", name, type(error).__name__))

    def suite_end(self, suite, regressions):  # type: ignore[no-untyped-def]
        self.calls.append(("suite_end", len(suite.results), len(regressions)))


class TestMeasuredRuns(unittest.TestCase):
    """Warmup handling and median aggregation."""

    def test_warmup_discarded_and_median_reported(self) -> None:
        clock, fake = make_clock()
        runner = _runner(RunConfig(runs=3, warmup=1), clock=clock)
        result = runner.run("write", timed_body(fake, [10 * MS, 30 * MS, 20 * MS, 40 * MS]))

        assert result is not None
        self.assertEqual(result.name, "storage/write")
        self.assertEqual(result.all_runs_ns, (30 * MS, 20 * MS, 40 * MS))
        self.assertEqual(result.duration_ns, 30 * MS)

    def test_warmup_never_appears_in_runs(self) -> None:
        for warmup in (0, 1, 3):
            with self.subTest(warmup=warmup):
                clock, fake = make_clock()
                durations = [999 * MS] * warmup + [1 * MS, 2 * MS]
                runner = _runner(RunConfig(runs=2, warmup=warmup), clock=clock)
                result = runner.run("op", timed_body(fake, durations))
                assert result is not None
                self.assertEqual(result.all_runs_ns, (1 * MS, 2 * MS))
                self.assertNotIn(999 * MS, result.all_runs_ns)

    def test_invocation_count(self) -> None:
        calls: list[int] = []

        def body(ctx: MeasurementContext) -> None:
            calls.append(1)
            ctx.measure(lambda: None)

        _runner(RunConfig(runs=4, warmup=2)).run("op", body)
        self.assertEqual(len(calls), 6)

    def test_even_runs_report_lower_median(self) -> None:
        clock, fake = make_clock()
        runner = _runner(RunConfig(runs=4), clock=clock)
        result = runner.run("op", timed_body(fake, [40, 10, 30, 20]))
        assert result is not None
        self.assertEqual(result.duration_ns, 20)

    def test_setup_outside_measure_not_timed(self) -> None:
        clock, fake = make_clock()

        def body(ctx: MeasurementContext) -> None:
            fake.advance(500 * MS)  # setup
            ctx.measure(fake.advance, 7 * MS)
            fake.advance(500 * MS)  # teardown

        result = _runner(clock=clock).run("op", body)
        assert result is not None
        self.assertEqual(result.duration_ns, 7 * MS)

    def test_record_duration(self) -> None:
        result = _runner(RunConfig(runs=3)).run("ext", lambda ctx: ctx.record_duration(5 * MS))
        assert result is not None
        self.assertEqual(result.all_runs_ns, (5 * MS,) * 3)


class TestLastRunMetadata(unittest.TestCase):
    """Throughput and tags come from the last measured run."""

    def test_last_run_bytes_and_tags(self) -> None:
        counter = iter(range(1, 100))

        def body(ctx: MeasurementContext) -> None:
            n = next(counter)
            ctx.set_bytes(n * 1024)
            ctx.tag("invocation", str(n))
            if n == 1:
                ctx.tag("first_only", "yes")
            ctx.measure(lambda: None)

        result = _runner(RunConfig(runs=3)).run("op", body)
        assert result is not None
        self.assertEqual(result.bytes, 3 * 1024)
        self.assertEqual(dict(result.tags), {"invocation": "3"})

    def test_warmup_side_effects_discarded(self) -> None:
        counter = iter(range(100))

        def body(ctx: MeasurementContext) -> None:
            if next(counter) == 0:  # warmup invocation
                ctx.set_elements(100)
                ctx.tag("warm", "1")
            ctx.measure(lambda: None)

        result = _runner(RunConfig(runs=1, warmup=1)).run("op", body)
        assert result is not None
        self.assertIsNone(result.elements)
        self.assertEqual(dict(result.tags), {})

    def test_throughput_uses_reported_duration(self) -> None:
        clock, fake = make_clock()
        durations = iter([MS, 2 * MS, 4 * MS])

        def body(ctx: MeasurementContext) -> None:
            ctx.set_bytes(1_000_000)
            ctx.measure(fake.advance, next(durations))

        result = _runner(RunConfig(runs=3), clock=clock).run("op", body)
        assert result is not None
        self.assertEqual(result.duration_ns, 2 * MS)
        self.assertEqual(result.bytes_per_sec, 1_000_000 / 0.002)


class TestContractViolations(unittest.TestCase):
    """A body must record exactly one timed region per invocation."""

    def test_measure_twice(self) -> None:
        def body(ctx: MeasurementContext) -> None:
            ctx.measure(lambda: None)
            ctx.measure(lambda: None)

        runner = _runner()
        with self.assertRaises(MeasureContractError) as cm:
            runner.run("double", body)
        self.assertEqual(cm.exception.name, "double")
        self.assertEqual(runner.results, [])

    def test_measure_never(self) -> None:
        with self.assertRaises(MeasureContractError) as cm:
            _runner().run("forgot", lambda ctx: None)
        self.assertIn("forgot", str(cm.exception))
        self.assertEqual(cm.exception.calls, 0)

    def test_violation_during_warmup(self) -> None:
        counter = iter(range(100))

        def body(ctx: MeasurementContext) -> None:
            if next(counter) > 0:
                ctx.measure(lambda: None)

        with self.assertRaises(MeasureContractError):
            _runner(RunConfig(runs=2, warmup=1)).run("warm", body)

    def test_violation_reported_as_failure(self) -> None:
        reporter = RecordingReporter()
        runner = _runner(reporters=[reporter])
        with self.assertRaises(MeasureContractError):
            runner.run("forgot", lambda ctx: None)
        self.assertIn(("bench_failed", "forgot", "MeasureContractError"), reporter.calls)

    def test_body_exception_propagates(self) -> None:
        def body(ctx: MeasurementContext) -> None:
            raise OSError("disk full")

        with self.assertRaises(OSError):
            _runner().run("io", body)


class TestConfigValidation(unittest.TestCase):
    """Invalid configuration is rejected before anything runs."""

    def test_zero_runs(self) -> None:
        with self.assertRaises(ValueError):
            _runner(RunConfig(runs=0))

    def test_negative_warmup(self) -> None:
        with self.assertRaises(ValueError):
            _runner(RunConfig(warmup=-2))


class TestSelection(unittest.TestCase):
    """Filtering and ignored benchmarks."""

    def _run_names(self, config: RunConfig, names: list[str]) -> list[str]:
        runner = _runner(config)
        for name in names:
            runner.run(name, _noop)
        return [r.short_name for r in runner.finish()]

    def test_substring_filter(self) -> None:
        names = ["write_file", "write_large_file", "rewrite", "read_file"]
        self.assertEqual(
            self._run_names(RunConfig(filter="write"), names),
            ["write_file", "write_large_file", "rewrite"],
        )

    def test_workload_pattern(self) -> None:
        names = ["write_file", "write_large_file", "rewrite", "read_file"]
        self.assertEqual(
            self._run_names(RunConfig(pattern="write*"), names),
            ["write_file", "write_large_file"],
        )

    def test_pattern_wins_over_filter(self) -> None:
        names = ["write_file", "rewrite"]
        self.assertEqual(
            self._run_names(RunConfig(pattern="write*", filter="rewrite"), names),
            ["write_file"],
        )

    def test_filtered_benchmark_never_invoked(self) -> None:
        calls: list[str] = []
        runner = _runner(RunConfig(filter="nomatch"))
        self.assertIsNone(runner.run("op", lambda ctx: calls.append("x")))
        self.assertEqual(calls, [])

    def test_ignored_skipped_by_default(self) -> None:
        runner = _runner()
        self.assertIsNone(runner.run("slow", _noop, ignored=True))
        self.assertEqual(runner.results, [])

    def test_ignored_runs_when_included(self) -> None:
        runner = _runner(RunConfig(include_ignored=True))
        self.assertIsNotNone(runner.run("slow", _noop, ignored=True))

    def test_is_selected(self) -> None:
        self.assertTrue(is_selected("write", RunConfig()))
        self.assertFalse(is_selected("write", RunConfig(), ignored=True))
        self.assertTrue(is_selected("write", RunConfig(include_ignored=True), ignored=True))

    def test_select_entries(self) -> None:
        entries = [
            BenchmarkEntry("write_file", _noop),
            ("fsync", True, _noop),
            BenchmarkEntry("read_file", _noop),
        ]
        selected = select_entries(entries, RunConfig())
        self.assertEqual([e.name for e in selected], ["write_file", "read_file"])


class TestGroups(unittest.TestCase):
    """Grouping only prefixes names."""

    def test_group_prefix(self) -> None:
        runner = _runner()
        runner.group("io").run("write", _noop)
        self.assertEqual(runner.results[0].name, "storage/io/write")

    def test_nested_groups(self) -> None:
        runner = _runner()
        runner.group("io").group("fsync").run("large", _noop)
        self.assertEqual(runner.results[0].name, "storage/io/fsync/large")

    def test_group_callback(self) -> None:
        runner = _runner()
        group = runner.group("db", lambda g: g.run("insert", _noop))
        self.assertEqual(group.prefix, "db")
        self.assertEqual([r.name for r in runner.results], ["storage/db/insert"])

    def test_filter_applies_to_group_prefixed_name(self) -> None:
        runner = _runner(RunConfig(pattern="io/*"))
        runner.group("io").run("write", _noop)
        runner.group("db").run("write", _noop)
        runner.run("io_write", _noop)
        self.assertEqual([r.name for r in runner.results], ["storage/io/write"])


class TestRunAll(unittest.TestCase):
    """Registration-order execution."""

    def test_runs_in_registration_order(self) -> None:
        order: list[str] = []

        def make(name: str):  # type: ignore[no-untyped-def]
            def body(ctx: MeasurementContext) -> None:
                order.append(name)
                ctx.measure(lambda: None)

            return body

        runner = _runner()
        produced = runner.run_all(
            [
                BenchmarkEntry("c", make("c")),
                ("a", False, make("a")),
                ("skip", True, make("skip")),
                BenchmarkEntry("b", make("b")),
            ]
        )
        self.assertEqual(order, ["c", "a", "b"])
        self.assertEqual([r.short_name for r in produced], ["c", "a", "b"])


class TestDuplicates(unittest.TestCase):
    """Duplicate names replace the earlier result in place."""

    def test_duplicate_replaced_with_warning(self) -> None:
        runner = _runner()
        runner.run("a", lambda ctx: ctx.record_duration(1))
        runner.run("b", lambda ctx: ctx.record_duration(2))
        with self.assertLogs("stressbench", level="WARNING") as logs:
            runner.run("a", lambda ctx: ctx.record_duration(3))
        self.assertTrue(any("Duplicate" in line for line in logs.output))
        results = runner.finish()
        self.assertEqual([(r.short_name, r.duration_ns) for r in results], [("a", 3), ("b", 2)])


class TestFinish(unittest.TestCase):
    """Suite completion."""

    def test_finish_returns_results_and_builds_suite(self) -> None:
        clock, fake = make_clock()
        runner = _runner(
            RunConfig(runs=2, warmup=1),
            clock=clock,
            git_sha="deadbeef",
            metadata={"disk": "nvme"},
        )
        runner.set_metadata("fs", "ext4")
        runner.run("op", timed_body(fake, [MS, 2 * MS, 3 * MS]))
        results = runner.finish()

        self.assertEqual(len(results), 1)
        suite = runner.suite_result
        assert suite is not None
        self.assertEqual(suite.suite, "storage")
        self.assertEqual(suite.runs, 2)
        self.assertEqual(suite.warmup_runs, 1)
        self.assertEqual(suite.git_sha, "deadbeef")
        self.assertEqual(suite.metadata, {"disk": "nvme", "fs": "ext4"})
        self.assertEqual(suite.total_duration_ns, 6 * MS)
        self.assertTrue(suite.started_at.isdigit())

    def test_missing_git_sha_is_empty_string(self) -> None:
        runner = _runner()
        runner.finish()
        assert runner.suite_result is not None
        self.assertEqual(runner.suite_result.git_sha, "")

    def test_finish_consumes_runner(self) -> None:
        runner = _runner()
        runner.finish()
        with self.assertRaises(RuntimeError):
            runner.run("late", _noop)
        with self.assertRaises(RuntimeError):
            runner.finish()
        with self.assertRaises(RuntimeError):
            runner.finish_with_baseline(Baseline())

    def test_empty_suite(self) -> None:
        self.assertEqual(_runner().finish(), [])

    def test_failing_reporter_keeps_results(self) -> None:
        class ClosedStreamReporter(Reporter):
            def suite_end(self, suite, regressions):  # type: ignore[no-untyped-def]
                raise ValueError("I/O operation on closed file.")

        recorder = RecordingReporter()
        runner = _runner(reporters=[ClosedStreamReporter(), recorder])
        runner.run("op", _noop)
        with self.assertLogs("stressbench", level="WARNING") as logs:
            results = runner.finish()
        self.assertEqual([r.name for r in results], ["storage/op"])
        self.assertEqual(recorder.calls[-1], ("suite_end", 1, 0))
        self.assertTrue(any("Reporter ClosedStreamReporter failed" in line for line in logs.output))

    def test_failure_records_benchmark_name(self) -> None:
        def body(ctx: MeasurementContext) -> None:
            raise OSError("disk full")

        runner = _runner()
        runner.run("ok", _noop)
        self.assertIsNone(runner.failed)
        with self.assertRaises(OSError):
            runner.run("io/write", body)
        self.assertEqual(runner.failed, "io/write")

    def test_reporter_lifecycle(self) -> None:
        reporter = RecordingReporter()
        runner = _runner(reporters=[reporter])
        runner.run("a", _noop)
        runner.run("skipped", _noop, ignored=True)
        runner.run("b", _noop)
        runner.finish()
        self.assertEqual(
            reporter.calls,
            [
                ("suite_start", "storage"),
                ("bench_start", "a"),
                ("bench_end", "storage/a"),
                ("bench_start", "b"),
                ("bench_end", "storage/b"),
                ("suite_end", 2, 0),
            ],
        )


class TestFinishWithBaseline(unittest.TestCase):
    """Baseline comparison at suite end."""

    def _runner_with(self, durations: dict[str, int]) -> BenchRunner:
        runner = _runner()
        for name, ns in durations.items():
            runner.run(name, lambda ctx, ns=ns: ctx.record_duration(ns))
        return runner

    def test_regression_detected(self) -> None:
        runner = self._runner_with({"op": 106 * MS, "fast": 104 * MS})
        baseline = Baseline({"storage/op": 100 * MS, "storage/fast": 100 * MS})
        results, regressions = runner.finish_with_baseline(baseline, 0.05)
        self.assertEqual(len(results), 2)
        self.assertEqual([r.name for r in regressions], ["storage/op"])
        self.assertAlmostEqual(regressions[0].ratio, 1.06)

    def test_threshold_boundary(self) -> None:
        runner = self._runner_with({"op": 150})
        _, regressions = runner.finish_with_baseline(Baseline({"storage/op": 100}), 0.5)
        self.assertEqual(regressions, [])

    def test_missing_baseline_file_is_not_an_error(self) -> None:
        runner = self._runner_with({"op": 1})
        with self.assertLogs("stressbench", level="WARNING") as logs:
            results, regressions = runner.finish_with_baseline("/nonexistent/baseline.json")
        self.assertEqual(len(results), 1)
        self.assertEqual(regressions, [])
        self.assertTrue(any("Skipping regression check" in line for line in logs.output))

    def test_baseline_file(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "main.json"
            path.write_text(
                json.dumps({"results": [{"name": "storage/op", "duration_ns": 10}]})
            )
            runner = self._runner_with({"op": 20, "new": 1})
            _, regressions = runner.finish_with_baseline(path)
        self.assertEqual([r.name for r in regressions], ["storage/op"])

    def test_regressions_passed_to_reporters(self) -> None:
        reporter = RecordingReporter()
        runner = _runner(reporters=[reporter])
        runner.run("op", lambda ctx: ctx.record_duration(300))
        runner.finish_with_baseline(Baseline({"storage/op": 100}))
        self.assertEqual(reporter.calls[-1], ("suite_end", 1, 1))

    def test_results_type(self) -> None:
        runner = self._runner_with({"op": 1})
        results, _ = runner.finish_with_baseline(Baseline({"storage/other": 1}))
        self.assertIsInstance(results[0], BenchResult)


if __name__ == "__main__":
    unittest.main()
