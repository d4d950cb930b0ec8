"""Single-shot benchmark runner for expensive, system-level operations.

Unlike statistical micro-benchmark tools, stressbench times exactly one
execution of an operation per run (disk I/O, network calls, transactions,
compaction) and reports the median across a handful of measured runs.
"""

from __future__ import annotations

__version__ = "0.3.0"

from stressbench.compare import Baseline, BaselineError, Regression, load_baseline
from stressbench.config import RunConfig
from stressbench.context import MeasureContractError, MeasurementContext
from stressbench.registry import BenchmarkEntry
from stressbench.results import BenchResult, SuiteResult
from stressbench.runner import BenchGroup, BenchRunner

__all__ = [
    "Baseline",
    "BaselineError",
    "BenchGroup",
    "BenchResult",
    "BenchRunner",
    "BenchmarkEntry",
    "MeasureContractError",
    "MeasurementContext",
    "Regression",
    "RunConfig",
    "SuiteResult",
    "__version__",
    "load_baseline",
]
