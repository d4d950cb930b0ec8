"""Benchmark result data structures and serialization.

Hierarchy::

    SuiteResult (one runner, one file)
      → results: list[BenchResult]
        → all_runs_ns: one duration per measured run

File produced::

    <output_dir>/<suite>.json   — SuiteResult, pretty-printed

All durations are integer nanoseconds.  Serialization is deterministic:
rendering the same results twice yields identical text.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping, Sequence

from stressbench.clock import ns_to_seconds
from stressbench.stats import RunSummary, median_ns, rate_per_second, summarize

log = logging.getLogger("stressbench")


# ---------------------------------------------------------------------------
# Benchmark-level result
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class BenchResult:
    """Outcome of one benchmark: the median of its measured runs."""

    name: str  # "suite/benchmark"
    duration_ns: int
    all_runs_ns: tuple[int, ...] = ()
    bytes: int | None = None
    elements: int | None = None
    tags: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        # Read-only view over a private copy.
        object.__setattr__(self, "tags", MappingProxyType(dict(self.tags)))

    @classmethod
    def from_runs(
        cls,
        name: str,
        runs_ns: Sequence[int],
        *,
        bytes: int | None = None,
        elements: int | None = None,
        tags: Mapping[str, str] | None = None,
    ) -> BenchResult:
        """Aggregate measured run durations into a result.

        *runs_ns* keeps execution order; the reported duration is the
        lower median.
        """
        return cls(
            name=name,
            duration_ns=median_ns(runs_ns),
            all_runs_ns=tuple(runs_ns),
            bytes=bytes,
            elements=elements,
            tags=dict(tags or {}),
        )

    @property
    def duration_s(self) -> float:
        return ns_to_seconds(self.duration_ns)

    @property
    def bytes_per_sec(self) -> float | None:
        """Bytes processed per second at the reported duration."""
        return rate_per_second(self.bytes, self.duration_ns)

    @property
    def elements_per_sec(self) -> float | None:
        """Elements processed per second at the reported duration."""
        return rate_per_second(self.elements, self.duration_ns)

    @property
    def min_ns(self) -> int:
        return min(self.all_runs_ns, default=self.duration_ns)

    @property
    def max_ns(self) -> int:
        return max(self.all_runs_ns, default=self.duration_ns)

    @property
    def summary(self) -> RunSummary:
        """Spread of the measured runs."""
        return summarize(self.all_runs_ns or (self.duration_ns,))

    @property
    def short_name(self) -> str:
        """Name without the leading suite component."""
        return self.name.split("/", 1)[-1]

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dict."""
        return {
            "name": self.name,
            "duration_ns": self.duration_ns,
            "all_runs_ns": list(self.all_runs_ns),
            "bytes": self.bytes,
            "elements": self.elements,
            "tags": dict(self.tags),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BenchResult:
        """Deserialize from a dict, ignoring unknown fields.

        Raises:
            KeyError: If ``name`` or ``duration_ns`` is missing.
        """
        return cls(
            name=str(data["name"]),
            duration_ns=int(data["duration_ns"]),
            all_runs_ns=tuple(int(d) for d in data.get("all_runs_ns") or ()),
            bytes=data.get("bytes"),
            elements=data.get("elements"),
            tags={str(k): str(v) for k, v in (data.get("tags") or {}).items()},
        )


# ---------------------------------------------------------------------------
# Suite-level result
# ---------------------------------------------------------------------------


@dataclass
class SuiteResult:
    """All results of one runner plus run metadata."""

    suite: str
    results: list[BenchResult] = field(default_factory=list)
    total_duration_ns: int = 0
    started_at: str = ""  # epoch millis as a decimal string
    runs: int = 1
    warmup_runs: int = 0
    git_sha: str = ""
    metadata: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dict."""
        return {
            "suite": self.suite,
            "results": [r.to_dict() for r in self.results],
            "total_duration_ns": self.total_duration_ns,
            "started_at": self.started_at,
            "runs": self.runs,
            "warmup_runs": self.warmup_runs,
            "git_sha": self.git_sha,
            "metadata": dict(self.metadata),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SuiteResult:
        """Deserialize from a dict."""
        return cls(
            suite=str(data.get("suite", "")),
            results=[BenchResult.from_dict(r) for r in data.get("results", [])],
            total_duration_ns=int(data.get("total_duration_ns", 0)),
            started_at=str(data.get("started_at", "")),
            runs=int(data.get("runs", 1)),
            warmup_runs=int(data.get("warmup_runs", 0)),
            git_sha=str(data.get("git_sha") or ""),
            metadata={str(k): str(v) for k, v in (data.get("metadata") or {}).items()},
        )

    def to_json(self) -> str:
        """Pretty-printed JSON document, newline terminated."""
        return json.dumps(self.to_dict(), indent=2) + "\n"

    @classmethod
    def from_json(cls, text: str) -> SuiteResult:
        return cls.from_dict(json.loads(text))


# ---------------------------------------------------------------------------
# I/O functions
# ---------------------------------------------------------------------------


def suite_filename(suite: str) -> str:
    """File name for a suite's results (``/`` is not allowed in names)."""
    return f"{suite.replace('/', '_')}.json"


def save_suite(output_dir: Path, suite: SuiteResult) -> Path:
    """Write ``output_dir/<suite>.json`` and return its path.

    Raises:
        OSError: If the directory or file cannot be written.
    """
    output_dir.mkdir(parents=True, exist_ok=True)
    path = output_dir / suite_filename(suite.suite)
    path.write_text(suite.to_json())
    log.info("Results written to: %s", path)
    return path


def load_suite(path: Path) -> SuiteResult:
    """Load a suite result file.

    Raises:
        FileNotFoundError: If *path* does not exist.
        ValueError: If the file is not a valid suite document.
    """
    if not path.exists():
        raise FileNotFoundError(f"No result file at {path}")
    try:
        data = json.loads(path.read_text())
    except json.JSONDecodeError as exc:
        raise ValueError(f"{path} is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise ValueError(f"{path} must contain a JSON object, got {type(data).__name__}")
    try:
        return SuiteResult.from_dict(data)
    except (KeyError, TypeError, ValueError) as exc:
        raise ValueError(f"{path} is not a valid result file: {exc!r}") from exc
