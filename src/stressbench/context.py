"""Per-invocation measurement context handed to benchmark bodies.

A benchmark body receives a fresh :class:`MeasurementContext` on every
invocation (warmup or measured).  It must mark exactly one timed region,
either with :meth:`MeasurementContext.measure` or with
:meth:`MeasurementContext.record_duration`.  Everything outside that
region is setup or teardown and is never timed::

    def write_1kb_file(ctx):
        data = b"\\0" * 1024
        ctx.set_bytes(len(data))
        ctx.measure(path.write_bytes, data)
        path.unlink()
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, TypeVar

from stressbench.clock import Clock

T = TypeVar("T")


class MeasureContractError(RuntimeError):
    """A benchmark body did not record exactly one timed region."""

    def __init__(self, name: str, calls: int) -> None:
        self.name = name
        self.calls = calls
        if calls == 0:
            detail = "did not call ctx.measure()"
        else:
            detail = f"called ctx.measure() {calls} times"
        super().__init__(
            f"Benchmark '{name}' {detail}. "
            f"Every benchmark must measure exactly one operation."
        )


@dataclass
class MeasurementRecord:
    """Raw data captured during one benchmark invocation."""

    elapsed_ns: int | None = None
    bytes: int | None = None
    elements: int | None = None
    tags: dict[str, str] = field(default_factory=dict)
    measure_calls: int = 0


class MeasurementContext:
    """Timing control for a single benchmark invocation."""

    def __init__(self, clock: Clock | None = None) -> None:
        self._clock = clock or Clock()
        self._record = MeasurementRecord()

    def measure(self, body: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """Time one call of ``body(*args, **kwargs)`` and return its result.

        Must be called exactly once per invocation.  A second call is
        still executed and timed, but the invocation is rejected when
        the runner closes the context.
        """
        self._record.measure_calls += 1
        start = self._clock.now()
        result = body(*args, **kwargs)
        self._record.elapsed_ns = self._clock.elapsed(start)
        return result

    def record_duration(self, ns: int) -> None:
        """Record a region timed by the system under test itself.

        Counts as the invocation's single timed region.
        """
        if ns < 0:
            raise ValueError(f"Duration cannot be negative (got {ns} ns).")
        self._record.measure_calls += 1
        self._record.elapsed_ns = int(ns)

    def set_bytes(self, n: int) -> None:
        """Declare the number of bytes processed (enables bytes/sec)."""
        if n < 0:
            raise ValueError(f"Byte count cannot be negative (got {n}).")
        self._record.bytes = int(n)

    def set_elements(self, n: int) -> None:
        """Declare the number of elements processed (enables ops/sec)."""
        if n < 0:
            raise ValueError(f"Element count cannot be negative (got {n}).")
        self._record.elements = int(n)

    def tag(self, key: str, value: str) -> None:
        """Attach a metadata tag; re-tagging a key replaces its value."""
        self._record.tags[str(key)] = str(value)

    def finish(self, name: str) -> MeasurementRecord:
        """Close the invocation and return its record.

        Raises:
            MeasureContractError: If the timed region was recorded zero
                times or more than once.
        """
        record = self._record
        if record.measure_calls != 1 or record.elapsed_ns is None:
            raise MeasureContractError(name, record.measure_calls)
        return record
