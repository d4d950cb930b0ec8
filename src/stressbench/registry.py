"""Explicit benchmark registration.

Benchmarks are not discovered by reflection.  A benchmark file defines a
``register_benchmarks()`` function returning an ordered list of entries,
either :class:`BenchmarkEntry` instances or plain
``(name, ignored, body)`` tuples::

    def register_benchmarks():
        return [
            BenchmarkEntry("write_1kb_file", write_1kb_file),
            ("fsync_large_file", True, fsync_large_file),  # ignored by default
        ]
"""

from __future__ import annotations

import importlib.util
import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Iterable

from stressbench.context import MeasurementContext

log = logging.getLogger("stressbench")

REGISTER_FUNCTION = "register_benchmarks"

BenchBody = Callable[[MeasurementContext], Any]


class RegistrationError(Exception):
    """A benchmark file or entry could not be turned into benchmarks."""


@dataclass(frozen=True)
class BenchmarkEntry:
    """A named benchmark body."""

    name: str
    body: BenchBody
    ignored: bool = False  # Only run with include_ignored


def as_entry(item: Any) -> BenchmarkEntry:
    """Normalize a registration item into a BenchmarkEntry.

    Raises:
        RegistrationError: If *item* is neither an entry nor a
            ``(name, ignored, body)`` tuple.
    """
    if isinstance(item, BenchmarkEntry):
        entry = item
    elif isinstance(item, tuple) and len(item) == 3:
        name, ignored, body = item
        entry = BenchmarkEntry(name=name, body=body, ignored=bool(ignored))
    else:
        raise RegistrationError(
            f"Invalid benchmark registration {item!r}: expected BenchmarkEntry "
            f"or (name, ignored, body) tuple"
        )

    if not isinstance(entry.name, str) or not entry.name:
        raise RegistrationError(f"Benchmark name must be a non-empty string, got {entry.name!r}")
    if not callable(entry.body):
        raise RegistrationError(f"Benchmark '{entry.name}' body is not callable")
    return entry


def normalize_entries(items: Iterable[Any]) -> list[BenchmarkEntry]:
    """Normalize registration items, preserving order."""
    return [as_entry(item) for item in items]


def load_benchmark_file(path: Path) -> list[BenchmarkEntry]:
    """Import a benchmark file and collect its registered benchmarks.

    Raises:
        FileNotFoundError: If *path* does not exist.
        RegistrationError: If the module cannot be imported or has no
            usable ``register_benchmarks()``.
    """
    if not path.exists():
        raise FileNotFoundError(f"Benchmark file not found: {path}")

    module_name = f"stressbench_benches_{path.stem}"
    spec = importlib.util.spec_from_file_location(module_name, path)
    if spec is None or spec.loader is None:
        raise RegistrationError(f"Cannot import benchmark file {path}")

    module = importlib.util.module_from_spec(spec)
    sys.modules[module_name] = module
    try:
        spec.loader.exec_module(module)
    except Exception as exc:
        sys.modules.pop(module_name, None)
        raise RegistrationError(f"Failed to import {path}: {exc}") from exc

    register = getattr(module, REGISTER_FUNCTION, None)
    if not callable(register):
        raise RegistrationError(f"{path} does not define {REGISTER_FUNCTION}()")

    entries = normalize_entries(register() or [])
    log.debug("Loaded %d benchmarks from %s", len(entries), path)
    return entries
