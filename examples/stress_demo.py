"""Demo benchmarks: ``stressbench run examples/stress_demo.py``."""

from __future__ import annotations

import os
import tempfile
from pathlib import Path

from stressbench import BenchmarkEntry


def write_1kb_file(ctx):
    data = b"\0" * 1024
    ctx.set_bytes(len(data))
    fd, name = tempfile.mkstemp(prefix="stressbench-")
    os.close(fd)
    path = Path(name)
    ctx.measure(path.write_bytes, data)
    path.unlink()


def fsync_1mb_file(ctx):
    data = os.urandom(1024 * 1024)
    ctx.set_bytes(len(data))
    with tempfile.TemporaryFile() as f:
        f.write(data)
        f.flush()
        ctx.measure(os.fsync, f.fileno())


def allocate_large_buffer(ctx):
    size = 10 * 1024 * 1024
    ctx.set_bytes(size)

    def allocate():
        buffer = bytearray(size)
        buffer[0] = buffer[-1] = 1
        return buffer

    ctx.measure(allocate)


def compute_fibonacci(ctx):
    def fib(n):
        return n if n < 2 else fib(n - 1) + fib(n - 2)

    ctx.tag("n", "22")
    ctx.set_elements(1)
    ctx.measure(fib, 22)


def register_benchmarks():
    return [
        BenchmarkEntry("write_1kb_file", write_1kb_file),
        BenchmarkEntry("fsync_1mb_file", fsync_1mb_file, ignored=True),
        BenchmarkEntry("allocate_large_buffer", allocate_large_buffer),
        ("compute_fibonacci", False, compute_fibonacci),
    ]
