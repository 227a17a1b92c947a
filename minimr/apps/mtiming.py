"""Application that checks whether map tasks run in parallel."""

from __future__ import annotations

import contextlib
import os
import re
import time
from pathlib import Path

from minimr.types import KeyValue


def _is_alive(pid: int) -> bool:
    try:
        os.kill(pid, 0)
    except (OSError, OverflowError, ValueError):
        return False
    return True


def nparallel(phase: str) -> int:
    """Count live processes currently in ``phase``, including this one.

    Each participant leaves a marker file named after its pid in the working
    directory for one second, and counts the markers whose process is alive.
    """
    marker = Path(f"mr-worker-{phase}-{os.getpid()}")
    marker.write_text("x")

    pattern = re.compile(rf"mr-worker-{re.escape(phase)}-([+-]?\d+)")
    running = 0
    for name in os.listdir("."):
        match = pattern.match(name)
        if match and _is_alive(int(match.group(1))):
            running += 1

    time.sleep(1)
    with contextlib.suppress(OSError):
        marker.unlink()
    return running


def map_fn(filename: str, contents: str) -> list[KeyValue]:
    """Emit the start time and the degree of parallelism seen by this process."""
    started = time.time()
    pid = os.getpid()
    running = nparallel("map")
    return [
        KeyValue(f"times-{pid}", f"{started:.1f}"),
        KeyValue(f"parallel-{pid}", str(running)),
    ]


def reduce_fn(key: str, values: list[str]) -> str:
    """Join the sorted values with spaces."""
    return " ".join(sorted(values))