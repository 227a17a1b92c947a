"""Application that checks whether reduce tasks run in parallel."""

from __future__ import annotations

import os
import re
import time
from pathlib import Path

from minimr.types import KeyValue

__all__ = ["nparallel", "map_fn", "reduce_fn"]

_KEYS = "abcdefghij"


def _is_alive(pid: int) -> bool:
    try:
        os.kill(pid, 0)
    except (OSError, OverflowError, ValueError):
        return False
    return True


def nparallel(phase: str) -> int:
    """Count the workers, this one included, that are running ``phase`` now."""
    marker = Path(f"mr-worker-{phase}-{os.getpid()}")
    marker.write_text("x")

    pattern = re.compile(rf"mr-worker-{re.escape(phase)}-([+-]?\d+)")
    running = 0
    for name in os.listdir("."):
        match = pattern.match(name)
        if match and _is_alive(int(match.group(1))):
            running += 1

    time.sleep(1)

    try:
        marker.unlink()
    except FileNotFoundError:
        pass

    return running


def map_fn(filename: str, contents: str) -> list[KeyValue]:
    """Emit ten fixed keys so that every reduce bucket gets work."""
    return [KeyValue(key, "1") for key in _KEYS]


def reduce_fn(key: str, values: list[str]) -> str:
    """Return how many reduce tasks were running alongside this one."""
    return str(nparallel("reduce"))