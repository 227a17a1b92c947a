"""Application with slow reduce tasks, used to detect workers that exit early."""

from __future__ import annotations

import time

from minimr.types import KeyValue

SLOW_REDUCE_SECONDS = 3.0


def map_fn(filename: str, contents: str) -> list[KeyValue]:
    """Emit a single (filename, "1") pair per input."""
    return [KeyValue(filename, "1")]


def reduce_fn(key: str, values: list[str]) -> str:
    """Return the number of values; keys naming sherlock or tom are slow."""
    if "sherlock" in key or "tom" in key:
        time.sleep(SLOW_REDUCE_SECONDS)
    return str(len(values))