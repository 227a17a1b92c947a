"""Application that sometimes crashes or stalls, to exercise fault recovery."""

from __future__ import annotations

import os
import secrets
import time

from minimr.types import KeyValue


def maybe_crash() -> None:
    """Exit the process about a third of the time; stall up to 10 s another third."""
    roll = secrets.randbelow(1000)
    if roll < 330:
        os._exit(1)
    elif roll < 660:
        delay_ms = secrets.randbelow(10 * 1000)
        time.sleep(delay_ms / 1000)


def map_fn(filename: str, contents: str) -> list[KeyValue]:
    """Emit the filename, its byte length, the content length and a marker."""
    maybe_crash()
    return [
        KeyValue("a", filename),
        KeyValue("b", str(len(filename.encode("utf-8")))),
        KeyValue("c", str(len(contents.encode("utf-8")))),
        KeyValue("d", "xyzzy"),
    ]


def reduce_fn(key: str, values: list[str]) -> str:
    """Join the sorted values with spaces."""
    maybe_crash()
    return " ".join(sorted(values))