"""Application that counts how many times map tasks actually ran."""

from __future__ import annotations

import itertools
import os
import random
import time
from pathlib import Path

from minimr.types import KeyValue

_MARKER_PREFIX = "mr-worker-jobcount"
_invocations = itertools.count()


def map_fn(filename: str, contents: str) -> list[KeyValue]:
    """Leave a marker file in the working directory, pause 2-5 s, emit ("a", "x")."""
    marker = Path(f"{_MARKER_PREFIX}-{os.getpid()}-{next(_invocations)}")
    marker.write_text("x")
    time.sleep((2000 + random.randrange(3000)) / 1000)
    return [KeyValue("a", "x")]


def reduce_fn(key: str, values: list[str]) -> str:
    """Return how many marker files the map tasks left in the working directory."""
    return str(sum(1 for name in os.listdir(".") if name.startswith(_MARKER_PREFIX)))