"""Same as the crash application, but it never crashes."""

from __future__ import annotations

import os
import secrets

from minimr.types import KeyValue

CRASH_ENABLED = False


def maybe_crash() -> None:
    """Never exits: crashing is switched off."""
    if CRASH_ENABLED and secrets.randbelow(1000) < 500:
        os._exit(1)


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