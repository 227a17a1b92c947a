"""Helpers shared by the master and the workers."""

from __future__ import annotations

import logging
import os

_log = logging.getLogger(__name__)

_FNV32_OFFSET = 0x811C9DC5
_FNV32_PRIME = 0x01000193


def line_count(path: str | os.PathLike[str]) -> int:
    """Count the lines of a file; a final line without a newline counts too.

    A file that cannot be opened counts as having no lines.
    """
    try:
        with open(path, "rb") as handle:
            return sum(1 for _ in handle)
    except OSError as exc:
        _log.debug("[Master] Have error when open file: %s, err: %s", path, exc)
        return 0


def ihash(key: str) -> int:
    """Non-negative 31-bit FNV-1a hash of a key, used to choose a reduce bucket."""
    h = _FNV32_OFFSET
    for byte in key.encode("utf-8"):
        h ^= byte
        h = (h * _FNV32_PRIME) & 0xFFFFFFFF
    return h & 0x7FFFFFFF