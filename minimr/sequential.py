"""Run a map/reduce application in a single process."""

from __future__ import annotations

import os
import sys
from collections.abc import Callable, Iterable, Sequence
from itertools import groupby
from operator import attrgetter

from minimr.plugins import PluginError, load_app
from minimr.types import KeyValue, sort_by_key

DEFAULT_OUTPUT = os.path.join("output", "mr-out-0")

_ENCODING = "utf-8"
_ERRORS = "surrogateescape"


def run_sequential(
    map_fn: Callable[[str, str], list[KeyValue]],
    reduce_fn: Callable[[str, list[str]], str],
    files: Iterable[str | os.PathLike[str]],
    output_path: str | os.PathLike[str],
) -> int:
    """Map every file, reduce each distinct key, write ``key output`` lines.

    Keys are written in sorted order. Returns the number of keys written.
    Raises OSError when an input cannot be read or the output cannot be created.
    """
    intermediate: list[KeyValue] = []
    for filename in files:
        with open(filename, encoding=_ENCODING, errors=_ERRORS, newline="") as handle:
            contents = handle.read()
        intermediate.extend(map_fn(os.fspath(filename), contents))

    written = 0
    with open(output_path, "w", encoding=_ENCODING, errors=_ERRORS, newline="") as out:
        for key, group in groupby(sort_by_key(intermediate), key=attrgetter("key")):
            output = reduce_fn(key, [kv.value for kv in group])
            out.write(f"{key} {output}\n")
            written += 1
    return written


def main(argv: Sequence[str] | None = None) -> int:
    """Command entry: ``<app> <input files...>``; writes output/mr-out-0."""
    args = list(sys.argv[1:] if argv is None else argv)
    if len(args) < 2:
        print("Usage: mrsequential xxx.so inputfiles...", file=sys.stderr)
        return 1
    try:
        map_fn, reduce_fn = load_app(args[0])
    except PluginError as exc:
        print(exc, file=sys.stderr)
        return 1
    try:
        run_sequential(map_fn, reduce_fn, args[1:], DEFAULT_OUTPUT)
    except OSError as exc:
        print(f"cannot process input: {exc}", file=sys.stderr)
        return 1
    return 0