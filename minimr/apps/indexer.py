"""Inverted-index application: which documents contain each word."""

from __future__ import annotations

from itertools import groupby

from minimr.types import KeyValue


def map_fn(document: str, value: str) -> list[KeyValue]:
    """Emit (word, document) once for each distinct word in the document."""
    words = ("".join(chars) for is_letter, chars in groupby(value, str.isalpha) if is_letter)
    return [KeyValue(word, document) for word in dict.fromkeys(words)]


def reduce_fn(key: str, values: list[str]) -> str:
    """Return "<count> <doc1>,<doc2>,..." over the sorted distinct documents.

    Raises ValueError when no documents are given.
    """
    if not values:
        raise ValueError(f"no documents for key {key!r}")
    documents = list(dict.fromkeys(sorted(values)))
    return f"{len(documents)} {','.join(documents)}"