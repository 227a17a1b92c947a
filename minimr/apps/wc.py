"""Word-count application."""

from __future__ import annotations

from itertools import groupby

from minimr.types import KeyValue


def _words(text: str) -> list[str]:
    return ["".join(chars) for is_letter, chars in groupby(text, str.isalpha) if is_letter]


def map_fn(filename: str, contents: str) -> list[KeyValue]:
    """Emit ("word", "1") for every run of letters in the contents."""
    return [KeyValue(word, "1") for word in _words(contents)]


def reduce_fn(key: str, values: list[str]) -> str:
    """Return how many times the word occurred."""
    return str(len(values))