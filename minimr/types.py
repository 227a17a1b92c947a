"""Key/value pairs exchanged between map and reduce phases."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Iterable

_GO_STYLE_ESCAPES = str.maketrans(
    {
        "<": "\\u003c",
        ">": "\\u003e",
        "&": "\\u0026",
        "\u2028": "\\u2028",
        "\u2029": "\\u2029",
    }
)


@dataclass(frozen=True)
class KeyValue:
    """A single intermediate pair emitted by a map function."""

    key: str
    value: str


def sort_by_key(kvs: Iterable[KeyValue]) -> list[KeyValue]:
    """Return the pairs ordered by key; pairs with equal keys keep their order."""
    return sorted(kvs, key=lambda kv: kv.key)


def encode_pairs(kvs: Iterable[KeyValue]) -> str:
    """Serialise pairs as a compact JSON array of {"k": ..., "v": ...} objects."""
    payload = [{"k": kv.key, "v": kv.value} for kv in kvs]
    text = json.dumps(payload, separators=(",", ":"), ensure_ascii=False)
    return text.translate(_GO_STYLE_ESCAPES)


def decode_pairs(text: str | bytes) -> list[KeyValue]:
    """Parse the output of :func:`encode_pairs`; ``null`` yields an empty list.

    Raises ValueError when the text is not a JSON array of pair objects.
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ValueError(f"invalid intermediate data: {exc}") from exc
    if data is None:
        return []
    if not isinstance(data, list):
        raise ValueError("intermediate data must be a JSON array")
    pairs = []
    for item in data:
        if item is None:
            pairs.append(KeyValue("", ""))
            continue
        if not isinstance(item, dict):
            raise ValueError("each intermediate entry must be a JSON object")
        key = item.get("k", "")
        value = item.get("v", "")
        if key is None:
            key = ""
        if value is None:
            value = ""
        if not isinstance(key, str) or not isinstance(value, str):
            raise ValueError("intermediate keys and values must be strings")
        pairs.append(KeyValue(key, value))
    return pairs