import pytest

from minimr.apps.indexer import map_fn, reduce_fn


def test_map_emits_each_word_once():
    result = map_fn("doc.txt", "b a b a c")
    keys = [kv.key for kv in result]
    assert sorted(keys) == ["a", "b", "c"]
    assert len(keys) == len(set(keys))


def test_map_values_are_document_name():
    result = map_fn("doc.txt", "one two three")
    assert {kv.value for kv in result} == {"doc.txt"}


def test_map_splits_on_non_letters():
    result = map_fn("d", "x1y-z")
    assert sorted(kv.key for kv in result) == ["x", "y", "z"]


def test_map_empty_document():
    assert map_fn("d", "123 456") == []


def test_reduce_sorts_and_deduplicates():
    assert reduce_fn("word", ["d2", "d1", "d2"]) == "2 d1,d2"


def test_reduce_single_document():
    assert reduce_fn("word", ["only"]) == "1 only"


def test_reduce_does_not_mutate_input():
    values = ["z", "a", "z"]
    reduce_fn("w", values)
    assert values == ["z", "a", "z"]


def test_reduce_without_values_raises():
    with pytest.raises(ValueError):
        reduce_fn("w", [])