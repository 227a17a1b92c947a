from minimr.apps.wc import map_fn, reduce_fn
from minimr.types import KeyValue


def test_map_splits_on_non_letters():
    result = map_fn("ignored.txt", "Hello, world! hello")
    assert result == [KeyValue("Hello", "1"), KeyValue("world", "1"), KeyValue("hello", "1")]


def test_map_ignores_filename():
    assert map_fn("a.txt", "same text") == map_fn("b.txt", "same text")


def test_map_digits_separate_words():
    assert [kv.key for kv in map_fn("f", "abc123def")] == ["abc", "def"]


def test_map_keeps_unicode_letters():
    assert [kv.key for kv in map_fn("f", "café über")] == ["café", "über"]


def test_map_empty_contents():
    assert map_fn("f", "  ,.;\n") == []


def test_map_values_are_all_one():
    result = map_fn("f", "the quick brown fox jumps")
    assert {kv.value for kv in result} == {"1"}


def test_reduce_counts_values():
    assert reduce_fn("word", ["1", "1", "1"]) == "3"


def test_reduce_matches_number_of_mapped_words():
    result = map_fn("f", "a b a c a")
    occurrences = [kv.value for kv in result if kv.key == "a"]
    assert reduce_fn("a", occurrences) == str(len(occurrences))