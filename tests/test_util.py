from minimr.util import ihash, line_count


def test_line_count_with_trailing_newline(tmp_path):
    path = tmp_path / "f.txt"
    path.write_bytes(b"a\nb\nc\n")
    assert line_count(path) == 3


def test_line_count_without_trailing_newline(tmp_path):
    path = tmp_path / "f.txt"
    path.write_bytes(b"a\nb\nc")
    assert line_count(path) == 3


def test_line_count_empty_file(tmp_path):
    path = tmp_path / "empty.txt"
    path.write_bytes(b"")
    assert line_count(path) == 0


def test_line_count_crlf_lines(tmp_path):
    path = tmp_path / "crlf.txt"
    path.write_bytes(b"one\r\ntwo\r\n")
    assert line_count(path) == 2


def test_line_count_missing_file_is_zero(tmp_path):
    assert line_count(tmp_path / "nope.txt") == 0


def test_ihash_empty_string_is_masked_offset_basis():
    assert ihash("") == 0x811C9DC5 & 0x7FFFFFFF


def test_ihash_known_fnv1a_vector():
    assert ihash("a") == 0xE40C292C & 0x7FFFFFFF


def test_ihash_is_deterministic_and_in_range():
    for key in ["hello", "world", "MapReduce", "ünïcode", ""]:
        value = ihash(key)
        assert value == ihash(key)
        assert 0 <= value < 2**31


def test_ihash_distinguishes_keys():
    assert ihash("apple") != ihash("apples")
    assert ihash("ab") != ihash("ba")