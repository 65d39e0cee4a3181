"""Tests for path to key mapping."""
from treesync.utils.paths import child_key, join_key, normalize_prefix, to_remote_key


def test_backslashes_become_slashes():
    assert to_remote_key("b\\c.txt") == "b/c.txt"
    assert to_remote_key("a\\b\\c\\d.bin") == "a/b/c/d.bin"


def test_keeps_case_and_characters():
    assert to_remote_key("Dir/Ünïcode %20 File.TXT") == "Dir/Ünïcode %20 File.TXT"


def test_idempotent():
    for value in ["a/b/c", "x\\y\\z", "", "plain"]:
        once = to_remote_key(value)
        assert to_remote_key(once) == once


def test_normalize_prefix():
    assert normalize_prefix(None) == ""
    assert normalize_prefix("") == ""
    assert normalize_prefix(" / ") == ""
    assert normalize_prefix("/assets/") == "assets"
    assert normalize_prefix("assets\\2026\\") == "assets/2026"


def test_join_key():
    assert join_key("assets", "b", "c.txt") == "assets/b/c.txt"
    assert join_key("", "a.txt") == "a.txt"
    assert join_key("/assets/", None, "/img/", "x.png") == "assets/img/x.png"


def test_child_key_keeps_name_verbatim():
    assert child_key("assets", "a ") == "assets/a "
    assert child_key("assets", " lead.txt") == "assets/ lead.txt"
    assert child_key("", "b\\c.txt") == "b/c.txt"
