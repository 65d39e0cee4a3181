"""Tests for local tree collection."""
import os

import pytest

from treesync.errors import LocalIOError
from treesync.orchestrator.tree_collector import TreeCollector


class TestTreeCollector:
    def test_one_item_per_file(self, tree):
        items = TreeCollector.collect(tree, "assets")

        assert [i.remote_key for i in items] == ["assets/a.txt", "assets/b/c.txt"]
        assert items[0].local_path == os.path.join(str(tree), "a.txt")
        assert items[1].local_path == os.path.join(str(tree), "b", "c.txt")

    def test_directories_are_not_items(self, tmp_path):
        (tmp_path / "empty").mkdir()
        (tmp_path / "nested" / "deeper").mkdir(parents=True)
        (tmp_path / "nested" / "deeper" / "f.bin").write_bytes(b"x")

        items = TreeCollector.collect(tmp_path)

        assert [i.remote_key for i in items] == ["nested/deeper/f.bin"]

    def test_depth_first_in_name_order(self, tmp_path):
        (tmp_path / "a").mkdir()
        (tmp_path / "a" / "z.txt").write_text("1")
        (tmp_path / "b.txt").write_text("2")
        (tmp_path / "c").mkdir()
        (tmp_path / "c" / "d.txt").write_text("3")

        keys = [i.remote_key for i in TreeCollector.collect(tmp_path, "p")]

        assert keys == ["p/a/z.txt", "p/b.txt", "p/c/d.txt"]

    def test_deterministic(self, tree):
        assert TreeCollector.collect(tree) == TreeCollector.collect(tree)

    def test_empty_prefix(self, tree):
        keys = [i.remote_key for i in TreeCollector.collect(tree, "")]
        assert keys == ["a.txt", "b/c.txt"]

    def test_prefix_is_normalized(self, tree):
        keys = [i.remote_key for i in TreeCollector.collect(tree, "/backup\\2026/")]
        assert keys == ["backup/2026/a.txt", "backup/2026/b/c.txt"]

    def test_iter_items_is_lazy(self, tree):
        it = TreeCollector.iter_items(tree)
        first = next(it)
        assert first.remote_key == "a.txt"

    def test_missing_root_raises(self, tmp_path):
        with pytest.raises(LocalIOError):
            TreeCollector.collect(tmp_path / "nope")

    def test_file_root_raises(self, tmp_path):
        f = tmp_path / "file.txt"
        f.write_text("x")
        with pytest.raises(LocalIOError):
            TreeCollector.collect(f)

    @pytest.mark.skipif(os.name == "nt" or os.geteuid() == 0, reason="needs POSIX permissions as non-root")
    def test_unreadable_directory_raises(self, tmp_path):
        locked = tmp_path / "locked"
        locked.mkdir()
        (locked / "secret.txt").write_text("x")
        locked.chmod(0)
        try:
            with pytest.raises(LocalIOError):
                TreeCollector.collect(tmp_path)
        finally:
            locked.chmod(0o755)

    def test_names_with_surrounding_spaces_keep_distinct_keys(self, tmp_path):
        (tmp_path / "a").write_text("1")
        (tmp_path / "a ").write_text("2")
        (tmp_path / " lead.txt").write_text("3")
        (tmp_path / " sub ").mkdir()
        (tmp_path / " sub " / "x.txt").write_text("4")

        keys = [i.remote_key for i in TreeCollector.collect(tmp_path, "p")]

        assert keys == ["p/ lead.txt", "p/ sub /x.txt", "p/a", "p/a "]
        assert len(set(keys)) == len(keys)
