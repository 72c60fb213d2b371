"""
Unit tests for the selection store.
"""

import json

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent.parent.parent))

from foyer.core.selection import BoardSelectionStore


class TestBoardSelectionStore:
    """Tests for per-instance board selections."""

    def test_load_missing_file(self, tmp_path):
        store = BoardSelectionStore(tmp_path / "selection.json")
        assert store.load("default") is None

    def test_save_and_load(self, tmp_path):
        store = BoardSelectionStore(tmp_path / "selection.json")

        stored = store.save("default", ["3", 1, "x", -2])

        assert stored == [3, 1]
        assert store.load("default") == [3, 1]

    def test_instances_are_independent(self, tmp_path):
        store = BoardSelectionStore(tmp_path / "selection.json")
        store.save("lobby", [1])
        store.save("kitchen", [2])

        assert store.load("lobby") == [1]
        assert store.load("kitchen") == [2]

    def test_invalid_data_is_cleared(self, tmp_path):
        path = tmp_path / "selection.json"
        path.write_text(json.dumps({"default": "1,2", "other": [5]}))
        store = BoardSelectionStore(path)

        assert store.load("default") is None
        assert "default" not in json.loads(path.read_text())
        assert store.load("other") == [5]

    def test_corrupt_file_reads_as_empty(self, tmp_path):
        path = tmp_path / "selection.json"
        path.write_text("{not json")
        assert BoardSelectionStore(path).load("default") is None

    def test_clear(self, tmp_path):
        store = BoardSelectionStore(tmp_path / "selection.json")
        store.save("default", [1])

        assert store.clear("default") is True
        assert store.clear("default") is False
        assert store.load("default") is None

    def test_clear_all(self, tmp_path):
        store = BoardSelectionStore(tmp_path / "selection.json")
        store.save("a", [1])
        store.save("b", [2])

        assert store.clear_all() == 2
        assert store.all_selections() == {}
