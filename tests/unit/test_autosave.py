"""Unit tests for draft stores."""

import json
from datetime import datetime, timedelta, timezone

import pytest

from formgate.autosave import FileAutoSaveStore, MemoryAutoSaveStore


def _age(entry: dict, hours: float) -> None:
    entry["saved_at"] = (datetime.now(timezone.utc) - timedelta(hours=hours)).isoformat()


class TestMemoryAutoSaveStore:
    """Test suite for MemoryAutoSaveStore."""

    def test_save_and_load(self):
        """Verify a fresh draft round-trips."""
        store = MemoryAutoSaveStore()
        store.save("k", {"reason": "Duplicate"})

        assert store.load("k") == {"reason": "Duplicate"}

    def test_stale_entry_is_deleted(self):
        """Verify stale drafts are discarded on load."""
        store = MemoryAutoSaveStore()
        store.save("k", {"reason": "Duplicate"})
        _age(store.entries["k"], 30)

        assert store.load("k", timedelta(hours=24)) is None
        assert "k" not in store.entries

    def test_malformed_entry_is_deleted(self):
        """Verify entries without a timestamp are discarded."""
        store = MemoryAutoSaveStore()
        store.entries["k"] = {"data": {"a": 1}}

        assert store.load("k") is None
        assert store.entries == {}

    def test_delete(self):
        """Verify delete reports whether a draft existed."""
        store = MemoryAutoSaveStore()
        store.save("k", {})

        assert store.delete("k") is True
        assert store.delete("k") is False


class TestFileAutoSaveStore:
    """Test suite for FileAutoSaveStore."""

    @pytest.fixture
    def store(self, tmp_path) -> FileAutoSaveStore:
        return FileAutoSaveStore(tmp_path / "drafts")

    def test_save_writes_wrapped_json(self, store):
        """Verify drafts are stored with a saved_at timestamp."""
        store.save("delete_leave_form_autosave_42", {"confirmation": "DEL"})

        entry = json.loads(store.path_for("delete_leave_form_autosave_42").read_text(encoding="utf-8"))

        assert entry["data"] == {"confirmation": "DEL"}
        assert "saved_at" in entry
        assert store.load("delete_leave_form_autosave_42") == {"confirmation": "DEL"}

    def test_unsafe_key_characters_are_replaced(self, store):
        """Verify keys cannot escape the draft directory."""
        path = store.path_for("../etc/passwd")

        assert path.parent == store.directory

    def test_stale_file_is_removed(self, store):
        """Verify stale drafts are deleted from disk."""
        store.save("k", {"a": 1})
        path = store.path_for("k")
        entry = json.loads(path.read_text(encoding="utf-8"))
        _age(entry, 48)
        path.write_text(json.dumps(entry), encoding="utf-8")

        assert store.load("k") is None
        assert not path.exists()

    def test_corrupt_file_is_removed(self, store):
        """Verify unreadable drafts are discarded."""
        store.path_for("k").write_text("{not json", encoding="utf-8")

        assert store.load("k") is None
        assert not store.path_for("k").exists()

    def test_missing_draft(self, store):
        """Verify loading or deleting an unknown key is harmless."""
        assert store.load("missing") is None
        assert store.delete("missing") is False
