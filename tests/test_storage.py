"""Tests for the key-value stores and their change events."""

import json
import os

import pytest

from finflow.config import StorageSettings
from finflow.services.storage import (
    JsonDocument,
    JsonFileStore,
    MemoryStore,
    StorageError,
    StorageEvent,
    create_store,
)


class TestMemoryStore:
    """Tests for the in-memory store."""

    def test_set_get_remove(self):
        """Test the basic key-value operations."""
        store = MemoryStore()
        assert store.get_item("a") is None

        store.set_item("a", "1")
        assert store.get_item("a") == "1"
        assert store.keys() == ["a"]

        store.remove_item("a")
        assert store.get_item("a") is None
        assert store.keys() == []

    def test_set_dispatches_event(self):
        """Test that writes notify subscribers with old and new values."""
        store = MemoryStore({"a": "1"})
        events = []
        store.subscribe(events.append)

        store.set_item("a", "2")

        assert events == [StorageEvent(key="a", old_value="1", new_value="2")]

    def test_remove_dispatches_event_only_when_present(self):
        """Test that removing a missing key is silent."""
        store = MemoryStore({"a": "1"})
        events = []
        store.subscribe(events.append)

        store.remove_item("missing")
        store.remove_item("a")

        assert len(events) == 1
        assert events[0].key == "a"
        assert events[0].new_value is None

    def test_subscribe_to_specific_keys(self):
        """Test that a key filter only forwards matching events."""
        store = MemoryStore()
        events = []
        store.subscribe(events.append, keys=["wanted"])

        store.set_item("other", "x")
        store.set_item("wanted", "y")

        assert [event.key for event in events] == ["wanted"]

    def test_unsubscribe(self):
        """Test that an unsubscribed listener gets nothing more."""
        store = MemoryStore()
        events = []
        unsubscribe = store.subscribe(events.append)

        store.set_item("a", "1")
        unsubscribe()
        store.set_item("a", "2")

        assert len(events) == 1

    def test_failing_listener_does_not_break_writes(self):
        """Test that listener errors are contained."""
        store = MemoryStore()
        received = []

        def broken(event):
            raise RuntimeError("boom")

        store.subscribe(broken)
        store.subscribe(received.append)

        store.set_item("a", "1")

        assert store.get_item("a") == "1"
        assert len(received) == 1

    def test_poll_reports_nothing(self):
        """Test that a memory store has no external changes."""
        assert MemoryStore().poll() == []


class TestJsonFileStore:
    """Tests for the JSON-file-backed store."""

    def test_persists_across_instances(self, tmp_path):
        """Test that values survive reopening the file."""
        path = tmp_path / "data" / "storage.json"
        JsonFileStore(path).set_item("financialApp_logs", "[]")

        reopened = JsonFileStore(path)
        assert reopened.get_item("financialApp_logs") == "[]"
        assert json.loads(path.read_text(encoding="utf-8")) == {"financialApp_logs": "[]"}

    def test_write_leaves_no_temp_files(self, tmp_path):
        """Test that the atomic write cleans up after itself."""
        path = tmp_path / "storage.json"
        store = JsonFileStore(path)
        store.set_item("a", "1")
        store.set_item("b", "2")

        assert os.listdir(tmp_path) == ["storage.json"]

    def test_missing_file_is_empty(self, tmp_path):
        """Test that a store with no file yet has no keys."""
        store = JsonFileStore(tmp_path / "nothing.json")
        assert store.keys() == []

    def test_corrupted_file_reads_as_empty(self, tmp_path):
        """Test that an undecodable file does not crash the app."""
        path = tmp_path / "storage.json"
        path.write_text("{not json", encoding="utf-8")

        store = JsonFileStore(path)
        assert store.keys() == []

    def test_non_string_values_are_encoded(self, tmp_path):
        """Test that hand-edited non-string values are read back as JSON text."""
        path = tmp_path / "storage.json"
        path.write_text(json.dumps({"monthlySpendingGoal": 1500}), encoding="utf-8")

        store = JsonFileStore(path)
        assert store.get_item("monthlySpendingGoal") == "1500"

    def test_poll_dispatches_external_changes(self, tmp_path):
        """Test that a change made by another instance is picked up on poll."""
        path = tmp_path / "storage.json"
        tab_a = JsonFileStore(path)
        tab_a.set_item("financialApp_logs", "[]")
        tab_a.set_item("monthlySpendingGoal", "100")

        tab_b = JsonFileStore(path)
        events = []
        tab_b.subscribe(events.append)

        tab_a.set_item("monthlySpendingGoal", "200")
        tab_a.remove_item("financialApp_logs")
        # Make sure the modification time moves even on coarse filesystems
        stat = path.stat()
        os.utime(path, ns=(stat.st_atime_ns, stat.st_mtime_ns + 1_000_000_000))

        changes = tab_b.poll()

        assert {event.key for event in changes} == {"financialApp_logs", "monthlySpendingGoal"}
        assert all(event.external for event in changes)
        assert events == changes
        assert tab_b.get_item("monthlySpendingGoal") == "200"
        assert tab_b.get_item("financialApp_logs") is None

    def test_poll_without_changes(self, tmp_path):
        """Test that polling an unchanged file is silent."""
        store = JsonFileStore(tmp_path / "storage.json")
        store.set_item("a", "1")
        assert store.poll() == []

    def test_failed_write_changes_nothing(self, tmp_path, monkeypatch):
        """Test that a write that cannot reach the disk leaves memory, file and listeners untouched."""
        path = tmp_path / "storage.json"
        store = JsonFileStore(path)
        store.set_item("a", "1")
        events = []
        store.subscribe(events.append)

        def failing_replace(src, dst):
            raise OSError("disk full")

        monkeypatch.setattr(os, "replace", failing_replace)

        with pytest.raises(StorageError):
            store.set_item("a", "2")
        with pytest.raises(StorageError):
            store.remove_item("a")

        assert store.get_item("a") == "1"
        assert events == []
        assert os.listdir(tmp_path) == ["storage.json"]
        assert json.loads(path.read_text(encoding="utf-8")) == {"a": "1"}


class TestJsonDocument:
    """Tests for JSON values kept under one key."""

    def test_read_default_when_missing(self):
        """Test that a missing key reads as the default."""
        document = JsonDocument(MemoryStore(), "k")
        assert document.read(default=[]) == []
        assert document.exists() is False

    def test_read_undecodable_value(self):
        """Test that an undecodable value reads as the default."""
        document = JsonDocument(MemoryStore({"k": "{oops"}), "k")
        assert document.read(default="fallback") == "fallback"

    def test_read_list_rejects_objects(self):
        """Test that read_list only returns lists."""
        document = JsonDocument(MemoryStore({"k": '{"a": 1}'}), "k")
        assert document.read_list() == []

    def test_write_keeps_unicode(self):
        """Test that labels are stored without escaping."""
        store = MemoryStore()
        JsonDocument(store, "k").write([{"label": "Alimentação"}])
        assert "Alimentação" in store.get_item("k")


class TestCreateStore:
    """Tests for building the configured store."""

    def test_memory_backend(self):
        """Test the memory backend selection."""
        settings = StorageSettings(backend="memory")
        assert isinstance(create_store(settings), MemoryStore)

    def test_file_backend(self, tmp_path):
        """Test the file backend selection."""
        settings = StorageSettings(backend="file", path=str(tmp_path / "s.json"))
        store = create_store(settings)
        assert isinstance(store, JsonFileStore)
        assert store.path == tmp_path / "s.json"

    def test_invalid_backend(self):
        """Test that unknown backends are rejected by the settings."""
        with pytest.raises(ValueError):
            StorageSettings(backend="sqlite")
