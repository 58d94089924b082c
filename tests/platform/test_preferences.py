"""
Tests for preference storage.

Covers:
- In-memory store
- YAML-file store persistence and permissions
- Store factory
"""

from __future__ import annotations

from pathlib import Path

import pytest

from blinkup_bridge.platform.preferences import (
    MemoryPreferenceStore,
    YamlPreferenceStore,
    create_store,
)


class TestMemoryPreferenceStore:
    """Tests for MemoryPreferenceStore."""

    def test_get_missing_returns_default(self):
        store = MemoryPreferenceStore()

        assert store.get("planId") is None
        assert store.get("planId", "fallback") == "fallback"

    def test_set_and_get(self):
        store = MemoryPreferenceStore()
        store.set("planId", "abc")

        assert store.get("planId") == "abc"

    def test_initial_values_copied(self):
        values = {"planId": "abc"}
        store = MemoryPreferenceStore(values)
        store.set("planId", "def")

        assert values["planId"] == "abc"

    def test_remove(self):
        store = MemoryPreferenceStore({"planId": "abc"})
        store.remove("planId")
        store.remove("planId")

        assert store.get("planId") is None


class TestYamlPreferenceStore:
    """Tests for YamlPreferenceStore."""

    @pytest.fixture
    def store(self, tmp_path):
        return YamlPreferenceStore(tmp_path / "prefs", "DefaultPreferences")

    def test_path(self, store, tmp_path):
        assert store.path == tmp_path / "prefs" / "DefaultPreferences.yaml"

    def test_get_without_file(self, store):
        assert store.get("planId") is None

    def test_set_creates_file(self, store):
        store.set("planId", "abc")

        assert store.path.exists()
        assert "planId: abc" in store.path.read_text()

    def test_restricted_permissions(self, store):
        store.set("planId", "abc")

        assert store.path.stat().st_mode & 0o777 == 0o600

    def test_values_persist_across_instances(self, store, tmp_path):
        store.set("planId", "abc")

        other = YamlPreferenceStore(tmp_path / "prefs", "DefaultPreferences")
        assert other.get("planId") == "abc"

    def test_numeric_value_returned_as_string(self, store):
        store.path.parent.mkdir(parents=True)
        store.path.write_text("planId: 12345\n")

        assert store.get("planId") == "12345"

    def test_remove(self, store):
        store.set("planId", "abc")
        store.set("other", "keep")

        store.remove("planId")

        assert store.get("planId") is None
        assert store.get("other") == "keep"

    def test_malformed_file_treated_as_empty(self, store):
        store.path.parent.mkdir(parents=True)
        store.path.write_text("- just\n- a list\n")

        assert store.get("planId") is None


class TestCreateStore:
    """Tests for create_store."""

    def test_memory_backend(self, tmp_path):
        assert isinstance(create_store("memory", tmp_path, "Prefs"), MemoryPreferenceStore)

    def test_yaml_backend(self, tmp_path):
        store = create_store("yaml", str(tmp_path), "Prefs")

        assert isinstance(store, YamlPreferenceStore)
        assert store.path == Path(tmp_path) / "Prefs.yaml"
