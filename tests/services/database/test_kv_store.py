"""
Tests for the key-value stores backing the schema store.
"""

import pytest
from sqlalchemy import inspect

from player_agent.services.database.engine import DatabaseManager
from player_agent.services.database.kv_store import MemoryKeyValueStore, SQLKeyValueStore


@pytest.fixture
def db_manager(tmp_path):
    """Provides a clean test database manager."""
    manager = DatabaseManager(db_path=tmp_path / "test_player_agent.db")
    manager.init_db()
    yield manager
    manager.dispose()


@pytest.fixture
def sql_store(db_manager):
    return SQLKeyValueStore(db_manager)


def test_database_initialization(db_manager):
    """Verify that the key-value table is created."""
    inspector = inspect(db_manager.engine)
    assert "kv_entries" in inspector.get_table_names()


@pytest.mark.parametrize("store_factory", ["memory", "sql"])
class TestKeyValueContract:
    """Both stores honour the same get/set/delete contract."""

    @pytest.fixture
    def kv(self, store_factory, db_manager):
        if store_factory == "memory":
            return MemoryKeyValueStore()
        return SQLKeyValueStore(db_manager)

    def test_missing_key_is_none(self, kv):
        assert kv.get("nothing") is None

    def test_set_then_get(self, kv):
        kv.set("schemas", "[]")
        assert kv.get("schemas") == "[]"

    def test_set_replaces_whole_value(self, kv):
        kv.set("schemas", '[{"id": "a"}]')
        kv.set("schemas", "[]")
        assert kv.get("schemas") == "[]"

    def test_delete(self, kv):
        kv.set("active_schema_id", "abc")
        kv.delete("active_schema_id")
        assert kv.get("active_schema_id") is None

    def test_delete_missing_key_is_noop(self, kv):
        kv.delete("never_set")
        assert kv.get("never_set") is None

    def test_keys(self, kv):
        kv.set("a", "1")
        kv.set("b", "2")
        assert sorted(kv.keys()) == ["a", "b"]


def test_sql_store_persists_across_instances(db_manager):
    SQLKeyValueStore(db_manager).set("active_schema_id", "abc")

    reopened = DatabaseManager(db_path=db_manager.db_path)
    try:
        assert SQLKeyValueStore(reopened).get("active_schema_id") == "abc"
    finally:
        reopened.dispose()


def test_memory_store_initial_data():
    kv = MemoryKeyValueStore({"legacy_profiles": "{}"})
    assert kv.get("legacy_profiles") == "{}"
