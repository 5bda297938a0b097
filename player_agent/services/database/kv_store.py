"""
Key-value stores backing the schema store.

Values are opaque strings; callers serialize their own documents. A set()
replaces the whole value for its key in one transaction.
"""

from typing import Dict, Optional

from sqlalchemy.exc import SQLAlchemyError

from player_agent.services.database.engine import DatabaseManager, get_db_manager
from player_agent.services.database.models import KeyValueEntry
from player_agent.utils.logger import log


class MemoryKeyValueStore:
    """In-process store. Used by tests and as a scratch store for hosts."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self):
        return list(self._data.keys())


class SQLKeyValueStore:
    """
    SQLite-backed store, one row per key in kv_entries.
    """

    def __init__(self, db_manager: Optional[DatabaseManager] = None):
        if db_manager is None:
            db_manager = get_db_manager()
        else:
            db_manager.init_db()
        self.db_manager = db_manager

    def get(self, key: str) -> Optional[str]:
        session = self.db_manager.get_session()
        try:
            entry = session.get(KeyValueEntry, key)
            return entry.value if entry else None
        finally:
            session.close()

    def set(self, key: str, value: str) -> None:
        session = self.db_manager.get_session()
        try:
            entry = session.get(KeyValueEntry, key)
            if entry is None:
                session.add(KeyValueEntry(key=key, value=value))
            else:
                entry.value = value
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            log.error(f"Failed to write key {key}: {e}")
            raise
        finally:
            session.close()

    def delete(self, key: str) -> None:
        session = self.db_manager.get_session()
        try:
            entry = session.get(KeyValueEntry, key)
            if entry is not None:
                session.delete(entry)
                session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            log.error(f"Failed to delete key {key}: {e}")
            raise
        finally:
            session.close()

    def keys(self):
        session = self.db_manager.get_session()
        try:
            return [row.key for row in session.query(KeyValueEntry.key).all()]
        finally:
            session.close()


_kv_store: Optional[SQLKeyValueStore] = None


def get_kv_store() -> SQLKeyValueStore:
    """Shared SQLite store at the configured db_path."""
    global _kv_store
    if _kv_store is None:
        _kv_store = SQLKeyValueStore()
    return _kv_store
