"""
SQLAlchemy ORM models for the Player Agent database.
"""

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, String, Text
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def _utcnow():
    return datetime.now(timezone.utc)


class KeyValueEntry(Base):
    """
    One persisted value. The whole value is replaced on every write.
    """
    __tablename__ = "kv_entries"

    key = Column(String(255), primary_key=True)
    value = Column(Text, nullable=False)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)

    def __repr__(self):
        return f"<KeyValueEntry(key='{self.key}', size={len(self.value or '')})>"
