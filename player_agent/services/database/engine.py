"""
Database engine and session management for the Player Agent.
"""

import os
from pathlib import Path
from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from player_agent.config.manager import config_manager
from player_agent.services.database.models import Base
from player_agent.utils.logger import log


def default_db_path() -> Path:
    env_path = os.getenv("PLAYER_AGENT_DB_PATH")
    if env_path:
        return Path(env_path)
    return Path(config_manager.get("db_path"))


class DatabaseManager:
    """
    Manages the SQLAlchemy engine and sessions.
    """
    def __init__(self, db_path: Optional[Path] = None):
        self.db_path = Path(db_path) if db_path else default_db_path()
        # Ensure data directory exists
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        self.engine = create_engine(f"sqlite:///{self.db_path}")
        self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)

    def init_db(self):
        """
        Create all tables if they don't exist.
        """
        try:
            Base.metadata.create_all(bind=self.engine)
            log.info(f"Database initialized at {self.db_path}")
        except Exception as e:
            log.error(f"Failed to initialize database: {e}")
            raise

    def get_session(self) -> Session:
        """
        Get a new database session.
        """
        return self.SessionLocal()

    def dispose(self):
        self.engine.dispose()


_db_manager: Optional[DatabaseManager] = None


def get_db_manager() -> DatabaseManager:
    """Shared manager, created and initialized on first use."""
    global _db_manager
    if _db_manager is None:
        _db_manager = DatabaseManager()
        _db_manager.init_db()
    return _db_manager
