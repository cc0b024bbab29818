"""
Durable key-value storage.

The entry store only ever needs two things from storage: read a string
under a key, and replace the string under a key. Both may fail, and
failures surface as StorageError.
"""

import logging
from datetime import datetime
from typing import Dict, Optional

from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from stepfour.core.config import Config
from stepfour.core.db import engine_from_config, session_scope
from stepfour.core.errors import StorageError
from stepfour.core.models import KeyValue

logger = logging.getLogger(__name__)


class KeyValueStorage:
    """Interface for durable key-value backends."""

    def get(self, key: str) -> Optional[str]:
        """Return the value stored under key, or None if absent."""
        raise NotImplementedError

    def set(self, key: str, value: str) -> None:
        """Replace the value stored under key."""
        raise NotImplementedError

    def close(self) -> None:
        """Release any resources held by the backend."""


class SQLiteKeyValueStorage(KeyValueStorage):
    """
    Key-value pairs in a SQLite table.

    Each set() is its own transaction: either the new value is
    committed or the old one is left untouched.
    """

    def __init__(self, engine: Engine):
        self.engine = engine

    @classmethod
    def from_config(cls, config: Config) -> "SQLiteKeyValueStorage":
        """Open the configured database file, creating the schema if needed."""
        try:
            engine = engine_from_config(config)
        except SQLAlchemyError as e:
            raise StorageError(f"Could not open database {config.database_path}: {e}") from e
        except OSError as e:
            raise StorageError(f"Could not create database directory: {e}") from e

        logger.debug(f"Opened key-value storage at {config.database_path}")
        return cls(engine)

    def get(self, key: str) -> Optional[str]:
        try:
            with session_scope(self.engine) as session:
                row = session.get(KeyValue, key)
                return row.value if row is not None else None
        except SQLAlchemyError as e:
            logger.error(f"Error reading key '{key}': {e}")
            raise StorageError(f"Failed to read '{key}'") from e

    def set(self, key: str, value: str) -> None:
        try:
            with session_scope(self.engine) as session:
                session.merge(KeyValue(key=key, value=value, updated_at=datetime.utcnow()))
        except SQLAlchemyError as e:
            logger.error(f"Error writing key '{key}': {e}")
            raise StorageError(f"Failed to write '{key}'") from e

    def close(self) -> None:
        self.engine.dispose()


class MemoryKeyValueStorage(KeyValueStorage):
    """Dictionary-backed storage. Nothing survives the process."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self.data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value
