"""
Database session management.

Provides explicit ORM session handling with SQLAlchemy.
"""

from contextlib import contextmanager
from pathlib import Path
from typing import Generator

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from stepfour.core.config import Config
from stepfour.core.models import Base


def get_engine(database_path: str) -> Engine:
    """
    Create SQLAlchemy engine.

    Uses SQLite with WAL mode. ":memory:" gives a throwaway database.
    """
    if database_path == ":memory:":
        return create_engine(
            "sqlite://",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )

    db_path = Path(database_path)
    db_path.parent.mkdir(parents=True, exist_ok=True)

    engine = create_engine(f"sqlite:///{db_path}")

    with engine.connect() as conn:
        conn.execute(text("PRAGMA journal_mode=WAL"))
        conn.commit()

    return engine


def init_db(engine: Engine) -> None:
    """
    Initialize database schema.

    Creates all tables if they don't exist.
    """
    Base.metadata.create_all(engine)


def engine_from_config(config: Config) -> Engine:
    """Create and initialize the engine for the configured database file."""
    engine = get_engine(config.database_path)
    init_db(engine)
    return engine


@contextmanager
def session_scope(engine: Engine) -> Generator[Session, None, None]:
    """
    Provide transactional scope around a series of operations.

    Usage:
        with session_scope(engine) as session:
            session.merge(row)
    """
    session = sessionmaker(bind=engine)()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
