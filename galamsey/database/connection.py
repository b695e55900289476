"""
Database connection management for GalamseyWatch
PostgreSQL in production, SQLite for local runs and tests
"""

import logging
import threading
from contextlib import contextmanager, nullcontext
from typing import Generator, Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

from galamsey.core.config import settings
from .models import Base

logger = logging.getLogger(__name__)


def _is_sqlite(database_url: str) -> bool:
    return make_url(database_url).get_backend_name() == "sqlite"


def _is_memory_sqlite(database_url: str) -> bool:
    return _is_sqlite(database_url) and make_url(database_url).database in (None, "", ":memory:")


def _build_engine(database_url: str, pool_size: int, echo: bool) -> Engine:
    if _is_memory_sqlite(database_url):
        # An in-memory database exists only on the connection that created it
        return create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
            echo=echo,
        )

    if _is_sqlite(database_url):
        return create_engine(
            database_url,
            connect_args={"check_same_thread": False, "timeout": 30},
            echo=echo,
        )

    return create_engine(
        database_url,
        poolclass=QueuePool,
        pool_size=pool_size,
        max_overflow=pool_size * 2,
        pool_pre_ping=True,
        echo=echo,
    )


class DatabaseConnection:
    """
    Owns the engine and session factory for reports and wizard drafts.
    """

    def __init__(
        self,
        database_url: Optional[str] = None,
        pool_size: int = 5,
        echo: bool = False
    ):
        """
        Initialize database connection.

        Args:
            database_url: SQLAlchemy URL (defaults to settings.database_url)
            pool_size: Pooled connections for server databases
            echo: Log every SQL statement
        """
        self.database_url = database_url or settings.database_url
        self.engine = _build_engine(self.database_url, pool_size, echo)

        # SQLite allows one writer; sessions from worker threads take turns
        self._sqlite_lock = threading.RLock() if _is_sqlite(self.database_url) else None

        # Records are read back after commit, so keep loaded attributes
        self.SessionLocal = sessionmaker(
            bind=self.engine,
            autoflush=False,
            expire_on_commit=False,
        )

        safe_url = make_url(self.database_url).render_as_string(hide_password=True)
        logger.info(f"Database ready: {safe_url}")

    def create_tables(self) -> None:
        """Create report and draft tables that do not exist yet."""
        Base.metadata.create_all(bind=self.engine)
        logger.info("Database tables created")

    def drop_tables(self) -> None:
        Base.metadata.drop_all(bind=self.engine)
        logger.warning("All database tables dropped")

    def check_connection(self) -> bool:
        """Health check, never raises."""
        try:
            with self._sqlite_lock or nullcontext(), self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError as e:
            logger.error(f"Database connection check failed: {e}")
            return False
        return True

    @contextmanager
    def get_session(self) -> Generator[Session, None, None]:
        """
        Transactional session: commits on exit, rolls back on any error.

        Yields:
            SQLAlchemy session
        """
        with self._sqlite_lock or nullcontext():
            with self._transaction() as session:
                yield session

    @contextmanager
    def _transaction(self) -> Generator[Session, None, None]:
        session = self.SessionLocal()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def close(self) -> None:
        self.engine.dispose()
        logger.info("Database connection closed")


def init_db(database_url: Optional[str] = None) -> DatabaseConnection:
    """
    Connect and make sure the schema exists.

    Args:
        database_url: Optional database URL override

    Returns:
        DatabaseConnection instance
    """
    db = DatabaseConnection(database_url=database_url)
    db.create_tables()
    return db
