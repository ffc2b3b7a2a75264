import logging
from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import StaticPool

from booking_core.core.config import get_database_url
from booking_core.core.db import register_query_timing

logger = logging.getLogger(__name__)

SQLITE_BUSY_TIMEOUT_SECONDS = 30


class Base(DeclarativeBase):
    """Declarative base for all models."""


def _build_engine(database_url: str) -> Engine:
    url = make_url(database_url)
    is_postgres = url.drivername.startswith("postgres")
    is_sqlite = url.drivername.startswith("sqlite")

    if is_postgres:
        return create_engine(
            database_url,
            pool_size=10,
            max_overflow=20,
            pool_pre_ping=True,  # Detects and refreshes stale connections
            pool_recycle=3600,
            connect_args={
                "application_name": "booking_core",  # Visible in pg_stat_activity
                "connect_timeout": 10,
            },
            echo=False,
        )

    if is_sqlite:
        if url.database in (None, "", ":memory:"):
            # One shared in-memory database across the process so DDL
            # persists across connections.
            engine = create_engine(
                database_url,
                echo=False,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
        else:
            engine = create_engine(
                database_url,
                echo=False,
                connect_args={
                    "check_same_thread": False,
                    "timeout": SQLITE_BUSY_TIMEOUT_SECONDS,
                },
            )

        @event.listens_for(engine, "connect")
        def _enable_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        return engine

    return create_engine(database_url, echo=False, pool_pre_ping=True)


class Database:
    """Storage handle: one engine plus its session factory.

    Created at startup (``create_app`` or a script), handed to every
    repository through the sessions it opens, disposed at shutdown.
    """

    def __init__(self, database_url: Optional[str] = None):
        self.url = database_url or get_database_url()
        self.engine = _build_engine(self.url)
        register_query_timing(self.engine)
        self._sessionmaker = sessionmaker(
            bind=self.engine, autoflush=False, expire_on_commit=False
        )
        logger.info(
            "Database engine created",
            extra={
                "context": {
                    "dialect": self.engine.dialect.name,
                    "database": self.engine.url.database,
                }
            },
        )

    @property
    def dialect_name(self) -> str:
        return self.engine.dialect.name

    def new_session(self) -> Session:
        """Return a new Session; the caller closes it."""
        return self._sessionmaker()

    @contextmanager
    def session(self) -> Iterator[Session]:
        """Session scope that rolls back on error and always closes."""
        db = self.new_session()
        try:
            yield db
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def create_tables(self) -> None:
        """Create all tables (no migration tooling; idempotent)."""
        # Import models so Base.metadata is populated
        from booking_core.db import base  # noqa: F401

        Base.metadata.create_all(bind=self.engine)

    def dispose(self) -> None:
        self.engine.dispose()
        logger.info("Database engine disposed")
