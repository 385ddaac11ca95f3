"""
Database lifecycle and session management using SQLModel.

The process entry point builds one ``Database`` and owns its lifecycle
(``init`` at startup, ``dispose`` at shutdown). Routes get a per-request
session through the ``get_session`` dependency, which reads the instance
stored on ``app.state``; tests swap in an in-memory database the same way.
"""

from pathlib import Path
from typing import Any, Generator, Optional

from fastapi import Request
from sqlalchemy.engine import Engine
from sqlalchemy.pool import Pool
from sqlmodel import Session, SQLModel, create_engine

from planify.core.config import settings
from planify.core.logging import get_logger

logger = get_logger(__name__)


class Database:
    """Owns the engine (and its connection pool) shared by every request."""

    def __init__(
        self,
        url: str,
        *,
        timeout: float = 5.0,
        echo: bool = False,
        poolclass: Optional[type[Pool]] = None,
    ) -> None:
        self.url = url
        self.timeout = timeout

        kwargs: dict[str, Any] = {"echo": echo}
        if poolclass is not None:
            kwargs["poolclass"] = poolclass

        if url.startswith("sqlite"):
            # SQLite-specific configuration; "timeout" bounds waits on the file lock
            kwargs["connect_args"] = {"check_same_thread": False, "timeout": timeout}
        else:
            # pool_pre_ping ensures connections are alive before using them
            kwargs.update(
                pool_pre_ping=True,
                pool_size=5,
                max_overflow=10,
                pool_timeout=timeout,
                connect_args={"connect_timeout": max(1, int(timeout))},
            )

        self.engine: Engine = create_engine(url, **kwargs)

    @classmethod
    def from_settings(cls) -> "Database":
        return cls(
            settings.SQLALCHEMY_DATABASE_URI,
            timeout=settings.DB_TIMEOUT_SECONDS,
            echo=settings.DEBUG,
        )

    def init(self) -> None:
        """Create missing tables (and the SQLite file's directory)."""
        database_path = self.engine.url.database
        if self.engine.url.get_backend_name() == "sqlite" and database_path and database_path != ":memory:":
            Path(database_path).parent.mkdir(parents=True, exist_ok=True)

        logger.info("Creating database tables...")
        SQLModel.metadata.create_all(self.engine)

    def dispose(self) -> None:
        """Close every pooled connection."""
        logger.info("Disposing database connection pool")
        self.engine.dispose()

    def session(self) -> Session:
        return Session(self.engine)


def get_session(request: Request) -> Generator[Session, None, None]:
    """
    Dependency that provides a database session for FastAPI routes.

    Yields:
        Database session instance
    """
    database: Database = request.app.state.database
    with database.session() as session:
        yield session
