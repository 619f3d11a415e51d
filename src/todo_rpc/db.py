from __future__ import annotations

import logging
import os
from contextlib import contextmanager
from typing import Any, Dict, Generator

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Connection, Engine, make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import StaticPool

from .errors import StoreFailureError
from .models import metadata
from .settings import Settings

logger = logging.getLogger(__name__)


class ConnectionPool:
    """
    Pool of short-lived database connections backed by a SQLAlchemy Engine.

    The engine's pool is thread-safe and owns connection limits, queuing and
    stale connection detection, so a single instance is shared by all
    concurrent requests.
    """

    def __init__(
        self,
        database_url: str,
        pool_size: int = 5,
        max_overflow: int = 10,
        pool_timeout: float = 30.0,
        pool_recycle: int = 3600,
        echo: bool = False,
    ) -> None:
        url = make_url(database_url)
        kwargs: Dict[str, Any] = {"pool_pre_ping": True, "echo": echo}
        if url.get_backend_name() == "sqlite":
            # Connections are checked out from FastAPI's worker threads
            kwargs["connect_args"] = {"check_same_thread": False}
            if not url.database or url.database == ":memory:":
                # One shared connection, otherwise every thread sees its own empty database
                kwargs["poolclass"] = StaticPool
            else:
                os.makedirs(os.path.dirname(url.database) or ".", exist_ok=True)
                kwargs.update(pool_size=pool_size, max_overflow=max_overflow, pool_timeout=pool_timeout)
        else:
            kwargs.update(
                pool_size=pool_size,
                max_overflow=max_overflow,
                pool_timeout=pool_timeout,
                pool_recycle=pool_recycle,
            )
        self.engine: Engine = create_engine(url, **kwargs)

    @classmethod
    def from_settings(cls, settings: Settings) -> "ConnectionPool":
        return cls(
            settings.database_url,
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_timeout=settings.db_pool_timeout,
            pool_recycle=settings.db_pool_recycle,
            echo=settings.db_echo,
        )

    @contextmanager
    def connect(self) -> Generator[Connection, None, None]:
        """
        Check a connection out of the pool for the duration of the block.

        The connection goes back to the pool on every exit path. Work done in
        the block is committed when it exits normally and rolled back when it
        raises.

        Raises:
            StoreFailureError: if no connection can be obtained.
        """
        try:
            conn = self.engine.connect()
        except SQLAlchemyError as e:
            raise StoreFailureError("failed to connect to database", e) from e
        try:
            yield conn
            try:
                conn.commit()
            except SQLAlchemyError as e:
                raise StoreFailureError("failed to commit transaction", e) from e
        finally:
            conn.close()

    def create_schema(self) -> None:
        """Create the todo table if it does not exist yet."""
        try:
            metadata.create_all(self.engine)
        except SQLAlchemyError as e:
            raise StoreFailureError("failed to create todo table", e) from e

    def health_check(self) -> bool:
        """Check database connectivity (for the health endpoint)."""
        try:
            with self.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except (StoreFailureError, SQLAlchemyError) as e:
            logger.error("database health check failed: %s", e)
            return False

    def dispose(self) -> None:
        self.engine.dispose()
