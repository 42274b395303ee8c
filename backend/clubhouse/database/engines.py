"""Engine construction for PostgreSQL (production) and SQLite (development, tests)."""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.pool import QueuePool

from ..core.config import settings

logger = logging.getLogger(__name__)


def _postgres_engine_kwargs() -> dict[str, Any]:
    return {
        "poolclass": QueuePool,
        "pool_size": settings.db_pool_size,
        "max_overflow": settings.db_max_overflow,
        # Fail fast when the pool is exhausted instead of queueing requests
        "pool_timeout": settings.db_pool_timeout,
        "pool_pre_ping": True,
        "pool_recycle": 300,
        "connect_args": {
            "connect_timeout": 5,
            "options": "-c statement_timeout=15000",
            "application_name": "clubhouse_booking",
        },
    }


def _install_sqlite_serialization(engine: Engine) -> None:
    """
    Open every SQLite transaction with BEGIN IMMEDIATE.

    pysqlite defers BEGIN until the first write, so two connections can both
    read a seat count before either writes. Taking the write lock at BEGIN
    makes read-then-write sequences atomic across connections.
    """

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection: Any, _connection_record: Any) -> None:
        # Disable pysqlite's own transaction handling; BEGIN is emitted below
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn: Any) -> None:
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def build_engine(url: str, **overrides: Any) -> Engine:
    """Create an engine for ``url`` with the dialect-specific locking setup."""
    if url.startswith("sqlite"):
        kwargs: dict[str, Any] = {
            "connect_args": {"check_same_thread": False, "timeout": 30},
        }
        kwargs.update(overrides)
        engine = create_engine(url, **kwargs)
        _install_sqlite_serialization(engine)
        logger.debug("SQLite engine created with immediate transactions")
        return engine

    kwargs = _postgres_engine_kwargs()
    kwargs.update(overrides)
    return create_engine(url, **kwargs)
