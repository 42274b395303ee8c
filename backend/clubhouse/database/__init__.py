"""
Database engine, session factory, and metadata shared across the application.
"""

from __future__ import annotations

import logging
import random
import time
from typing import Callable, Generator, TypeVar

from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from ..core.config import settings
from ..core.exceptions import RepositoryException
from .engines import build_engine

logger = logging.getLogger(__name__)

engine: Engine = build_engine(settings.database_url)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine, expire_on_commit=False)

Base = declarative_base()


def get_db() -> Generator[Session, None, None]:
    """Get database session with proper cleanup."""
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def init_db(bind: Engine | None = None) -> None:
    """Create all tables on ``bind`` (defaults to the application engine)."""
    from .. import models  # noqa: F401  registers mappers on Base

    Base.metadata.create_all(bind=bind or engine)


T = TypeVar("T")
_RETRYABLE_ERROR_SNIPPETS = (
    "server closed the connection",
    "ssl connection has been closed unexpectedly",
    "could not connect to server",
    "database is locked",
)


def _operational_error(exc: Exception) -> OperationalError | None:
    if isinstance(exc, OperationalError):
        return exc
    if isinstance(exc.__cause__, OperationalError):
        return exc.__cause__
    return None


def _is_retryable_db_error(exc: OperationalError) -> bool:
    message = str(exc).lower()
    return any(snippet in message for snippet in _RETRYABLE_ERROR_SNIPPETS)


def _retry_delay(attempt: int) -> float:
    base = 0.1 * (2 ** (attempt - 1))
    return base + random.uniform(0, 0.05 * attempt)


def with_db_retry(
    op_name: str,
    func: Callable[[], T],
    *,
    max_attempts: int | None = None,
    on_retry: Callable[[], None] | None = None,
) -> T:
    """
    Execute a read-only DB operation with retries for transient disconnects.

    Never wrap mutating operations: retrying a non-idempotent write could
    apply it twice.
    """
    attempts = max_attempts or settings.db_retry_attempts
    attempt = 1
    while True:
        try:
            return func()
        except (OperationalError, RepositoryException) as exc:
            operational = _operational_error(exc)
            if (
                operational is None
                or attempt >= attempts
                or not _is_retryable_db_error(operational)
            ):
                raise

            delay = _retry_delay(attempt)
            logger.warning(
                "Transient DB failure detected, retrying",
                extra={
                    "event": "db_retry",
                    "op": op_name,
                    "attempt": attempt,
                    "delay": delay,
                    "error": str(exc),
                },
            )
            if on_retry is not None:
                on_retry()
            time.sleep(delay)
            attempt += 1


__all__ = [
    "Base",
    "SessionLocal",
    "engine",
    "get_db",
    "init_db",
    "with_db_retry",
]
