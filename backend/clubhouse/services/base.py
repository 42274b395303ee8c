# backend/clubhouse/services/base.py
"""
Base Service Pattern for the club booking platform.

Provides common functionality for all service classes including:
- Transaction management (commit, rollback, error translation)
- Post-commit domain event dispatch
- Logging
- Performance monitoring
"""

from contextlib import contextmanager
from datetime import datetime
from functools import wraps
import logging
import time
from typing import Any, Callable, Dict, Iterator, List, Optional, TypeVar, cast

from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import (
    RepositoryException,
    ServiceException,
    TransientInfrastructureException,
)
from ..core.timezone_utils import club_now
from ..database import with_db_retry
from ..events.publisher import Event, EventPublisher
from ..monitoring.prometheus_metrics import prometheus_metrics

logger = logging.getLogger(__name__)

T = TypeVar("T")
Clock = Callable[[], datetime]


def _is_transient(exc: BaseException) -> bool:
    """True when ``exc`` (or the error it wraps) is a connectivity/locking failure."""
    if isinstance(exc, OperationalError):
        return True
    cause = exc.__cause__
    return isinstance(cause, OperationalError)


class BaseService:
    """
    Base class for all service layer components.

    Provides common patterns for:
    - Database session management
    - Logging
    - Transaction handling
    - Performance monitoring
    """

    # Class-level metrics storage
    _class_metrics: Dict[str, Dict[str, Dict[str, float]]] = {}

    def __init__(
        self,
        db: Session,
        event_publisher: Optional[EventPublisher] = None,
        clock: Optional[Clock] = None,
    ):
        """
        Initialize base service.

        Args:
            db: Database session
            event_publisher: Receives domain events after commit
            clock: Returns the current club-local time (injectable for tests)
        """
        self.db = db
        self.event_publisher = event_publisher
        self.clock: Clock = clock or club_now
        self.logger = logging.getLogger(self.__class__.__name__)
        self._pending_events: List[Event] = []

    def now(self) -> datetime:
        return self.clock()

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        """
        Context manager for database transactions.

        Usage:
            with self.transaction():
                # Do multiple operations
                self.db.add(entity)
                # Note: commit is handled automatically

        Events queued with ``emit`` inside the block are published only
        after the commit succeeds; a rollback discards them.
        """
        try:
            yield self.db
            self.db.commit()
            self.logger.debug("Transaction committed successfully")
        except (SQLAlchemyError, RepositoryException) as e:
            self.logger.error(f"Transaction failed: {str(e)}")
            self.db.rollback()
            self._pending_events.clear()
            if _is_transient(e):
                raise TransientInfrastructureException() from e
            raise ServiceException(f"Database operation failed: {str(e)}") from e
        except BaseException:
            # Includes client disconnects (CancelledError, KeyboardInterrupt)
            self.db.rollback()
            self._pending_events.clear()
            raise
        self._flush_events()

    def read(self, operation_name: str, func: Callable[[], T]) -> T:
        """
        Run a read-only query, retrying transient disconnects.

        The session is rolled back between attempts. A successful read ends
        its transaction so the snapshot (and any SQLite write lock) never
        outlives the call; loaded objects stay usable since commits do not
        expire them.
        """
        try:
            result = with_db_retry(operation_name, func, on_retry=self.db.rollback)
            if self.db.in_transaction():
                self.db.commit()
            return result
        except (SQLAlchemyError, RepositoryException) as e:
            self.db.rollback()
            if _is_transient(e):
                raise TransientInfrastructureException() from e
            raise ServiceException(f"Database read failed: {str(e)}") from e

    def emit(self, event: Event) -> None:
        """Queue a domain event for dispatch once the current transaction commits."""
        self._pending_events.append(event)

    def _flush_events(self) -> None:
        events, self._pending_events = self._pending_events, []
        if self.event_publisher is None or not events:
            return
        self.event_publisher.publish_all(events)

    @staticmethod
    def measure_operation(operation_name: str) -> Callable:
        """
        Decorator to measure operation performance.

        Usage:
            @BaseService.measure_operation("create_reservation")
            def create_reservation(self, data):
                # Method implementation

        Args:
            operation_name: Name of the operation for metrics

        Returns:
            Decorator function
        """

        F = TypeVar("F", bound=Callable[..., Any])

        def decorator(func: F) -> F:
            @wraps(func)
            def wrapper(self, *args, **kwargs):
                start_time = time.time()
                success = False
                error_type = None

                try:
                    result = func(self, *args, **kwargs)
                    success = True
                    return result
                except Exception as e:
                    error_type = type(e).__name__
                    raise
                finally:
                    elapsed = time.time() - start_time

                    if hasattr(self, "_record_metric"):
                        self._record_metric(operation_name, elapsed, success)

                    # Only log if it's actually slow
                    if elapsed > 1.0 and hasattr(self, "logger"):
                        self.logger.warning(
                            f"Slow operation detected: {operation_name} took {elapsed:.2f}s"
                        )

                    try:
                        prometheus_metrics.record_service_operation(
                            service=self.__class__.__name__,
                            operation=operation_name,
                            duration=elapsed,
                            status="success" if success else "error",
                            error_type=error_type,
                        )
                    except Exception:
                        # Don't let metrics collection break the operation
                        logger.debug("Failed to record service metric", exc_info=True)

            return cast(F, wrapper)

        return decorator

    def log_operation(self, operation: str, **context: Any) -> None:
        """
        Log an operation with context.

        Args:
            operation: Operation name
            **context: Additional context to log
        """
        self.logger.info(f"Operation: {operation}", extra={"operation": operation, **context})

    def _record_metric(self, operation: str, elapsed: float, success: bool) -> None:
        class_name = self.__class__.__name__
        metrics = BaseService._class_metrics.setdefault(class_name, {})

        if operation not in metrics:
            metrics[operation] = {
                "count": 0,
                "total_time": 0.0,
                "success_count": 0,
                "failure_count": 0,
                "min_time": float("inf"),
                "max_time": 0.0,
            }

        metric_data = metrics[operation]
        metric_data["count"] += 1
        metric_data["total_time"] += elapsed
        metric_data["min_time"] = min(metric_data["min_time"], elapsed)
        metric_data["max_time"] = max(metric_data["max_time"], elapsed)

        if success:
            metric_data["success_count"] += 1
        else:
            metric_data["failure_count"] += 1

    def get_metrics(self) -> Dict[str, Any]:
        """
        Get performance metrics for this service.

        Returns:
            Dictionary with metrics for each measured operation
        """
        result: Dict[str, Any] = {}
        for operation, data in BaseService._class_metrics.get(self.__class__.__name__, {}).items():
            count = data["count"]
            if count == 0:
                continue
            result[operation] = {
                "count": count,
                "avg_time": data["total_time"] / count,
                "min_time": data["min_time"],
                "max_time": data["max_time"],
                "success_rate": data["success_count"] / count,
            }
        return result
