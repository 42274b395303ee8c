"""Event publisher - hands committed domain events to registered handlers."""
from datetime import date, datetime
import logging
from typing import Any, Callable, Dict, List, Protocol

from ..monitoring.prometheus_metrics import prometheus_metrics

logger = logging.getLogger(__name__)


class Event(Protocol):
    """Protocol for event types."""

    def to_dict(self) -> Dict[str, Any]:
        ...


EventHandler = Callable[[str, Dict[str, Any]], None]


class EventPublisher:
    """
    Publishes domain events to in-process handlers.

    Publish only after the owning transaction has committed. Dispatch is
    fire-and-forget: a failing handler is logged and never reaches the caller.
    """

    def __init__(self) -> None:
        self._handlers: Dict[str, List[EventHandler]] = {}

    def subscribe(self, event_type: str, handler: EventHandler) -> None:
        self._handlers.setdefault(event_type, []).append(handler)

    def publish(self, event: Event) -> None:
        event_type = type(event).__name__
        payload = event.to_dict()

        # Serialise temporal values so handlers receive JSON-friendly payloads
        for key, value in payload.items():
            if isinstance(value, (datetime, date)):
                payload[key] = value.isoformat()

        for handler in self._handlers.get(event_type, []):
            try:
                handler(event_type, payload)
                prometheus_metrics.record_notification(event_type, "delivered")
            except Exception as exc:
                prometheus_metrics.record_notification(event_type, "failed")
                logger.error(
                    "Event handler failed for %s: %s",
                    event_type,
                    exc,
                    extra={"event_type": event_type},
                    exc_info=True,
                )

    def publish_all(self, events: List[Event]) -> None:
        for event in events:
            self.publish(event)
