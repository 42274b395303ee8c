# backend/clubhouse/services/notification_service.py
"""
Notification Service for the club booking platform.

Turns committed domain events into member-facing messages. Delivery
channels (email, push) live outside this service: messages are handed to
an optional ``sender`` callable and always logged. Handlers run after the
transaction commits and a failure here never affects the reservation.
"""

import logging
from typing import Any, Callable, Dict, List, Optional

from ..core.config import settings
from ..events.publisher import EventPublisher

logger = logging.getLogger(__name__)

Sender = Callable[[str, str, str], None]


class NotificationService:
    """Formats reservation notifications and forwards them to a sender."""

    def __init__(self, sender: Optional[Sender] = None):
        self.sender = sender
        self.logger = logging.getLogger(self.__class__.__name__)

    def register(self, publisher: EventPublisher) -> None:
        """Subscribe the notification handlers unless notifications are disabled."""
        if not settings.notifications_enabled:
            self.logger.info("Notifications disabled; handlers not registered")
            return
        publisher.subscribe("ReservationCreated", self.on_reservation_created)
        publisher.subscribe("ReservationCancelled", self.on_reservation_cancelled)
        publisher.subscribe("AttendanceMarked", self.on_attendance_marked)
        publisher.subscribe("OccurrenceDisabled", self.on_occurrence_disabled)

    def on_reservation_created(self, event_type: str, payload: Dict[str, Any]) -> None:
        self._send(
            payload["user_id"],
            "Reservation confirmed",
            f"Your place in {payload['title']} on {payload['booking_date']} is confirmed. "
            f"Classes left this month: {payload['remaining_classes']}.",
        )

    def on_reservation_cancelled(self, event_type: str, payload: Dict[str, Any]) -> None:
        if payload.get("forced"):
            body = (
                f"Your reservation for {payload['booking_date']} was cancelled by the club"
                f"{': ' + payload['reason'] if payload.get('reason') else ''}. "
                "The class has been returned to your monthly allowance."
            )
        else:
            body = f"Your reservation for {payload['booking_date']} has been cancelled."
        self._send(payload["user_id"], "Reservation cancelled", body)

    def on_attendance_marked(self, event_type: str, payload: Dict[str, Any]) -> None:
        if not payload.get("penalty_applied"):
            return
        self._send(
            payload["user_id"],
            "Missed class",
            "You were marked absent from a reserved class; one class was deducted "
            "from your monthly allowance.",
        )

    def on_occurrence_disabled(self, event_type: str, payload: Dict[str, Any]) -> None:
        # Members get individual ReservationCancelled messages; staff get a summary
        affected: List[str] = payload.get("affected_user_ids") or []
        self.logger.info(
            "Class %s on %s cancelled, %d member(s) notified",
            payload["occurrence_key"],
            payload["occurrence_date"],
            len(affected),
        )

    def _send(self, user_id: str, subject: str, body: str) -> None:
        self.logger.info(
            "Notification queued",
            extra={"user_id": user_id, "subject": subject},
        )
        if self.sender is not None:
            self.sender(user_id, subject, body)
