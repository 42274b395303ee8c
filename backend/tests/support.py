# backend/tests/support.py
"""Shared constants and helpers for the test suite."""

from datetime import date, datetime, time, timedelta
from types import SimpleNamespace
from typing import Dict, Optional

import pytz
from sqlalchemy.orm import Session

from clubhouse.core.config import settings
from clubhouse.core.enums import RoleName
from clubhouse.core.identity import Actor
from clubhouse.events.publisher import EventPublisher
from clubhouse.services.admin_booking_service import AdminBookingService
from clubhouse.services.member_service import MemberService
from clubhouse.services.quota_service import QuotaService
from clubhouse.services.reservation_service import ReservationService
from clubhouse.services.schedule_management_service import ScheduleManagementService
from clubhouse.services.schedule_resolver import ScheduleResolver

CLUB_TZ = pytz.timezone(settings.club_timezone)

# Wednesday 5 March 2025, 09:00 club time; the booking window runs to Sunday 9 March
NOW = CLUB_TZ.localize(datetime(2025, 3, 5, 9, 0))
TODAY = NOW.date()
TOMORROW = TODAY + timedelta(days=1)
NEXT_MONDAY = date(2025, 3, 10)

MEMBER = Actor("member-1")
OTHER_MEMBER = Actor("member-2")
TRAINER = Actor("trainer-1", RoleName.TRAINER)
ADMIN = Actor("admin-1", RoleName.ADMIN)

EVENT_TYPES = ("ReservationCreated", "ReservationCancelled", "AttendanceMarked", "OccurrenceDisabled")


def club_time(day: date, hour: int, minute: int = 0) -> datetime:
    return CLUB_TZ.localize(datetime.combine(day, time(hour, minute)))


def identity_headers(actor: Actor) -> Dict[str, str]:
    return {"X-User-Id": actor.user_id, "X-User-Role": actor.role.value}


class FixedClock:
    """Callable clock pinned to one instant; tests move it with ``set``."""

    def __init__(self, moment: datetime):
        self.moment = moment

    def __call__(self) -> datetime:
        return self.moment

    def set(self, moment: datetime) -> None:
        self.moment = moment


def build_services(
    db: Session, publisher: Optional[EventPublisher], clock: FixedClock
) -> SimpleNamespace:
    """Wire the service graph on one session, the way the request dependencies do."""
    quota = QuotaService(db, publisher, clock)
    resolver = ScheduleResolver(db, clock)
    reservations = ReservationService(db, publisher, clock, resolver, quota)
    admin = AdminBookingService(db, publisher, clock, reservations)
    return SimpleNamespace(
        quota=quota,
        resolver=resolver,
        reservations=reservations,
        admin=admin,
        schedule=ScheduleManagementService(db, publisher, clock, admin),
        members=MemberService(db, publisher, clock, reservations),
    )
