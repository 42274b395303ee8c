"""
Timezone utilities for the club.

All class times are wall-clock times in the club's timezone; "today" and
"now" for booking-window and cancellation checks are evaluated there too.
"""

from datetime import date, datetime, time, timezone

import pytz

from .config import settings


def get_club_timezone() -> pytz.BaseTzInfo:
    return pytz.timezone(settings.club_timezone)


def club_now() -> datetime:
    """Current timezone-aware datetime in the club's timezone."""
    return datetime.now(get_club_timezone())


def club_today() -> date:
    return club_now().date()


def localize_class_start(class_date: date, start_time: time) -> datetime:
    """Combine a class date and wall-clock start into an aware datetime."""
    tz = get_club_timezone()
    return tz.localize(datetime.combine(class_date, start_time))


def to_club_time(dt: datetime) -> datetime:
    """Convert an aware (or naive UTC) datetime into the club's timezone."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(get_club_timezone())


def minutes_between(start: datetime, end: datetime) -> int:
    """Whole minutes from ``start`` to ``end`` (floored; negative when end is earlier)."""
    return int((end - start).total_seconds() // 60)
