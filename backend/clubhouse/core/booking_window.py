"""
Weekly-release booking window.

Members may book from today through the end of the current week
(Monday-Sunday). On the release weekday (Sunday by default) the following
week opens as well, so the horizon extends to next Sunday.
"""

from dataclasses import dataclass
from datetime import date, timedelta

SUNDAY = 6


@dataclass(frozen=True)
class BookingWindow:
    first_day: date
    last_day: date

    def contains(self, day: date) -> bool:
        return self.first_day <= day <= self.last_day

    def days(self) -> list[date]:
        span = (self.last_day - self.first_day).days
        return [self.first_day + timedelta(days=offset) for offset in range(span + 1)]


def end_of_week(day: date) -> date:
    """The Sunday closing the Monday-Sunday week that contains ``day``."""
    return day + timedelta(days=SUNDAY - day.weekday())


def booking_window_for(today: date, release_weekday: int = SUNDAY) -> BookingWindow:
    last_day = end_of_week(today)
    if today.weekday() == release_weekday:
        last_day = end_of_week(today + timedelta(days=7))
    return BookingWindow(first_day=today, last_day=last_day)


def is_bookable_date(day: date, today: date, release_weekday: int = SUNDAY) -> bool:
    return booking_window_for(today, release_weekday).contains(day)
