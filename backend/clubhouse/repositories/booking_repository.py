# backend/clubhouse/repositories/booking_repository.py
"""
Booking Repository.

This repository handles:
- Confirmed-seat counting per (occurrence, date)
- Duplicate-booking lookups per (user, occurrence, date)
- Rosters and per-user booking history
- Calendar fill counts across many dates
"""

from datetime import date
from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Query, Session

from ..core.enums import BookingStatus
from ..core.exceptions import RepositoryException
from ..domain.occurrence import OccurrenceKind, OccurrenceRef
from ..models.booking import Booking
from .base_repository import BaseRepository

_CONFIRMED = BookingStatus.CONFIRMED.value


def _ref_filter(query: Query, ref: OccurrenceRef) -> Query:
    if ref.kind == OccurrenceKind.RECURRING:
        return query.filter(Booking.recurring_class_id == ref.id)
    return query.filter(Booking.one_off_occurrence_id == ref.id)


def ref_columns(ref: OccurrenceRef) -> Dict[str, Optional[str]]:
    """Column values pointing a new booking row at ``ref``."""
    if ref.kind == OccurrenceKind.RECURRING:
        return {"recurring_class_id": ref.id, "one_off_occurrence_id": None}
    return {"recurring_class_id": None, "one_off_occurrence_id": ref.id}


class BookingRepository(BaseRepository[Booking]):
    def __init__(self, db: Session):
        super().__init__(db, Booking)

    def count_confirmed(self, ref: OccurrenceRef, booking_date: date) -> int:
        """Number of confirmed bookings holding a seat in this occurrence."""
        try:
            query = self.db.query(func.count(Booking.id)).filter(
                Booking.booking_date == booking_date,
                Booking.status == _CONFIRMED,
            )
            return int(_ref_filter(query, ref).scalar() or 0)
        except SQLAlchemyError as e:
            self.logger.error(f"Error counting bookings for {ref} on {booking_date}: {str(e)}")
            raise RepositoryException(f"Failed to count bookings: {str(e)}") from e

    def find_confirmed(
        self, user_id: str, ref: OccurrenceRef, booking_date: date
    ) -> Optional[Booking]:
        try:
            query = self.db.query(Booking).filter(
                Booking.user_id == user_id,
                Booking.booking_date == booking_date,
                Booking.status == _CONFIRMED,
            )
            return _ref_filter(query, ref).first()
        except SQLAlchemyError as e:
            self.logger.error(f"Error finding booking for user {user_id}: {str(e)}")
            raise RepositoryException(f"Failed to find booking: {str(e)}") from e

    def list_confirmed_for_occurrence(
        self, ref: OccurrenceRef, booking_date: date, for_update: bool = False
    ) -> List[Booking]:
        """Roster for one occurrence, oldest booking first."""
        try:
            query = self.db.query(Booking).filter(
                Booking.booking_date == booking_date,
                Booking.status == _CONFIRMED,
            )
            query = _ref_filter(query, ref).order_by(Booking.created_at, Booking.id)
            if for_update:
                query = query.with_for_update()
            return query.all()
        except SQLAlchemyError as e:
            self.logger.error(f"Error listing roster for {ref} on {booking_date}: {str(e)}")
            raise RepositoryException(f"Failed to list bookings: {str(e)}") from e

    def count_confirmed_by_occurrence(
        self, dates: Iterable[date]
    ) -> Dict[Tuple[OccurrenceRef, date], int]:
        """Confirmed seat counts for every occurrence on the given dates."""
        day_list = sorted(set(dates))
        if not day_list:
            return {}
        try:
            rows = (
                self.db.query(
                    Booking.recurring_class_id,
                    Booking.one_off_occurrence_id,
                    Booking.booking_date,
                    func.count(Booking.id),
                )
                .filter(Booking.booking_date.in_(day_list), Booking.status == _CONFIRMED)
                .group_by(
                    Booking.recurring_class_id,
                    Booking.one_off_occurrence_id,
                    Booking.booking_date,
                )
                .all()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error counting bookings by occurrence: {str(e)}")
            raise RepositoryException(f"Failed to count bookings: {str(e)}") from e

        counts: Dict[Tuple[OccurrenceRef, date], int] = {}
        for recurring_id, one_off_id, booking_date, count in rows:
            ref = (
                OccurrenceRef.recurring(recurring_id)
                if recurring_id is not None
                else OccurrenceRef.one_off(one_off_id)
            )
            counts[(ref, booking_date)] = int(count)
        return counts

    def list_for_user(
        self,
        user_id: str,
        status: Optional[BookingStatus] = None,
        from_date: Optional[date] = None,
        for_update: bool = False,
    ) -> List[Booking]:
        try:
            query = self.db.query(Booking).filter(Booking.user_id == user_id)
            if status is not None:
                query = query.filter(Booking.status == status.value)
            if from_date is not None:
                query = query.filter(Booking.booking_date >= from_date)
            query = query.order_by(Booking.booking_date, Booking.created_at)
            if for_update:
                query = query.with_for_update()
            return query.all()
        except SQLAlchemyError as e:
            self.logger.error(f"Error listing bookings for user {user_id}: {str(e)}")
            raise RepositoryException(f"Failed to list bookings: {str(e)}") from e

    def count_confirmed_per_date(
        self, ref: OccurrenceRef, from_date: date
    ) -> Dict[date, int]:
        """Confirmed seats of one occurrence for every date on or after ``from_date``."""
        try:
            query = self.db.query(Booking.booking_date, func.count(Booking.id)).filter(
                Booking.booking_date >= from_date,
                Booking.status == _CONFIRMED,
            )
            rows = _ref_filter(query, ref).group_by(Booking.booking_date).all()
            return {booking_date: int(count) for booking_date, count in rows}
        except SQLAlchemyError as e:
            self.logger.error(f"Error counting future bookings for {ref}: {str(e)}")
            raise RepositoryException(f"Failed to count bookings: {str(e)}") from e

    def has_any_for_occurrence(self, ref: OccurrenceRef) -> bool:
        """True if any booking row, in any state, references ``ref``."""
        try:
            return _ref_filter(self.db.query(Booking.id), ref).first() is not None
        except SQLAlchemyError as e:
            self.logger.error(f"Error checking bookings for {ref}: {str(e)}")
            raise RepositoryException(f"Failed to check bookings: {str(e)}") from e
