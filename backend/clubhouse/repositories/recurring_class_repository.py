# backend/clubhouse/repositories/recurring_class_repository.py
"""Data access for weekly recurring class templates."""

from typing import Iterable, List

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.recurring_class import RecurringClass
from .base_repository import BaseRepository


class RecurringClassRepository(BaseRepository[RecurringClass]):
    def __init__(self, db: Session):
        super().__init__(db, RecurringClass)

    def get_active_for_weekdays(self, weekdays: Iterable[int]) -> List[RecurringClass]:
        """Active templates scheduled on any of ``weekdays`` (0=Monday)."""
        days = sorted(set(weekdays))
        if not days:
            return []
        try:
            return (
                self.db.query(RecurringClass)
                .filter(RecurringClass.day_of_week.in_(days), RecurringClass.is_active.is_(True))
                .order_by(RecurringClass.start_time, RecurringClass.title)
                .all()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting active classes for weekdays {days}: {str(e)}")
            raise RepositoryException(f"Failed to get recurring classes: {str(e)}") from e

    def list_classes(self, include_inactive: bool = True) -> List[RecurringClass]:
        try:
            query = self.db.query(RecurringClass)
            if not include_inactive:
                query = query.filter(RecurringClass.is_active.is_(True))
            return query.order_by(
                RecurringClass.day_of_week, RecurringClass.start_time, RecurringClass.title
            ).all()
        except SQLAlchemyError as e:
            self.logger.error(f"Error listing recurring classes: {str(e)}")
            raise RepositoryException(f"Failed to list recurring classes: {str(e)}") from e
