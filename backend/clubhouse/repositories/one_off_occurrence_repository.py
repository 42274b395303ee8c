# backend/clubhouse/repositories/one_off_occurrence_repository.py
"""Data access for single-date classes."""

from datetime import date
from typing import List

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.one_off_occurrence import OneOffOccurrence
from .base_repository import BaseRepository


class OneOffOccurrenceRepository(BaseRepository[OneOffOccurrence]):
    def __init__(self, db: Session):
        super().__init__(db, OneOffOccurrence)

    def list_in_range(
        self, start_date: date, end_date: date, enabled_only: bool = True
    ) -> List[OneOffOccurrence]:
        try:
            query = self.db.query(OneOffOccurrence).filter(
                OneOffOccurrence.occurrence_date >= start_date,
                OneOffOccurrence.occurrence_date <= end_date,
            )
            if enabled_only:
                query = query.filter(OneOffOccurrence.is_enabled.is_(True))
            return query.order_by(
                OneOffOccurrence.occurrence_date,
                OneOffOccurrence.start_time,
                OneOffOccurrence.title,
            ).all()
        except SQLAlchemyError as e:
            self.logger.error(f"Error listing one-off classes {start_date}..{end_date}: {str(e)}")
            raise RepositoryException(f"Failed to list one-off classes: {str(e)}") from e
