# backend/clubhouse/repositories/date_override_repository.py
"""Data access for per-date overrides and instructor assignments."""

from datetime import date
from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.date_override import DateOverride, InstructorAssignment
from .base_repository import BaseRepository


class DateOverrideRepository(BaseRepository[DateOverride]):
    def __init__(self, db: Session):
        super().__init__(db, DateOverride)

    def get_for_class_date(self, class_id: str, override_date: date) -> Optional[DateOverride]:
        return self.find_one_by(recurring_class_id=class_id, override_date=override_date)

    def get_map_for_range(
        self, start_date: date, end_date: date
    ) -> Dict[Tuple[str, date], DateOverride]:
        """Overrides in [start_date, end_date] keyed by (class id, date)."""
        return {
            (row.recurring_class_id, row.override_date): row
            for row in self.list_in_range(start_date, end_date)
        }

    def list_in_range(self, start_date: date, end_date: date) -> List[DateOverride]:
        try:
            return (
                self.db.query(DateOverride)
                .filter(DateOverride.override_date >= start_date, DateOverride.override_date <= end_date)
                .order_by(DateOverride.override_date)
                .all()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error listing overrides {start_date}..{end_date}: {str(e)}")
            raise RepositoryException(f"Failed to list overrides: {str(e)}") from e


class InstructorAssignmentRepository(BaseRepository[InstructorAssignment]):
    def __init__(self, db: Session):
        super().__init__(db, InstructorAssignment)

    def get_assignment(
        self, class_id: str, assignment_date: Optional[date]
    ) -> Optional[InstructorAssignment]:
        try:
            query = self.db.query(InstructorAssignment).filter(
                InstructorAssignment.recurring_class_id == class_id
            )
            if assignment_date is None:
                query = query.filter(InstructorAssignment.assignment_date.is_(None))
            else:
                query = query.filter(InstructorAssignment.assignment_date == assignment_date)
            return query.first()
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting instructor assignment: {str(e)}")
            raise RepositoryException(f"Failed to get instructor assignment: {str(e)}") from e

    def resolve_names(
        self, class_ids: Iterable[str], start_date: date, end_date: date
    ) -> Tuple[Dict[str, str], Dict[Tuple[str, date], str]]:
        """
        Return (standing defaults by class, dated assignments by (class, date)).

        A dated assignment wins over the standing default for its date.
        """
        ids = list(set(class_ids))
        if not ids:
            return {}, {}
        try:
            rows = (
                self.db.query(InstructorAssignment)
                .filter(
                    InstructorAssignment.recurring_class_id.in_(ids),
                    or_(
                        InstructorAssignment.assignment_date.is_(None),
                        InstructorAssignment.assignment_date.between(start_date, end_date),
                    ),
                )
                .all()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error resolving instructor assignments: {str(e)}")
            raise RepositoryException(f"Failed to resolve instructor assignments: {str(e)}") from e

        defaults: Dict[str, str] = {}
        dated: Dict[Tuple[str, date], str] = {}
        for row in rows:
            if row.assignment_date is None:
                defaults[row.recurring_class_id] = row.instructor_name
            else:
                dated[(row.recurring_class_id, row.assignment_date)] = row.instructor_name
        return defaults, dated
