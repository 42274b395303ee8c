# backend/clubhouse/repositories/monthly_quota_repository.py
"""
Monthly quota ledger persistence.

Rows are created with insert-if-absent on the (user, month, year) unique
key, so concurrent first access never produces duplicates.
"""

from __future__ import annotations

from typing import Any, List, Optional

from sqlalchemy import func, insert
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
import ulid

from ..core.exceptions import RepositoryException
from ..models.monthly_quota import MonthlyQuota
from .base_repository import BaseRepository

_UNIQUE_KEY = ["user_id", "month", "year"]


class MonthlyQuotaRepository(BaseRepository[MonthlyQuota]):
    def __init__(self, db: Session):
        super().__init__(db, MonthlyQuota)

    def get_for_period(
        self, user_id: str, month: int, year: int, for_update: bool = False
    ) -> Optional[MonthlyQuota]:
        try:
            query = self.db.query(MonthlyQuota).filter(
                MonthlyQuota.user_id == user_id,
                MonthlyQuota.month == month,
                MonthlyQuota.year == year,
            )
            if for_update:
                query = query.with_for_update()
            return query.first()
        except SQLAlchemyError as e:
            self.logger.error(f"Error loading quota for {user_id} {year}-{month}: {str(e)}")
            raise RepositoryException(f"Failed to load monthly quota: {str(e)}") from e

    def insert_if_absent(
        self, user_id: str, month: int, year: int, remaining: int, maximum: int
    ) -> bool:
        """Insert the ledger row unless one exists. Returns True when a row was created."""
        values: dict[str, Any] = {
            "id": str(ulid.ULID()),
            "user_id": user_id,
            "month": month,
            "year": year,
            "remaining_classes": remaining,
            "max_monthly_classes": maximum,
        }
        try:
            if self.dialect_name == "postgresql":
                stmt = pg_insert(MonthlyQuota).values(**values).on_conflict_do_nothing(
                    index_elements=_UNIQUE_KEY
                )
                return bool(self.db.execute(stmt).rowcount)

            if self.dialect_name == "sqlite":
                stmt = sqlite_insert(MonthlyQuota).values(**values).on_conflict_do_nothing(
                    index_elements=_UNIQUE_KEY
                )
                return bool(self.db.execute(stmt).rowcount)

            # Generic fallback: savepoint so a duplicate does not poison the transaction
            try:
                with self.db.begin_nested():
                    self.db.execute(insert(MonthlyQuota).values(**values))
                return True
            except IntegrityError:
                return False
        except SQLAlchemyError as e:
            self.logger.error(f"Error creating quota for {user_id} {year}-{month}: {str(e)}")
            raise RepositoryException(f"Failed to create monthly quota: {str(e)}") from e

    def list_for_period(self, month: int, year: int) -> List[MonthlyQuota]:
        try:
            return (
                self.db.query(MonthlyQuota)
                .filter(MonthlyQuota.month == month, MonthlyQuota.year == year)
                .order_by(MonthlyQuota.user_id)
                .all()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error listing quotas for {year}-{month}: {str(e)}")
            raise RepositoryException(f"Failed to list monthly quotas: {str(e)}") from e

    def list_known_user_ids(self) -> List[str]:
        """Every user that has ever held a ledger row."""
        try:
            rows = self.db.query(MonthlyQuota.user_id).distinct().all()
            return sorted(row[0] for row in rows)
        except SQLAlchemyError as e:
            self.logger.error(f"Error listing ledger users: {str(e)}")
            raise RepositoryException(f"Failed to list ledger users: {str(e)}") from e

    def latest_for_user(self, user_id: str) -> Optional[MonthlyQuota]:
        """Most recent ledger row for ``user_id`` (by year, month)."""
        try:
            return (
                self.db.query(MonthlyQuota)
                .filter(MonthlyQuota.user_id == user_id)
                .order_by(MonthlyQuota.year.desc(), MonthlyQuota.month.desc())
                .first()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error loading latest quota for {user_id}: {str(e)}")
            raise RepositoryException(f"Failed to load monthly quota: {str(e)}") from e

    def period_stats(self, month: int, year: int) -> dict[str, Any]:
        try:
            total, with_classes, average = (
                self.db.query(
                    func.count(MonthlyQuota.id),
                    func.count(MonthlyQuota.id).filter(MonthlyQuota.remaining_classes > 0),
                    func.avg(MonthlyQuota.remaining_classes),
                )
                .filter(MonthlyQuota.month == month, MonthlyQuota.year == year)
                .one()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error computing quota stats for {year}-{month}: {str(e)}")
            raise RepositoryException(f"Failed to compute quota stats: {str(e)}") from e
        total = int(total or 0)
        with_classes = int(with_classes or 0)
        return {
            "total_users": total,
            "users_with_classes": with_classes,
            "users_without_classes": total - with_classes,
            "average_remaining": round(float(average), 2) if average is not None else 0.0,
        }
