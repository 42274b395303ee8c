# backend/clubhouse/repositories/occurrence_lock_repository.py
"""Row locks that serialise seat allocation for one (occurrence, date)."""

from datetime import date

from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..domain.occurrence import OccurrenceRef
from ..models.occurrence_lock import OccurrenceLock
from .base_repository import BaseRepository


class OccurrenceLockRepository(BaseRepository[OccurrenceLock]):
    def __init__(self, db: Session):
        super().__init__(db, OccurrenceLock)

    def acquire(self, ref: OccurrenceRef, lock_date: date) -> OccurrenceLock:
        """
        Hold the capacity lock for (ref, lock_date) until the transaction ends.

        Must run before the seat count is read inside the same transaction.
        """
        values = {"occurrence_key": ref.lock_key, "lock_date": lock_date}
        try:
            if self.dialect_name == "postgresql":
                self.db.execute(pg_insert(OccurrenceLock).values(**values).on_conflict_do_nothing())
            elif self.dialect_name == "sqlite":
                self.db.execute(
                    sqlite_insert(OccurrenceLock).values(**values).on_conflict_do_nothing()
                )
            else:
                try:
                    with self.db.begin_nested():
                        self.db.add(OccurrenceLock(**values))
                except IntegrityError:
                    pass

            lock = (
                self.db.query(OccurrenceLock)
                .filter(
                    OccurrenceLock.occurrence_key == ref.lock_key,
                    OccurrenceLock.lock_date == lock_date,
                )
                .with_for_update()
                .one()
            )
            self.logger.debug("Acquired occurrence lock %s %s", ref.lock_key, lock_date)
            return lock
        except SQLAlchemyError as e:
            self.logger.error(f"Error acquiring occurrence lock {ref} {lock_date}: {str(e)}")
            raise RepositoryException(f"Failed to acquire occurrence lock: {str(e)}") from e
