# backend/clubhouse/models/occurrence_lock.py
"""
Lock rows that serialise capacity checks per (occurrence, date).

A reservation inserts the row if absent and then selects it FOR UPDATE, so
concurrent reservations for the same seat pool queue behind one another.
"""

from datetime import datetime, timezone

from sqlalchemy import Column, Date, DateTime, String
from sqlalchemy.sql import func

from ..database import Base


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


class OccurrenceLock(Base):
    __tablename__ = "occurrence_locks"

    occurrence_key = Column(String(64), primary_key=True)
    lock_date = Column(Date, primary_key=True)
    created_at = Column(DateTime(timezone=True), default=_now_utc, server_default=func.now())
