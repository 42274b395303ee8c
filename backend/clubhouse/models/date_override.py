# backend/clubhouse/models/date_override.py
"""
Per-date modifications layered on top of a recurring template.

``DateOverride`` reshapes or cancels one occurrence; any null override
field falls back to the template. ``InstructorAssignment`` only swaps the
instructor, either as a standing default (no date) or for one date.
"""

from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Time,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import ulid

from ..database import Base


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


class DateOverride(Base):
    __tablename__ = "date_overrides"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    recurring_class_id = Column(
        String(26), ForeignKey("recurring_classes.id", ondelete="CASCADE"), nullable=False
    )
    override_date = Column(Date, nullable=False)

    start_time = Column(Time, nullable=True)
    end_time = Column(Time, nullable=True)
    instructor = Column(String(120), nullable=True)
    max_capacity = Column(Integer, nullable=True)

    is_cancelled = Column(Boolean, nullable=False, default=False)
    migrate_existing_bookings = Column(Boolean, nullable=False, default=True)
    notes = Column(Text, nullable=True)

    created_by_id = Column(String(64), nullable=True)
    created_at = Column(DateTime(timezone=True), default=_now_utc, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=_now_utc)

    recurring_class = relationship("RecurringClass", back_populates="overrides")

    __table_args__ = (
        UniqueConstraint("recurring_class_id", "override_date", name="uq_date_overrides_class_date"),
        CheckConstraint(
            "max_capacity IS NULL OR max_capacity >= 1", name="ck_date_overrides_capacity_positive"
        ),
        Index("idx_date_overrides_date", "override_date"),
    )

    @property
    def changes_time(self) -> bool:
        """True when the override moves the class away from its template times."""
        template = self.recurring_class
        if template is None:
            return self.start_time is not None or self.end_time is not None
        return (self.start_time is not None and self.start_time != template.start_time) or (
            self.end_time is not None and self.end_time != template.end_time
        )

    def __repr__(self) -> str:
        return (
            f"<DateOverride {self.id}: class={self.recurring_class_id} date={self.override_date} "
            f"cancelled={self.is_cancelled}>"
        )


class InstructorAssignment(Base):
    __tablename__ = "instructor_assignments"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    recurring_class_id = Column(
        String(26), ForeignKey("recurring_classes.id", ondelete="CASCADE"), nullable=False
    )
    # NULL = standing default for every date of the template
    assignment_date = Column(Date, nullable=True)
    instructor_name = Column(String(120), nullable=False)

    created_at = Column(DateTime(timezone=True), default=_now_utc, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=_now_utc)

    recurring_class = relationship("RecurringClass", back_populates="instructor_assignments")

    __table_args__ = (
        # NULLs are distinct in plain unique constraints, so split into two partial indexes
        Index(
            "uq_instructor_assignments_default",
            "recurring_class_id",
            unique=True,
            postgresql_where=text("assignment_date IS NULL"),
            sqlite_where=text("assignment_date IS NULL"),
        ),
        Index(
            "uq_instructor_assignments_dated",
            "recurring_class_id",
            "assignment_date",
            unique=True,
            postgresql_where=text("assignment_date IS NOT NULL"),
            sqlite_where=text("assignment_date IS NOT NULL"),
        ),
    )
