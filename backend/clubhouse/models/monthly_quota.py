# backend/clubhouse/models/monthly_quota.py
"""Per-user, per-month class allowance ledger row."""

from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, Column, DateTime, Integer, String, UniqueConstraint
from sqlalchemy.sql import func
import ulid

from ..database import Base


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


class MonthlyQuota(Base):
    __tablename__ = "monthly_quotas"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    user_id = Column(String(64), nullable=False, index=True)
    month = Column(Integer, nullable=False)
    year = Column(Integer, nullable=False)
    remaining_classes = Column(Integer, nullable=False)
    max_monthly_classes = Column(Integer, nullable=False)

    created_at = Column(DateTime(timezone=True), default=_now_utc, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=_now_utc)

    __table_args__ = (
        UniqueConstraint("user_id", "month", "year", name="uq_monthly_quotas_user_period"),
        CheckConstraint("month BETWEEN 1 AND 12", name="ck_monthly_quotas_month"),
        CheckConstraint("max_monthly_classes >= 0", name="ck_monthly_quotas_max_non_negative"),
    )

    def __repr__(self) -> str:
        return (
            f"<MonthlyQuota {self.user_id} {self.year}-{self.month:02d}: "
            f"{self.remaining_classes}/{self.max_monthly_classes}>"
        )
