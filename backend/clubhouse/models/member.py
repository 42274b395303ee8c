# backend/clubhouse/models/member.py
"""Club member profile with the administrator-managed approval state."""

from datetime import datetime, timezone

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, String
from sqlalchemy.sql import func
import ulid

from ..core.enums import ApprovalStatus
from ..database import Base


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


class MemberProfile(Base):
    __tablename__ = "member_profiles"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    user_id = Column(String(64), nullable=False, unique=True)
    first_name = Column(String(80), nullable=False)
    last_name = Column(String(80), nullable=False)
    phone = Column(String(32), nullable=False)
    email = Column(String(255), nullable=True)

    approval_status = Column(String(20), nullable=False, default=ApprovalStatus.PENDING.value)
    is_active = Column(Boolean, nullable=False, default=True)
    is_reregistration = Column(Boolean, nullable=False, default=False)
    previous_status = Column(String(20), nullable=True)

    created_at = Column(DateTime(timezone=True), default=_now_utc, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=_now_utc)

    __table_args__ = (
        CheckConstraint(
            "approval_status IN ('pending', 'approved', 'rejected', 'expelled')",
            name="ck_member_profiles_approval_status",
        ),
    )

    @property
    def can_book(self) -> bool:
        return bool(self.is_active) and self.approval_status == ApprovalStatus.APPROVED.value

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def __repr__(self) -> str:
        return f"<MemberProfile {self.user_id}: {self.approval_status} active={self.is_active}>"
