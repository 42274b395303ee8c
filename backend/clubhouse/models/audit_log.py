# backend/clubhouse/models/audit_log.py
"""
Audit logging model to capture privileged actions (forced cancellations,
quota adjustments, attendance, member status changes).
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Mapping, Optional

from sqlalchemy import Column, DateTime, Index, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.sql import func
from sqlalchemy.types import JSON
import ulid

from ..database import Base


def _now_utc() -> datetime:
    """Return timezone-aware UTC timestamp for defaults."""
    return datetime.now(timezone.utc)


class AuditLog(Base):
    """Persistence model for audit trail entries."""

    __tablename__ = "audit_log"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    entity_type = Column(String(50), nullable=False)
    entity_id = Column(String(64), nullable=False)
    action = Column(String(40), nullable=False)
    actor_id = Column(String(64), nullable=True)
    actor_role = Column(String(30), nullable=True)
    reason = Column(Text, nullable=True)
    occurred_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=_now_utc,
        server_default=func.now(),
    )
    before = Column(JSONB(astext_type=Text()).with_variant(JSON(), "sqlite"), nullable=True)
    after = Column(JSONB(astext_type=Text()).with_variant(JSON(), "sqlite"), nullable=True)

    __table_args__ = (Index("idx_audit_log_entity", "entity_type", "entity_id"),)

    @classmethod
    def from_change(
        cls,
        entity_type: str,
        entity_id: str,
        action: str,
        actor: Any | None,
        before: Optional[Mapping[str, Any]] = None,
        after: Optional[Mapping[str, Any]] = None,
        reason: Optional[str] = None,
    ) -> "AuditLog":
        """Factory helper to build an AuditLog instance from change metadata."""
        actor_id = getattr(actor, "user_id", None) if actor is not None else None
        role = getattr(actor, "role", None) if actor is not None else None
        actor_role = getattr(role, "value", role)
        return cls(
            entity_type=entity_type,
            entity_id=entity_id,
            action=action,
            actor_id=actor_id,
            actor_role=str(actor_role) if actor_role is not None else None,
            reason=reason,
            before=dict(before) if before is not None else None,
            after=dict(after) if after is not None else None,
        )
