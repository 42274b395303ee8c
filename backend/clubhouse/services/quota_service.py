# backend/clubhouse/services/quota_service.py
"""
Monthly quota ledger.

One row per (user, month, year). Rows are created lazily on first access
with the configured default allowance. Every debit and credit addresses the
club-local current month and runs on a row locked for the transaction.
"""

from datetime import date
import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.enums import QuotaChangeReason
from ..core.exceptions import NoClassesRemainingException, NotFoundException, ValidationException
from ..core.identity import Actor
from ..events.publisher import EventPublisher
from ..models.audit_log import AuditLog
from ..models.monthly_quota import MonthlyQuota
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.factory import RepositoryFactory
from .base import BaseService, Clock

logger = logging.getLogger(__name__)


def next_period(month: int, year: int) -> Tuple[int, int]:
    if month == 12:
        return 1, year + 1
    return month + 1, year


def _snapshot(quota: MonthlyQuota) -> Dict[str, Any]:
    return {
        "month": quota.month,
        "year": quota.year,
        "remaining_classes": quota.remaining_classes,
        "max_monthly_classes": quota.max_monthly_classes,
    }


class QuotaService(BaseService):
    """Service for the per-member monthly class allowance."""

    def __init__(
        self,
        db: Session,
        event_publisher: Optional[EventPublisher] = None,
        clock: Optional[Clock] = None,
    ):
        super().__init__(db, event_publisher, clock)
        self.repository = RepositoryFactory.create_monthly_quota_repository(db)
        self.member_repository = RepositoryFactory.create_member_repository(db)
        self.audit_repository = RepositoryFactory.create_audit_repository(db)

    def current_period(self) -> Tuple[int, int]:
        today: date = self.now().date()
        return today.month, today.year

    # In-transaction helpers

    def ensure_quota(
        self,
        user_id: str,
        month: Optional[int] = None,
        year: Optional[int] = None,
        for_update: bool = False,
    ) -> MonthlyQuota:
        """Insert-if-absent, then read the ledger row (optionally locked)."""
        if month is None or year is None:
            month, year = self.current_period()
        default = settings.default_monthly_classes
        if self.repository.insert_if_absent(user_id, month, year, default, default):
            self.logger.info(
                "Created monthly quota",
                extra={"user_id": user_id, "month": month, "year": year, "allowance": default},
            )
        quota = self.repository.get_for_period(user_id, month, year, for_update=for_update)
        if quota is None:
            # Only reachable if the row vanished between insert and select
            raise NotFoundException(f"Monthly quota for {user_id} not found")
        return quota

    def apply_delta(self, user_id: str, delta: int, reason: QuotaChangeReason) -> MonthlyQuota:
        """
        Move the current-month balance by ``delta`` on a locked row.

        A result below zero is refused with ``no_classes_remaining``; the
        balance is never silently floored.
        """
        quota = self.ensure_quota(user_id, for_update=True)
        new_balance = quota.remaining_classes + delta
        if new_balance < 0:
            raise NoClassesRemainingException(
                {
                    "user_id": user_id,
                    "remaining_classes": quota.remaining_classes,
                    "requested_change": delta,
                    "reason": reason.value,
                }
            )
        quota.remaining_classes = new_balance
        self.db.flush()
        prometheus_metrics.record_quota_mutation(reason.value)
        self.logger.debug(
            "Quota moved",
            extra={"user_id": user_id, "delta": delta, "balance": new_balance, "reason": reason.value},
        )
        return quota

    # Public operations

    @BaseService.measure_operation("get_or_create_monthly_quota")
    def get_or_create_monthly_quota(
        self,
        actor: Actor,
        user_id: Optional[str] = None,
        month: Optional[int] = None,
        year: Optional[int] = None,
    ) -> MonthlyQuota:
        """Current (or given) month's ledger row; members may only read their own."""
        target = user_id or actor.user_id
        if target != actor.user_id:
            actor.require_staff()
        with self.transaction():
            return self.ensure_quota(target, month, year)

    @BaseService.measure_operation("adjust_monthly_quota")
    def adjust_monthly_quota(
        self, actor: Actor, user_id: str, delta: int, note: Optional[str] = None
    ) -> MonthlyQuota:
        actor.require_admin()
        if delta == 0:
            raise ValidationException("Adjustment must not be zero", code="invalid_adjustment")
        with self.transaction():
            before = _snapshot(self.ensure_quota(user_id, for_update=True))
            quota = self.apply_delta(user_id, delta, QuotaChangeReason.ADMIN_ADJUSTMENT)
            self.audit_repository.write(
                AuditLog.from_change(
                    "monthly_quota",
                    quota.id,
                    QuotaChangeReason.ADMIN_ADJUSTMENT.value,
                    actor,
                    before=before,
                    after=_snapshot(quota),
                    reason=note,
                )
            )
        self.log_operation("adjust_monthly_quota", user_id=user_id, delta=delta)
        return quota

    @BaseService.measure_operation("reset_monthly_quota")
    def reset_monthly_quota(
        self, actor: Actor, user_id: str, remaining_classes: int, max_monthly_classes: int
    ) -> MonthlyQuota:
        actor.require_admin()
        self._validate_limits(remaining_classes, max_monthly_classes)
        with self.transaction():
            quota = self.ensure_quota(user_id, for_update=True)
            before = _snapshot(quota)
            quota.remaining_classes = remaining_classes
            quota.max_monthly_classes = max_monthly_classes
            self.db.flush()
            prometheus_metrics.record_quota_mutation(QuotaChangeReason.ADMIN_RESET.value)
            self.audit_repository.write(
                AuditLog.from_change(
                    "monthly_quota",
                    quota.id,
                    QuotaChangeReason.ADMIN_RESET.value,
                    actor,
                    before=before,
                    after=_snapshot(quota),
                )
            )
        self.log_operation("reset_monthly_quota", user_id=user_id)
        return quota

    @BaseService.measure_operation("update_monthly_limits")
    def update_monthly_limits(
        self,
        actor: Actor,
        user_id: str,
        max_monthly_classes: Optional[int] = None,
        remaining_classes: Optional[int] = None,
    ) -> MonthlyQuota:
        """Partial absolute update of the current month's maximum and/or balance."""
        actor.require_admin()
        if max_monthly_classes is None and remaining_classes is None:
            raise ValidationException("Nothing to update", code="invalid_adjustment")
        self._validate_limits(remaining_classes, max_monthly_classes)
        with self.transaction():
            quota = self.ensure_quota(user_id, for_update=True)
            before = _snapshot(quota)
            if max_monthly_classes is not None:
                quota.max_monthly_classes = max_monthly_classes
            if remaining_classes is not None:
                quota.remaining_classes = remaining_classes
            self.db.flush()
            prometheus_metrics.record_quota_mutation(QuotaChangeReason.ADMIN_ADJUSTMENT.value)
            self.audit_repository.write(
                AuditLog.from_change(
                    "monthly_quota",
                    quota.id,
                    "update_limits",
                    actor,
                    before=before,
                    after=_snapshot(quota),
                )
            )
        return quota

    @BaseService.measure_operation("get_monthly_stats")
    def get_monthly_stats(self, actor: Actor) -> Dict[str, Any]:
        actor.require_admin()
        month, year = self.current_period()
        stats = self.read("monthly_stats", lambda: self.repository.period_stats(month, year))
        return {"month": month, "year": year, **stats}

    @BaseService.measure_operation("advance_all_to_next_month")
    def advance_all_to_next_month(self, actor: Actor) -> List[MonthlyQuota]:
        """
        Open next month's ledger for every known member at their maximum.

        Unused balance is not carried over. Users are everyone with a ledger
        row plus every approved, active member. A row that already exists for
        next month is reset to its maximum.
        """
        actor.require_admin()
        month, year = self.current_period()
        target_month, target_year = next_period(month, year)

        with self.transaction():
            user_ids = set(self.repository.list_known_user_ids())
            user_ids.update(self.member_repository.list_bookable_user_ids())

            rows: List[MonthlyQuota] = []
            for user_id in sorted(user_ids):
                latest = self.repository.latest_for_user(user_id)
                maximum = (
                    latest.max_monthly_classes
                    if latest is not None
                    else settings.default_monthly_classes
                )
                self.repository.insert_if_absent(
                    user_id, target_month, target_year, maximum, maximum
                )
                quota = self.repository.get_for_period(
                    user_id, target_month, target_year, for_update=True
                )
                if quota is None:
                    raise NotFoundException(f"Monthly quota for {user_id} not found")
                quota.max_monthly_classes = maximum
                quota.remaining_classes = maximum
                rows.append(quota)
                prometheus_metrics.record_quota_mutation(QuotaChangeReason.MONTHLY_ROLLOVER.value)

            self.db.flush()
            self.audit_repository.write(
                AuditLog.from_change(
                    "monthly_quota",
                    f"{target_year:04d}-{target_month:02d}",
                    QuotaChangeReason.MONTHLY_ROLLOVER.value,
                    actor,
                    after={"users": len(rows)},
                )
            )

        self.log_operation(
            "advance_all_to_next_month", month=target_month, year=target_year, users=len(rows)
        )
        return rows

    @staticmethod
    def _validate_limits(remaining: Optional[int], maximum: Optional[int]) -> None:
        for label, value in (("remaining_classes", remaining), ("max_monthly_classes", maximum)):
            if value is not None and value < 0:
                raise ValidationException(f"{label} must not be negative", code="invalid_adjustment")
