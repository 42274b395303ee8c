# backend/clubhouse/routes/v1/quotas.py
"""
Monthly quota routes - API v1

Endpoints:
    GET /me - Current month's allowance for the caller
    GET /stats - Current month ledger statistics (admin)
    POST /rollover - Open next month's ledger for everyone (admin)
    GET /users/{user_id} - Another member's allowance (staff)
    POST /users/{user_id}/adjust - Relative adjustment (admin)
    PUT /users/{user_id}/reset - Absolute reset (admin)
    PATCH /users/{user_id}/limits - Partial absolute update (admin)
"""

import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends, Path, Query

from ...api.dependencies import get_current_actor, get_quota_service, require_admin
from ...core.exceptions import DomainException
from ...core.identity import Actor
from ...schemas.quota import (
    MonthlyQuotaResponse,
    MonthlyRolloverResponse,
    MonthlyStatsResponse,
    QuotaAdjustment,
    QuotaLimitsUpdate,
    QuotaReset,
)
from ...services.quota_service import QuotaService, next_period
from .errors import handle_domain_exception

logger = logging.getLogger(__name__)

router = APIRouter(tags=["quotas-v1"])


@router.get("/me", response_model=MonthlyQuotaResponse)
def get_my_quota(
    actor: Actor = Depends(get_current_actor),
    service: QuotaService = Depends(get_quota_service),
) -> MonthlyQuotaResponse:
    try:
        return MonthlyQuotaResponse.model_validate(service.get_or_create_monthly_quota(actor))
    except DomainException as e:
        handle_domain_exception(e)


@router.get("/stats", response_model=MonthlyStatsResponse)
def get_monthly_stats(
    actor: Actor = Depends(require_admin),
    service: QuotaService = Depends(get_quota_service),
) -> MonthlyStatsResponse:
    try:
        return MonthlyStatsResponse(**service.get_monthly_stats(actor))
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/rollover", response_model=MonthlyRolloverResponse)
def advance_all_to_next_month(
    actor: Actor = Depends(require_admin),
    service: QuotaService = Depends(get_quota_service),
) -> MonthlyRolloverResponse:
    """Reset every member to their maximum for next month; balances do not carry over."""
    try:
        rows = service.advance_all_to_next_month(actor)
    except DomainException as e:
        handle_domain_exception(e)
    month, year = next_period(*service.current_period())
    return MonthlyRolloverResponse(
        month=month,
        year=year,
        quotas=[MonthlyQuotaResponse.model_validate(row) for row in rows],
    )


@router.get("/users/{user_id}", response_model=MonthlyQuotaResponse)
def get_user_quota(
    user_id: str = Path(..., min_length=1, max_length=64),
    month: Optional[int] = Query(None, ge=1, le=12),
    year: Optional[int] = Query(None, ge=2000),
    actor: Actor = Depends(get_current_actor),
    service: QuotaService = Depends(get_quota_service),
) -> MonthlyQuotaResponse:
    try:
        quota = service.get_or_create_monthly_quota(actor, user_id, month, year)
    except DomainException as e:
        handle_domain_exception(e)
    return MonthlyQuotaResponse.model_validate(quota)


@router.post("/users/{user_id}/adjust", response_model=MonthlyQuotaResponse)
def adjust_monthly_quota(
    user_id: str = Path(..., min_length=1, max_length=64),
    data: QuotaAdjustment = Body(...),
    actor: Actor = Depends(require_admin),
    service: QuotaService = Depends(get_quota_service),
) -> MonthlyQuotaResponse:
    try:
        quota = service.adjust_monthly_quota(actor, user_id, data.delta, data.note)
    except DomainException as e:
        handle_domain_exception(e)
    return MonthlyQuotaResponse.model_validate(quota)


@router.put("/users/{user_id}/reset", response_model=MonthlyQuotaResponse)
def reset_monthly_quota(
    user_id: str = Path(..., min_length=1, max_length=64),
    data: QuotaReset = Body(...),
    actor: Actor = Depends(require_admin),
    service: QuotaService = Depends(get_quota_service),
) -> MonthlyQuotaResponse:
    try:
        quota = service.reset_monthly_quota(
            actor, user_id, data.remaining_classes, data.max_monthly_classes
        )
    except DomainException as e:
        handle_domain_exception(e)
    return MonthlyQuotaResponse.model_validate(quota)


@router.patch("/users/{user_id}/limits", response_model=MonthlyQuotaResponse)
def update_monthly_limits(
    user_id: str = Path(..., min_length=1, max_length=64),
    data: QuotaLimitsUpdate = Body(...),
    actor: Actor = Depends(require_admin),
    service: QuotaService = Depends(get_quota_service),
) -> MonthlyQuotaResponse:
    try:
        quota = service.update_monthly_limits(
            actor,
            user_id,
            max_monthly_classes=data.max_monthly_classes,
            remaining_classes=data.remaining_classes,
        )
    except DomainException as e:
        handle_domain_exception(e)
    return MonthlyQuotaResponse.model_validate(quota)
