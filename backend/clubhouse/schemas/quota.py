"""Monthly quota ledger schemas."""

from datetime import datetime
from typing import List, Optional

from pydantic import Field, model_validator

from .base import StandardizedModel, StrictRequestModel


class MonthlyQuotaResponse(StandardizedModel):
    user_id: str
    month: int
    year: int
    remaining_classes: int
    max_monthly_classes: int
    updated_at: Optional[datetime] = None


class QuotaAdjustment(StrictRequestModel):
    delta: int = Field(..., description="Classes to add (positive) or remove (negative)")
    note: Optional[str] = Field(None, max_length=500)

    @model_validator(mode="after")
    def _non_zero(self) -> "QuotaAdjustment":
        if self.delta == 0:
            raise ValueError("delta must not be zero")
        return self


class QuotaReset(StrictRequestModel):
    remaining_classes: int = Field(..., ge=0)
    max_monthly_classes: int = Field(..., ge=0)


class QuotaLimitsUpdate(StrictRequestModel):
    max_monthly_classes: Optional[int] = Field(None, ge=0)
    remaining_classes: Optional[int] = Field(None, ge=0)

    @model_validator(mode="after")
    def _at_least_one(self) -> "QuotaLimitsUpdate":
        if self.max_monthly_classes is None and self.remaining_classes is None:
            raise ValueError("Provide max_monthly_classes and/or remaining_classes")
        return self


class MonthlyStatsResponse(StandardizedModel):
    month: int
    year: int
    total_users: int
    users_with_classes: int
    users_without_classes: int
    average_remaining: float


class MonthlyRolloverResponse(StandardizedModel):
    month: int
    year: int
    quotas: List[MonthlyQuotaResponse]
