"""Member profile schemas."""

from datetime import datetime
from typing import Optional

from pydantic import EmailStr, Field, field_validator

from ..core.enums import ApprovalStatus
from .base import StandardizedModel, StrictRequestModel


class MemberRegistration(StrictRequestModel):
    first_name: str = Field(..., min_length=1, max_length=80)
    last_name: str = Field(..., min_length=1, max_length=80)
    phone: str = Field(..., min_length=6, max_length=32)
    email: Optional[EmailStr] = None

    @field_validator("first_name", "last_name", "phone")
    @classmethod
    def _strip(cls, v: str) -> str:
        stripped = v.strip()
        if not stripped:
            raise ValueError("must not be blank")
        return stripped


class MemberResponse(StandardizedModel):
    id: str
    user_id: str
    first_name: str
    last_name: str
    phone: str
    email: Optional[str] = None
    approval_status: ApprovalStatus
    is_active: bool
    is_reregistration: bool
    previous_status: Optional[ApprovalStatus] = None
    can_book: bool
    created_at: Optional[datetime] = None


class MemberStatusChange(StrictRequestModel):
    reason: Optional[str] = Field(None, max_length=500)
