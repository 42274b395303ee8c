"""
Base schemas with standardized configuration for consistent API payloads.
"""

from datetime import date, time
import re
from typing import Optional

from pydantic import BaseModel, ConfigDict

DATE_ONLY_REGEX = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class StandardizedModel(BaseModel):
    """Base model with standardized JSON encoding"""

    model_config = ConfigDict(use_enum_values=True, populate_by_name=True, from_attributes=True)


class StrictRequestModel(BaseModel):
    """Request DTO base that always forbids unexpected fields."""

    model_config = ConfigDict(extra="forbid", validate_assignment=True)


def ensure_date_only(value: object, field_name: str) -> object:
    if isinstance(value, str):
        candidate = value.strip()
        if not DATE_ONLY_REGEX.fullmatch(candidate):
            raise ValueError(f"{field_name} must be a YYYY-MM-DD date-only string")
        return candidate
    return value


def parse_hhmm(value: object) -> object:
    """Accept ``HH:MM`` (or ``HH:MM:SS``) strings for time fields."""
    if isinstance(value, str):
        try:
            parts = [int(part) for part in value.strip().split(":")]
            return time(*parts)
        except (ValueError, TypeError):
            raise ValueError(f"Invalid time format: {value}. Expected HH:MM format.")
    return value


def format_class_moment(day: date, start: Optional[time]) -> str:
    label = day.strftime("%A %d %B %Y")
    if start is None:
        return label
    return f"{label} at {start.strftime('%H:%M')}"
