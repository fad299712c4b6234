"""Privilege usage schemas."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from privgate.core.datetime_utils import as_utc
from privgate.schemas.pagination import PaginationMeta


class UsageLedgerEntry(BaseModel):
    """Cumulative usage of one plan privilege by one subscription."""

    id: UUID
    subscription_id: UUID
    plan_privilege_id: UUID
    used_value: int
    allowed_value: int
    period_start: datetime
    period_end: datetime
    last_used_at: Optional[datetime] = None
    reset_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    @field_validator("period_start", "period_end", "last_used_at", "reset_at")
    @classmethod
    def ensure_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return as_utc(v)


class UseRequest(BaseModel):
    """Request body for consuming a privilege."""

    amount: int = Field(default=1, le=2**31 - 1, description="Units to consume")
    note: Optional[str] = Field(None, max_length=500, description="Free-text audit note")


class UsageDecisionResponse(BaseModel):
    """Outcome of a can-use check or a use attempt."""

    allowed: bool
    reason: Optional[str] = Field(None, description="Denial reason code, None when allowed")
    message: Optional[str] = Field(None, description="User-facing explanation of a denial")
    remaining: int = Field(..., description="Units remaining in the period after this call")


class RemainingResponse(BaseModel):
    """Remaining units of a privilege for the current period."""

    subscription_id: UUID
    privilege_name: str
    remaining: int
    unlimited: bool


class UsageHistoryRecord(BaseModel):
    """One consumption event."""

    id: UUID
    privilege_usage_id: UUID
    privilege_name: Optional[str] = None
    amount: int
    used_at: datetime
    day_bucket: str
    week_bucket: str
    month_bucket: str
    note: Optional[str] = None
    created_by: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)

    @field_validator("used_at")
    @classmethod
    def ensure_utc(cls, v: datetime) -> datetime:
        return as_utc(v)


class UsageHistoryList(BaseModel):
    """A page of usage history records."""

    data: list[UsageHistoryRecord]
    meta: PaginationMeta
