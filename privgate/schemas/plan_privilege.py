"""Plan privilege schemas: resolved grants and time-based limits."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from privgate.core.datetime_utils import as_utc

UNLIMITED_VALUE = -1
DISABLED_VALUE = 0


class Grant(BaseModel):
    """A plan grant joined with its catalog privilege.

    ``allowed_value``: -1 unlimited, 0 disabled, >0 finite quota per period.
    """

    id: UUID = Field(..., description="Plan privilege id")
    plan_id: UUID
    privilege_id: UUID
    privilege_name: str
    allowed_value: int = Field(..., ge=-1)
    period_months: int = Field(default=1, ge=1)
    daily_limit: Optional[int] = Field(None, ge=1)
    weekly_limit: Optional[int] = Field(None, ge=1)
    monthly_limit: Optional[int] = Field(None, ge=1)
    effective_date: Optional[datetime] = None
    expiration_date: Optional[datetime] = None
    is_active: bool = True

    model_config = ConfigDict(frozen=True)

    @field_validator("effective_date", "expiration_date")
    @classmethod
    def ensure_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return as_utc(v)

    @property
    def is_unlimited(self) -> bool:
        return self.allowed_value == UNLIMITED_VALUE

    @property
    def is_disabled(self) -> bool:
        return self.allowed_value == DISABLED_VALUE

    @property
    def has_time_limits(self) -> bool:
        return any(
            limit is not None for limit in (self.daily_limit, self.weekly_limit, self.monthly_limit)
        )

    def is_effective_at(self, now: datetime) -> bool:
        """Whether the grant is active and within its effective window at ``now``."""
        if not self.is_active:
            return False
        if self.effective_date is not None and self.effective_date > now:
            return False
        if self.expiration_date is not None and self.expiration_date <= now:
            return False
        return True


class TimeBasedLimitsUpdate(BaseModel):
    """Request schema for setting the time-based limits of a plan privilege.

    ``None`` removes a limit. Where two limits are set, the narrower window may not
    exceed the wider one.
    """

    daily_limit: Optional[int] = Field(None, ge=1, description="Maximum units per day")
    weekly_limit: Optional[int] = Field(None, ge=1, description="Maximum units per ISO week")
    monthly_limit: Optional[int] = Field(None, ge=1, description="Maximum units per calendar month")

    @model_validator(mode="after")
    def check_window_ordering(self) -> "TimeBasedLimitsUpdate":
        pairs = (
            ("daily_limit", self.daily_limit, "weekly_limit", self.weekly_limit),
            ("daily_limit", self.daily_limit, "monthly_limit", self.monthly_limit),
            ("weekly_limit", self.weekly_limit, "monthly_limit", self.monthly_limit),
        )
        for narrow_name, narrow, wide_name, wide in pairs:
            if narrow is not None and wide is not None and narrow > wide:
                raise ValueError(f"{narrow_name} cannot be greater than {wide_name}")
        return self


class TimeBasedLimits(TimeBasedLimitsUpdate):
    """Time-based limits of a plan privilege."""

    plan_privilege_id: UUID
    privilege_name: str
    allowed_value: int
