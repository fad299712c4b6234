"""Privilege catalog schemas."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from privgate.schemas.pagination import PaginationMeta


class PrivilegeBase(BaseModel):
    """Base schema for a privilege definition."""

    name: str = Field(
        ..., min_length=1, max_length=100, description="Display name, e.g. 'Teleconsultation'"
    )
    description: Optional[str] = Field(None, max_length=500)
    privilege_type: Optional[str] = Field(
        None,
        max_length=50,
        description="Free-form category (e.g., 'consultation', 'medication', 'messaging')",
    )

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        """Names are compared exactly, so surrounding whitespace is dropped."""
        v = v.strip()
        if not v:
            raise ValueError("name must not be blank")
        return v


class PrivilegeCreate(PrivilegeBase):
    """Schema for creating a privilege."""

    is_active: bool = True


class PrivilegeUpdate(BaseModel):
    """Schema for updating a privilege. Omitted fields are left unchanged."""

    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    privilege_type: Optional[str] = Field(None, max_length=50)
    is_active: Optional[bool] = None

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("name must not be blank")
        return v


class Privilege(PrivilegeBase):
    """Complete privilege schema."""

    id: UUID
    is_active: bool
    created_at: datetime
    modified_at: datetime
    created_by: Optional[str] = None
    modified_by: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class PrivilegeList(BaseModel):
    """A page of privileges."""

    data: list[Privilege]
    meta: PaginationMeta
