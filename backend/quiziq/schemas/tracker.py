"""
Tracker Pydantic schemas for request/response validation.
"""
from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class TrackerCreate(BaseModel):
    """Schema for creating a tracker; origins are derived from the site URL."""

    name: str = Field(..., min_length=1, max_length=255)
    site_url: str = Field(..., min_length=1, max_length=2048, alias="siteUrl")

    model_config = ConfigDict(populate_by_name=True)


class TrackerUpdate(BaseModel):
    """Partial update. A new site URL replaces the origin list."""

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    site_url: Optional[str] = Field(None, min_length=1, max_length=2048, alias="siteUrl")
    origins: Optional[list[str]] = None
    active: Optional[bool] = None
    page_rules: Optional[dict[str, Any]] = Field(None, alias="pageRules")

    model_config = ConfigDict(populate_by_name=True)


class TrackerResponse(BaseModel):
    """Schema for tracker API responses. The internal id is never exposed."""

    tracker_id: str = Field(alias="trackerId")
    owner_user_id: UUID = Field(alias="ownerUserId")
    name: str
    site_url: str = Field(alias="siteUrl")
    origins: list[str]
    active: bool
    page_rules: Optional[dict[str, Any]] = Field(None, alias="pageRules")
    created_at: Optional[datetime] = Field(None, alias="createdAt")
    revoked_at: Optional[datetime] = Field(None, alias="revokedAt")

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
    )


class MemberCreate(BaseModel):
    """Grant viewer access to an existing user."""

    email: str = Field(..., min_length=3, max_length=320)


class MemberResponse(BaseModel):
    tracker_id: str = Field(alias="trackerId")
    user_id: UUID = Field(alias="userId")
    role: str

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
    )
