"""
Lead Pydantic schemas.
"""
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class LeadResponse(BaseModel):
    id: int
    ts: int
    tracker_id: str = Field(alias="trackerId")
    sid: str
    email: Optional[str] = None
    name: Optional[str] = None
    phone: Optional[str] = None
    extra: Optional[dict[str, Any]] = None
    created_at: Optional[datetime] = Field(None, alias="createdAt")

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
    )


class Pagination(BaseModel):
    page: int
    limit: int
    total: int


class LeadListResponse(BaseModel):
    leads: list[LeadResponse]
    pagination: Pagination
