"""
Policy Pydantic schemas for the administrative path.
"""
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class PolicyResponse(BaseModel):
    max_trackers_per_user: int = Field(alias="maxTrackersPerUser")
    max_collect_rps_per_origin: int = Field(alias="maxCollectRpsPerOrigin")
    retention_days: int = Field(alias="retentionDays")
    allowed_origins: list[str] = Field(alias="allowedOrigins")

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
    )


class PolicyUpdate(BaseModel):
    max_trackers_per_user: Optional[int] = Field(None, ge=0, alias="maxTrackersPerUser")
    max_collect_rps_per_origin: Optional[int] = Field(None, ge=1, alias="maxCollectRpsPerOrigin")
    retention_days: Optional[int] = Field(None, ge=1, alias="retentionDays")
    allowed_origins: Optional[list[str]] = Field(None, alias="allowedOrigins")

    model_config = ConfigDict(populate_by_name=True)
