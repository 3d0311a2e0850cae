"""
Statistics Pydantic schemas for the aggregation endpoints.
"""
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

GroupBy = Literal["day", "month", "year"]


class StatsQuery(BaseModel):
    """Filter shared by every aggregation: tracker plus inclusive ts bounds."""

    tracker_id: str = Field(..., min_length=1)
    from_ts: Optional[int] = Field(None, alias="from", ge=0)
    to_ts: Optional[int] = Field(None, alias="to", ge=0)
    group_by: GroupBy = Field("day", alias="groupBy")

    model_config = ConfigDict(populate_by_name=True)

    @model_validator(mode="after")
    def check_range(self) -> "StatsQuery":
        if self.from_ts is not None and self.to_ts is not None and self.from_ts > self.to_ts:
            raise ValueError("from must not be after to")
        return self


class TimeSeriesPoint(BaseModel):
    date: str
    visits: int
    starts: int
    completes: int
    leads: int


class OverviewStats(BaseModel):
    """Funnel KPIs for the whole range plus the bucketed series."""

    visits: int
    starts: int
    completes: int
    completion_rate: float = Field(alias="completionRate")
    leads: int
    lead_rate: float = Field(alias="leadRate")
    timeseries: list[TimeSeriesPoint]

    model_config = ConfigDict(populate_by_name=True)


class TopPage(BaseModel):
    path: str
    visits: int


class DropoffPoint(BaseModel):
    date: str
    starts: int
    completes: int
    dropoff: int


class UtmStat(BaseModel):
    utm_source: Optional[str] = None
    utm_medium: Optional[str] = None
    utm_campaign: Optional[str] = None
    visits: int
    starts: int
    completes: int
