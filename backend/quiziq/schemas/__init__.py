"""
Pydantic schemas package.
"""
from quiziq.schemas.collect import CollectEvent, CollectResponse
from quiziq.schemas.export import DEFAULT_SECTIONS, REPORT_SECTIONS, ExportRequest
from quiziq.schemas.lead import LeadListResponse, LeadResponse, Pagination
from quiziq.schemas.policy import PolicyResponse, PolicyUpdate
from quiziq.schemas.stats import (
    DropoffPoint,
    GroupBy,
    OverviewStats,
    StatsQuery,
    TimeSeriesPoint,
    TopPage,
    UtmStat,
)
from quiziq.schemas.tracker import (
    MemberCreate,
    MemberResponse,
    TrackerCreate,
    TrackerResponse,
    TrackerUpdate,
)

__all__ = [
    # Collector
    "CollectEvent",
    "CollectResponse",
    # Trackers
    "TrackerCreate",
    "TrackerUpdate",
    "TrackerResponse",
    "MemberCreate",
    "MemberResponse",
    # Stats
    "StatsQuery",
    "GroupBy",
    "OverviewStats",
    "TimeSeriesPoint",
    "TopPage",
    "DropoffPoint",
    "UtmStat",
    # Export
    "ExportRequest",
    "REPORT_SECTIONS",
    "DEFAULT_SECTIONS",
    # Leads
    "LeadResponse",
    "LeadListResponse",
    "Pagination",
    # Policy
    "PolicyResponse",
    "PolicyUpdate",
]
