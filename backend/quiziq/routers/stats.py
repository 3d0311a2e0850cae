"""
Statistics endpoints for the dashboard.
"""
from typing import Optional

from fastapi import APIRouter, Query

from quiziq.core.database import DbSession
from quiziq.routers.deps import AuthorizedQuery
from quiziq.schemas.stats import DropoffPoint, OverviewStats, TopPage, UtmStat
from quiziq.services.stats import StatsService

router = APIRouter(prefix="/stats", tags=["stats"])


@router.get("/overview", response_model=OverviewStats)
async def overview(query: AuthorizedQuery, session: DbSession) -> dict:
    """Funnel totals, rates and the bucketed time series."""
    return await StatsService(session).overview(query)


@router.get("/top-pages", response_model=list[TopPage])
async def top_pages(query: AuthorizedQuery, session: DbSession) -> list[dict]:
    return await StatsService(session).top_pages(query)


@router.get("/dropoff", response_model=list[DropoffPoint])
async def dropoff(
    query: AuthorizedQuery,
    session: DbSession,
    quiz_id: Optional[str] = Query(None, min_length=1),
) -> list[dict]:
    """Starts minus completes per bucket, optionally for one quiz."""
    return await StatsService(session).dropoff(query, quiz_id=quiz_id)


@router.get("/utm", response_model=list[UtmStat])
async def utm(query: AuthorizedQuery, session: DbSession) -> list[dict]:
    return await StatsService(session).utm_stats(query)
