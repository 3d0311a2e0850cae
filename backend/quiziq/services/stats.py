"""
Aggregation engine - funnel KPIs and breakdowns over the event log.

Counting happens in the database; this layer only derives the rates.
"""
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from quiziq.repositories.event import EventRepository
from quiziq.schemas.stats import StatsQuery


def rate(numerator: int, denominator: int) -> float:
    """Percentage in [0, 100] rounded to two decimals; 0 when nothing to divide by."""
    if denominator <= 0:
        return 0.0
    return round(min(numerator / denominator * 100, 100.0), 2)


class StatsService:
    """Read-only queries behind the stats and export endpoints."""

    def __init__(self, session: AsyncSession) -> None:
        self.events = EventRepository(session)

    async def overview(self, query: StatsQuery) -> dict[str, Any]:
        totals = await self.events.funnel_totals(query.tracker_id, query.from_ts, query.to_ts)
        series = await self.events.funnel_series(
            query.tracker_id,
            query.group_by,
            query.from_ts,
            query.to_ts,
        )
        return {
            "visits": totals["visits"],
            "starts": totals["starts"],
            "completes": totals["completes"],
            "completionRate": rate(totals["completes"], totals["starts"]),
            "leads": totals["leads"],
            "leadRate": rate(totals["leads"], totals["visits"]),
            "timeseries": series,
        }

    async def top_pages(self, query: StatsQuery) -> list[dict[str, Any]]:
        return await self.events.top_paths(query.tracker_id, query.from_ts, query.to_ts)

    async def dropoff(self, query: StatsQuery, quiz_id: Optional[str] = None) -> list[dict[str, Any]]:
        return await self.events.dropoff_series(
            query.tracker_id,
            query.group_by,
            query.from_ts,
            query.to_ts,
            quiz_id=quiz_id,
        )

    async def utm_stats(self, query: StatsQuery) -> list[dict[str, Any]]:
        return await self.events.utm_breakdown(query.tracker_id, query.from_ts, query.to_ts)
