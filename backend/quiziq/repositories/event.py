"""
Event repository - appends to the event log and runs the aggregation queries.
"""
from typing import Any, Optional

from sqlalchemy import String, desc, func, select
from sqlalchemy.ext.compiler import compiles
from sqlalchemy.sql.elements import ColumnElement
from sqlalchemy.sql.functions import FunctionElement

from quiziq.models.event import Event, EventKind
from quiziq.repositories.base import BaseRepository

GRANULARITIES = ("day", "month", "year")

_PG_FORMATS = {"day": "YYYY-MM-DD", "month": "YYYY-MM", "year": "YYYY"}
_SQLITE_FORMATS = {"day": "%Y-%m-%d", "month": "%Y-%m", "year": "%Y"}


class epoch_ms_bucket(FunctionElement):
    """
    UTC date label (``YYYY-MM-DD``, ``YYYY-MM`` or ``YYYY``) for an epoch-ms column.

    Labels sort correctly as plain strings.
    """

    type = String()
    name = "epoch_ms_bucket"
    # granularity is not a bound parameter, so it must not share a cache key
    inherit_cache = False

    def __init__(self, column: ColumnElement, granularity: str) -> None:
        if granularity not in GRANULARITIES:
            raise ValueError(f"Unsupported granularity: {granularity}")
        self.granularity = granularity
        super().__init__(column)


@compiles(epoch_ms_bucket)
@compiles(epoch_ms_bucket, "postgresql")
def _compile_bucket_postgresql(element: epoch_ms_bucket, compiler: Any, **kw: Any) -> str:
    column = compiler.process(element.clauses, **kw)
    fmt = _PG_FORMATS[element.granularity]
    return f"to_char(to_timestamp({column} / 1000.0) AT TIME ZONE 'UTC', '{fmt}')"


@compiles(epoch_ms_bucket, "sqlite")
def _compile_bucket_sqlite(element: epoch_ms_bucket, compiler: Any, **kw: Any) -> str:
    column = compiler.process(element.clauses, **kw)
    fmt = _SQLITE_FORMATS[element.granularity]
    return f"strftime('{fmt}', {column} / 1000, 'unixepoch')"


def count_kind(kind: EventKind) -> ColumnElement:
    """COUNT(*) restricted to one event kind, matched by exact string."""
    return func.count().filter(Event.ev == kind.value)


class EventRepository(BaseRepository[Event]):
    """Write path for the collector and read path for the stats service."""

    model = Event

    async def append(self, event: Event) -> Event:
        self.session.add(event)
        await self.session.flush()
        return event

    def _range_conditions(
        self,
        tracker_id: str,
        from_ts: Optional[int],
        to_ts: Optional[int],
    ) -> list[ColumnElement]:
        conditions = [Event.tracker_id == tracker_id]
        if from_ts is not None:
            conditions.append(Event.ts >= from_ts)
        if to_ts is not None:
            conditions.append(Event.ts <= to_ts)
        return conditions

    async def funnel_totals(
        self,
        tracker_id: str,
        from_ts: Optional[int] = None,
        to_ts: Optional[int] = None,
    ) -> dict[str, int]:
        """Visits, starts, completes and leads over the whole range."""
        stmt = select(
            count_kind(EventKind.PAGE_VIEW).label("visits"),
            count_kind(EventKind.QUIZ_START).label("starts"),
            count_kind(EventKind.QUIZ_COMPLETE).label("completes"),
            count_kind(EventKind.LEAD_CAPTURE).label("leads"),
        ).where(*self._range_conditions(tracker_id, from_ts, to_ts))

        row = (await self.session.execute(stmt)).one()
        return {
            "visits": int(row.visits or 0),
            "starts": int(row.starts or 0),
            "completes": int(row.completes or 0),
            "leads": int(row.leads or 0),
        }

    async def funnel_series(
        self,
        tracker_id: str,
        granularity: str,
        from_ts: Optional[int] = None,
        to_ts: Optional[int] = None,
    ) -> list[dict[str, Any]]:
        """The same four counts per time bucket, ascending by label."""
        bucket = epoch_ms_bucket(Event.ts, granularity)
        stmt = (
            select(
                bucket.label("date"),
                count_kind(EventKind.PAGE_VIEW).label("visits"),
                count_kind(EventKind.QUIZ_START).label("starts"),
                count_kind(EventKind.QUIZ_COMPLETE).label("completes"),
                count_kind(EventKind.LEAD_CAPTURE).label("leads"),
            )
            .where(*self._range_conditions(tracker_id, from_ts, to_ts))
            .group_by(bucket)
            .order_by(bucket)
        )
        result = await self.session.execute(stmt)
        return [
            {
                "date": row.date,
                "visits": int(row.visits),
                "starts": int(row.starts),
                "completes": int(row.completes),
                "leads": int(row.leads),
            }
            for row in result.all()
        ]

    async def top_paths(
        self,
        tracker_id: str,
        from_ts: Optional[int] = None,
        to_ts: Optional[int] = None,
        limit: int = 20,
    ) -> list[dict[str, Any]]:
        """Page views per path, busiest first."""
        visits = func.count().label("visits")
        stmt = (
            select(Event.path, visits)
            .where(
                *self._range_conditions(tracker_id, from_ts, to_ts),
                Event.ev == EventKind.PAGE_VIEW.value,
            )
            .group_by(Event.path)
            .order_by(desc(visits), Event.path)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return [{"path": row.path, "visits": int(row.visits)} for row in result.all()]

    async def dropoff_series(
        self,
        tracker_id: str,
        granularity: str,
        from_ts: Optional[int] = None,
        to_ts: Optional[int] = None,
        quiz_id: Optional[str] = None,
    ) -> list[dict[str, Any]]:
        """
        Starts, completes and starts - completes per bucket.

        A bucket can go negative when a quiz started in an earlier bucket
        completes in this one.
        """
        bucket = epoch_ms_bucket(Event.ts, granularity)
        starts = count_kind(EventKind.QUIZ_START)
        completes = count_kind(EventKind.QUIZ_COMPLETE)

        conditions = self._range_conditions(tracker_id, from_ts, to_ts)
        if quiz_id is not None:
            conditions.append(Event.quiz_id == quiz_id)

        stmt = (
            select(
                bucket.label("date"),
                starts.label("starts"),
                completes.label("completes"),
                (starts - completes).label("dropoff"),
            )
            .where(*conditions)
            .group_by(bucket)
            .order_by(bucket)
        )
        result = await self.session.execute(stmt)
        return [
            {
                "date": row.date,
                "starts": int(row.starts),
                "completes": int(row.completes),
                "dropoff": int(row.dropoff),
            }
            for row in result.all()
        ]

    async def utm_breakdown(
        self,
        tracker_id: str,
        from_ts: Optional[int] = None,
        to_ts: Optional[int] = None,
        limit: int = 50,
    ) -> list[dict[str, Any]]:
        """Counts per (source, medium, campaign); missing values form their own group."""
        total = func.count().label("total")
        stmt = (
            select(
                Event.utm_source,
                Event.utm_medium,
                Event.utm_campaign,
                count_kind(EventKind.PAGE_VIEW).label("visits"),
                count_kind(EventKind.QUIZ_START).label("starts"),
                count_kind(EventKind.QUIZ_COMPLETE).label("completes"),
                total,
            )
            .where(*self._range_conditions(tracker_id, from_ts, to_ts))
            .group_by(Event.utm_source, Event.utm_medium, Event.utm_campaign)
            .order_by(
                desc(total),
                Event.utm_source,
                Event.utm_medium,
                Event.utm_campaign,
            )
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return [
            {
                "utm_source": row.utm_source,
                "utm_medium": row.utm_medium,
                "utm_campaign": row.utm_campaign,
                "visits": int(row.visits),
                "starts": int(row.starts),
                "completes": int(row.completes),
            }
            for row in result.all()
        ]
