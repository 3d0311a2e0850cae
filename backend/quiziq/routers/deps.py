"""
Shared route dependencies.
"""
from typing import Annotated, Optional

from fastapi import Depends, Query, Request
from pydantic import ValidationError as PydanticValidationError

from quiziq.core.database import DbSession
from quiziq.core.exceptions import ForbiddenError, ValidationError
from quiziq.core.security import CurrentPrincipal, Principal
from quiziq.schemas.stats import GroupBy, StatsQuery
from quiziq.services.rate_limit import RateLimiter
from quiziq.services.reports import PdfRenderer
from quiziq.services.trackers import TrackerRegistry


def get_rate_limiter(request: Request) -> RateLimiter:
    """The limiter built once in ``create_app``."""
    return request.app.state.rate_limiter


def get_pdf_renderer() -> PdfRenderer:
    return PdfRenderer()


async def get_tracker_registry(session: DbSession) -> TrackerRegistry:
    return TrackerRegistry(session)


Registry = Annotated[TrackerRegistry, Depends(get_tracker_registry)]


def get_stats_query(
    tracker_id: Annotated[str, Query(min_length=1)],
    from_ts: Annotated[Optional[int], Query(alias="from", ge=0)] = None,
    to_ts: Annotated[Optional[int], Query(alias="to", ge=0)] = None,
    group_by: Annotated[GroupBy, Query(alias="groupBy")] = "day",
) -> StatsQuery:
    try:
        return StatsQuery(
            tracker_id=tracker_id,
            from_ts=from_ts,
            to_ts=to_ts,
            group_by=group_by,
        )
    except PydanticValidationError as e:
        raise ValidationError(
            "Invalid input",
            details=e.errors(include_url=False, include_context=False, include_input=False),
        ) from e


async def get_authorized_query(
    principal: CurrentPrincipal,
    registry: Registry,
    query: Annotated[StatsQuery, Depends(get_stats_query)],
) -> StatsQuery:
    """Stats filter for a tracker the caller may read."""
    await registry.require_access(principal, query.tracker_id)
    return query


AuthorizedQuery = Annotated[StatsQuery, Depends(get_authorized_query)]


async def require_admin(principal: CurrentPrincipal) -> Principal:
    if not principal.is_admin:
        raise ForbiddenError("Super admin access required")
    return principal


AdminPrincipal = Annotated[Principal, Depends(require_admin)]
