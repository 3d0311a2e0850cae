"""
Lead listing and CSV export.
"""
from typing import Optional

from fastapi import APIRouter, Query
from fastapi.responses import Response

from quiziq.core.database import DbSession
from quiziq.repositories.lead import LeadRepository
from quiziq.routers.deps import AuthorizedQuery
from quiziq.schemas.lead import LeadListResponse, LeadResponse, Pagination
from quiziq.services.rate_limit import now_ms
from quiziq.services.reports import render_leads_csv

router = APIRouter(prefix="/leads", tags=["leads"])


@router.get("/export")
async def export_leads(query: AuthorizedQuery, session: DbSession) -> Response:
    """Every lead in range as CSV, oldest first."""
    leads = await LeadRepository(session).export(
        query.tracker_id,
        from_ts=query.from_ts,
        to_ts=query.to_ts,
    )
    filename = f"leads-{query.tracker_id}-{now_ms()}.csv"
    return Response(
        content=render_leads_csv(leads),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/list", response_model=LeadListResponse)
async def list_leads(
    query: AuthorizedQuery,
    session: DbSession,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    search: Optional[str] = Query(None, max_length=255),
) -> LeadListResponse:
    """Newest first, with free-text search over email, name and phone."""
    leads, total = await LeadRepository(session).search(
        query.tracker_id,
        from_ts=query.from_ts,
        to_ts=query.to_ts,
        search=search.strip() if search else None,
        skip=(page - 1) * limit,
        limit=limit,
    )
    return LeadListResponse(
        leads=[LeadResponse.model_validate(lead) for lead in leads],
        pagination=Pagination(page=page, limit=limit, total=total),
    )
