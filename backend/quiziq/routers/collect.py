"""
Public collector endpoint hit by the embedded snippet.

No authentication: knowing the tracker id is enough to post, subject to
the origin checks and the rate limit inside the pipeline.
"""
from typing import Annotated

from fastapi import APIRouter, Depends, Request

from quiziq.core.database import DbSession
from quiziq.core.exceptions import ValidationError
from quiziq.routers.deps import get_rate_limiter
from quiziq.schemas.collect import CollectResponse
from quiziq.services.ingestion import EventIngestionPipeline, client_ip_from
from quiziq.services.rate_limit import RateLimiter

router = APIRouter(tags=["collect"])


@router.post("/collect", response_model=CollectResponse)
async def collect(
    request: Request,
    session: DbSession,
    rate_limiter: Annotated[RateLimiter, Depends(get_rate_limiter)],
) -> dict:
    """
    Ingest one event.

    The body is parsed by hand: beacons arrive as ``text/plain`` and
    must still be accepted.
    """
    try:
        payload = await request.json()
    except ValueError:
        raise ValidationError("Invalid JSON body")

    pipeline = EventIngestionPipeline(session, rate_limiter)
    return await pipeline.ingest(payload, client_ip_from(request))
