"""
Event ingestion pipeline for the public collector.

Every step short-circuits with a taxonomy error. The pipeline reads the
policy and tracker state fresh on each call and never looks at the
caller's identity: anyone holding a tracker id may post to it, subject to
the origin checks and the rate limit.
"""
from typing import Any, Optional

from fastapi import Request
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from quiziq.core.config import settings
from quiziq.core.exceptions import ForbiddenError, NotFoundError, RateLimitError, ValidationError
from quiziq.core.logging import get_logger
from quiziq.models.event import Event, EventKind
from quiziq.models.lead import Lead
from quiziq.repositories.event import EventRepository
from quiziq.repositories.lead import LeadRepository
from quiziq.repositories.policy import PolicyRepository
from quiziq.repositories.tracker import TrackerRepository
from quiziq.schemas.collect import MAX_URL_LENGTH, CollectEvent
from quiziq.services.origins import extract_origin, is_origin_allowed
from quiziq.services.rate_limit import RateLimiter, collect_key

logger = get_logger(__name__)


def client_ip_from(request: Request) -> str:
    """First X-Forwarded-For hop, then X-Real-IP, then the socket peer."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first

    real_ip = request.headers.get("x-real-ip")
    if real_ip and real_ip.strip():
        return real_ip.strip()

    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def _optional(value: Optional[str]) -> Optional[str]:
    return value or None


def _truncate(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return value[:MAX_URL_LENGTH]


class EventIngestionPipeline:
    """Validate, authorize, rate-limit and append one collector event."""

    def __init__(self, session: AsyncSession, rate_limiter: RateLimiter) -> None:
        self.session = session
        self.rate_limiter = rate_limiter
        self.trackers = TrackerRepository(session)
        self.policies = PolicyRepository(session)
        self.events = EventRepository(session)
        self.leads = LeadRepository(session)

    @staticmethod
    def parse(payload: Any) -> CollectEvent:
        try:
            return CollectEvent.model_validate(payload)
        except PydanticValidationError as e:
            raise ValidationError(
                "Invalid input",
                details=e.errors(include_url=False, include_context=False, include_input=False),
            ) from e

    async def ingest(self, payload: Any, client_ip: str) -> dict[str, bool]:
        data = self.parse(payload)

        tracker = await self.trackers.get_by_tracker_id(data.tracker_id)
        if tracker is None:
            raise NotFoundError("Tracker not found")
        if not tracker.accepts_events:
            raise ForbiddenError("Tracker inactive")

        origin = extract_origin(data.page_url)
        if origin is None:
            raise ValidationError("Invalid page_url")

        policy = await self.policies.get()
        if not is_origin_allowed(
            origin,
            policy.allowed_origins or [],
            strict=settings.strict_origin_matching,
        ):
            logger.info("Collect rejected by global policy", tracker_id=data.tracker_id, origin=origin)
            raise ForbiddenError("Origin not allowed")

        if tracker.origins and origin not in tracker.origins:
            logger.info("Collect rejected by tracker origins", tracker_id=data.tracker_id, origin=origin)
            raise ForbiddenError("Origin not allowed for this tracker")

        result = await self.rate_limiter.check_and_consume(
            collect_key(origin, client_ip, data.sid),
            policy.max_collect_rps_per_origin,
            settings.collect_window_ms,
        )
        if not result.allowed:
            logger.warning(
                "Collect rate limited",
                tracker_id=data.tracker_id,
                origin=origin,
                client_ip=client_ip,
                reset_at=result.reset_at,
            )
            raise RateLimitError(result.reset_at)

        await self.events.append(self._build_event(data))
        await self.session.commit()

        if data.ev == EventKind.LEAD_CAPTURE.value and data.lead_payload is not None:
            await self._store_lead(data, data.lead_payload)

        logger.info("Event collected", tracker_id=data.tracker_id, ev=data.ev)
        return {"success": True}

    @staticmethod
    def _build_event(data: CollectEvent) -> Event:
        return Event(
            ts=data.ts,
            ev=data.ev,
            sid=data.sid,
            tracker_id=data.tracker_id,
            page_url=_truncate(data.page_url),
            path=_truncate(data.path),
            ref=_truncate(_optional(data.ref)),
            utm_source=_optional(data.utm_source),
            utm_medium=_optional(data.utm_medium),
            utm_campaign=_optional(data.utm_campaign),
            utm_term=_optional(data.utm_term),
            utm_content=_optional(data.utm_content),
            sw=data.sw,
            sh=data.sh,
            quiz_id=_optional(data.quiz_id),
            question_id=_optional(data.question_id),
            answer_id=_optional(data.answer_id),
            extra=data.extra,
        )

    async def _store_lead(self, data: CollectEvent, lead: dict[str, Any]) -> None:
        """The event is already committed; a failed lead insert does not undo it."""
        try:
            await self.leads.append(
                Lead(
                    ts=data.ts,
                    tracker_id=data.tracker_id,
                    sid=data.sid,
                    email=_text(lead.get("email")),
                    name=_text(lead.get("name")),
                    phone=_text(lead.get("phone")),
                    extra=lead,
                )
            )
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error(
                "Lead insert failed",
                tracker_id=data.tracker_id,
                sid=data.sid,
                error=str(e),
            )


def _text(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    return value if isinstance(value, str) else str(value)
