"""
Tracker management API routes.
"""
from uuid import UUID

from fastapi import APIRouter, Response, status

from quiziq.core.security import CurrentPrincipal
from quiziq.routers.deps import Registry
from quiziq.schemas.tracker import (
    MemberCreate,
    MemberResponse,
    TrackerCreate,
    TrackerResponse,
    TrackerUpdate,
)

router = APIRouter(prefix="/trackers", tags=["trackers"])


@router.get("", response_model=list[TrackerResponse])
async def list_trackers(principal: CurrentPrincipal, registry: Registry) -> list[TrackerResponse]:
    """Owned and shared trackers; every tracker for a super admin."""
    trackers = await registry.list_for(principal)
    return [TrackerResponse.model_validate(t) for t in trackers]


@router.post("", response_model=TrackerResponse, status_code=status.HTTP_201_CREATED)
async def create_tracker(
    data: TrackerCreate,
    principal: CurrentPrincipal,
    registry: Registry,
) -> TrackerResponse:
    tracker = await registry.create(principal, data.name, data.site_url)
    return TrackerResponse.model_validate(tracker)


@router.get("/{tracker_id}", response_model=TrackerResponse)
async def get_tracker(
    tracker_id: str,
    principal: CurrentPrincipal,
    registry: Registry,
) -> TrackerResponse:
    tracker = await registry.get(principal, tracker_id)
    return TrackerResponse.model_validate(tracker)


@router.patch("/{tracker_id}", response_model=TrackerResponse)
async def update_tracker(
    tracker_id: str,
    data: TrackerUpdate,
    principal: CurrentPrincipal,
    registry: Registry,
) -> TrackerResponse:
    """Owner or super admin. A new site URL replaces the origin list."""
    changes = data.model_dump(exclude_unset=True, exclude_none=True)
    tracker = await registry.update(principal, tracker_id, **changes)
    return TrackerResponse.model_validate(tracker)


@router.delete("/{tracker_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_tracker(
    tracker_id: str,
    principal: CurrentPrincipal,
    registry: Registry,
) -> Response:
    """Removes the tracker together with its events, leads and members."""
    await registry.delete(principal, tracker_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{tracker_id}/revoke", response_model=TrackerResponse)
async def revoke_tracker(
    tracker_id: str,
    principal: CurrentPrincipal,
    registry: Registry,
) -> TrackerResponse:
    """Permanently stop ingestion. Data stays readable."""
    tracker = await registry.revoke(principal, tracker_id)
    return TrackerResponse.model_validate(tracker)


@router.get("/{tracker_id}/members", response_model=list[MemberResponse])
async def list_members(
    tracker_id: str,
    principal: CurrentPrincipal,
    registry: Registry,
) -> list[MemberResponse]:
    members = await registry.list_members(principal, tracker_id)
    return [MemberResponse.model_validate(m) for m in members]


@router.post(
    "/{tracker_id}/members",
    response_model=MemberResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_member(
    tracker_id: str,
    data: MemberCreate,
    principal: CurrentPrincipal,
    registry: Registry,
) -> MemberResponse:
    member = await registry.add_member(principal, tracker_id, data.email)
    return MemberResponse.model_validate(member)


@router.delete("/{tracker_id}/members/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_member(
    tracker_id: str,
    user_id: UUID,
    principal: CurrentPrincipal,
    registry: Registry,
) -> Response:
    await registry.remove_member(principal, tracker_id, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
