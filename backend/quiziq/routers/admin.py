"""
Administrative policy endpoints (super admin only).
"""
from fastapi import APIRouter

from quiziq.core.database import DbSession
from quiziq.repositories.policy import PolicyRepository
from quiziq.routers.deps import AdminPrincipal
from quiziq.schemas.policy import PolicyResponse, PolicyUpdate

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/policies", response_model=PolicyResponse)
async def get_policy(admin: AdminPrincipal, session: DbSession) -> PolicyResponse:
    policy = await PolicyRepository(session).get()
    return PolicyResponse.model_validate(policy)


@router.patch("/policies", response_model=PolicyResponse)
async def update_policy(
    data: PolicyUpdate,
    admin: AdminPrincipal,
    session: DbSession,
) -> PolicyResponse:
    """Partial update; takes effect on the next collector request."""
    updates = data.model_dump(exclude_unset=True, exclude_none=True)
    if "allowed_origins" in updates:
        updates["allowed_origins"] = [o.strip() for o in updates["allowed_origins"] if o.strip()]

    policy = await PolicyRepository(session).update_fields(updates)
    return PolicyResponse.model_validate(policy)
