"""
Security utilities: JWT verification and principal resolution.

Tokens are issued by the identity service; this module only needs to
verify them and turn the claims into a ``Principal``. The collector never
goes through here.
"""
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Annotated, Any
from uuid import UUID

from fastapi import Depends, Request
from jose import JWTError, jwt

from quiziq.core.config import settings
from quiziq.core.exceptions import UnauthorizedError
from quiziq.core.logging import get_logger

logger = get_logger(__name__)

ROLE_SUPER_ADMIN = "super_admin"
ROLE_FRIEND = "friend"
ROLES = (ROLE_SUPER_ADMIN, ROLE_FRIEND)


@dataclass(frozen=True)
class Principal:
    """An already-authenticated dashboard user."""

    user_id: UUID
    email: str
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_SUPER_ADMIN


def create_access_token(
    data: dict[str, Any],
    expires_delta: timedelta | None = None,
) -> str:
    """Create a JWT access token."""
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(hours=settings.jwt_expiration_hours)
    )
    to_encode.update({"exp": expire, "iat": datetime.now(timezone.utc)})
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> dict[str, Any] | None:
    """Decode and validate a JWT access token."""
    try:
        return jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError as e:
        logger.warning("Invalid JWT token", error=str(e))
        return None


def principal_from_claims(claims: dict[str, Any]) -> Principal | None:
    """Build a principal from token claims, or None if they are incomplete."""
    role = claims.get("role")
    if role not in ROLES:
        return None
    try:
        user_id = UUID(str(claims.get("sub")))
    except ValueError:
        return None
    return Principal(user_id=user_id, email=claims.get("email") or "", role=role)


def _extract_token(request: Request) -> str | None:
    authorization = request.headers.get("authorization", "")
    scheme, _, credentials = authorization.partition(" ")
    if scheme.lower() == "bearer" and credentials:
        return credentials.strip()
    return request.cookies.get(settings.auth_cookie_name)


async def get_current_principal(request: Request) -> Principal:
    """Dependency resolving the caller of a dashboard endpoint."""
    token = _extract_token(request)
    if not token:
        raise UnauthorizedError()

    claims = decode_access_token(token)
    principal = principal_from_claims(claims) if claims else None
    if principal is None:
        raise UnauthorizedError()
    return principal


CurrentPrincipal = Annotated[Principal, Depends(get_current_principal)]


def generate_tracker_id() -> str:
    """Opaque external tracker id, distinct from the internal UUID."""
    return f"trk_{secrets.token_hex(8)}"
