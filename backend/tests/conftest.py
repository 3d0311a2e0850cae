"""
Shared fixtures: a throwaway SQLite database per test, the application
wired to it, and a few users with tokens.
"""
import os

# Settings are read at import time, so the environment comes first
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["SECRET_KEY"] = "test-secret-key-with-at-least-32-characters"
os.environ["ENVIRONMENT"] = "test"
os.environ["RATE_LIMIT_BACKEND"] = "memory"
os.environ["ALLOWED_ORIGINS"] = "http://dashboard.test"

from collections.abc import AsyncGenerator  # noqa: E402
from typing import Any, Optional  # noqa: E402

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from quiziq.core.database import Base, get_db_session  # noqa: E402
from quiziq.core.security import ROLE_FRIEND, ROLE_SUPER_ADMIN, create_access_token  # noqa: E402
from quiziq.main import create_app  # noqa: E402
from quiziq.models import Event, Lead, Tracker, User  # noqa: E402
from quiziq.repositories.policy import PolicyRepository  # noqa: E402
from quiziq.routers.deps import get_rate_limiter  # noqa: E402
from quiziq.services.rate_limit import InMemoryRateLimiter  # noqa: E402

SITE = "https://quiz.example.com"


@pytest.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'quiziq.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        await PolicyRepository(session).ensure_default()
        await session.commit()
        yield session


@pytest.fixture
def rate_limiter() -> InMemoryRateLimiter:
    return InMemoryRateLimiter()


@pytest.fixture
def app(session_factory, rate_limiter, db_session):
    application = create_app()

    async def override_session() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    application.dependency_overrides[get_db_session] = override_session
    application.dependency_overrides[get_rate_limiter] = lambda: rate_limiter
    return application


@pytest.fixture
async def async_client(app) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=app, client=("203.0.113.7", 50000))
    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client


# ----------------------------------------------------------------------
# Users and tokens
# ----------------------------------------------------------------------

async def _user(session: AsyncSession, email: str, role: str) -> User:
    user = User(email=email, role=role)
    session.add(user)
    await session.commit()
    await session.refresh(user)
    return user


@pytest.fixture
async def owner(db_session) -> User:
    return await _user(db_session, "owner@example.com", ROLE_FRIEND)


@pytest.fixture
async def other_user(db_session) -> User:
    return await _user(db_session, "other@example.com", ROLE_FRIEND)


@pytest.fixture
async def admin_user(db_session) -> User:
    return await _user(db_session, "admin@example.com", ROLE_SUPER_ADMIN)


def auth_headers(user: User) -> dict[str, str]:
    token = create_access_token({"sub": str(user.id), "email": user.email, "role": user.role})
    return {"Authorization": f"Bearer {token}"}


# ----------------------------------------------------------------------
# Data builders
# ----------------------------------------------------------------------

@pytest.fixture
def make_tracker(db_session):
    counter = iter(range(1, 10_000))

    async def _make(
        owner: User,
        *,
        origins: Optional[list[str]] = None,
        active: bool = True,
        name: str = "Quiz",
        site_url: str = SITE,
    ) -> Tracker:
        tracker = Tracker(
            tracker_id=f"trk_{next(counter):016x}",
            owner_user_id=owner.id,
            name=name,
            site_url=site_url,
            origins=[SITE] if origins is None else origins,
            active=active,
        )
        db_session.add(tracker)
        await db_session.commit()
        await db_session.refresh(tracker)
        return tracker

    return _make


@pytest.fixture
def add_events(db_session):
    async def _add(tracker_id: str, *events: tuple[str, int], **fields: Any) -> None:
        for ev, ts in events:
            db_session.add(Event(
                tracker_id=tracker_id,
                ev=ev,
                ts=ts,
                sid=fields.get("sid", "s1"),
                page_url=fields.get("page_url", f"{SITE}/"),
                path=fields.get("path", "/"),
                utm_source=fields.get("utm_source"),
                utm_medium=fields.get("utm_medium"),
                utm_campaign=fields.get("utm_campaign"),
                quiz_id=fields.get("quiz_id"),
            ))
        await db_session.commit()

    return _add


@pytest.fixture
def add_lead(db_session):
    async def _add(tracker_id: str, ts: int, **fields: Any) -> Lead:
        lead = Lead(tracker_id=tracker_id, ts=ts, sid=fields.pop("sid", "s1"), **fields)
        db_session.add(lead)
        await db_session.commit()
        await db_session.refresh(lead)
        return lead

    return _add


def collect_payload(tracker_id: str, **overrides: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "tracker_id": tracker_id,
        "ev": "page_view",
        "ts": 1704067200000,
        "sid": "sess-1",
        "page_url": f"{SITE}/quiz?utm_source=ads",
        "path": "/quiz",
    }
    payload.update(overrides)
    return payload
