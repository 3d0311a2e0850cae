"""
Tests for tracker management endpoints and the tracker registry.
"""
import re

from sqlalchemy import func, select

from conftest import SITE, auth_headers
from quiziq.models import Event, Lead, Tracker, TrackerMember
from quiziq.repositories.policy import PolicyRepository

TRACKER_ID = re.compile(r"^trk_[0-9a-f]{16}$")


async def test_create_tracker(async_client, owner):
    response = await async_client.post(
        "/api/trackers",
        json={"name": "Spring quiz", "siteUrl": "https://Quiz.Example.com/landing?x=1"},
        headers=auth_headers(owner),
    )

    assert response.status_code == 201
    data = response.json()
    assert TRACKER_ID.match(data["trackerId"])
    assert data["origins"] == ["https://quiz.example.com"]
    assert data["active"] is True
    assert data["revokedAt"] is None
    assert data["ownerUserId"] == str(owner.id)
    assert "id" not in data


async def test_create_tracker_invalid_site_url(async_client, owner):
    response = await async_client.post(
        "/api/trackers",
        json={"name": "Bad", "siteUrl": "quiz.example.com"},
        headers=auth_headers(owner),
    )

    assert response.status_code == 400
    assert response.json() == {"error": "Invalid site URL"}


async def test_create_tracker_origin_blocked_by_policy(async_client, db_session, owner):
    await PolicyRepository(db_session).update_fields({"allowed_origins": ["trusted.test"]})
    await db_session.commit()

    response = await async_client.post(
        "/api/trackers",
        json={"name": "Blocked", "siteUrl": SITE},
        headers=auth_headers(owner),
    )

    assert response.status_code == 403


async def test_create_tracker_quota(async_client, db_session, owner, make_tracker):
    await PolicyRepository(db_session).update_fields({"max_trackers_per_user": 2})
    await db_session.commit()
    await make_tracker(owner)
    await make_tracker(owner)

    response = await async_client.post(
        "/api/trackers",
        json={"name": "Third", "siteUrl": SITE},
        headers=auth_headers(owner),
    )

    assert response.status_code == 403
    assert response.json() == {"error": "Tracker quota exceeded. Max: 2"}


async def test_list_trackers_scoped_to_caller(
    async_client, db_session, owner, other_user, admin_user, make_tracker
):
    owned = await make_tracker(owner, name="Owned")
    shared = await make_tracker(other_user, name="Shared")
    await make_tracker(other_user, name="Private")
    db_session.add(TrackerMember(tracker_id=shared.tracker_id, user_id=owner.id))
    await db_session.commit()

    response = await async_client.get("/api/trackers", headers=auth_headers(owner))
    admin_response = await async_client.get("/api/trackers", headers=auth_headers(admin_user))

    assert response.status_code == 200
    assert {t["trackerId"] for t in response.json()} == {owned.tracker_id, shared.tracker_id}
    assert len(admin_response.json()) == 3


async def test_get_tracker_checks_access_before_existence(async_client, owner, other_user, make_tracker):
    tracker = await make_tracker(owner)

    forbidden = await async_client.get(f"/api/trackers/{tracker.tracker_id}", headers=auth_headers(other_user))
    missing = await async_client.get("/api/trackers/trk_doesnotexist00", headers=auth_headers(owner))

    assert forbidden.status_code == 403
    assert missing.status_code == 403


async def test_get_missing_tracker_as_admin_is_404(async_client, admin_user):
    response = await async_client.get("/api/trackers/trk_doesnotexist00", headers=auth_headers(admin_user))

    assert response.status_code == 404


async def test_update_site_url_replaces_origins(async_client, owner, make_tracker):
    tracker = await make_tracker(owner, origins=[SITE, "https://old.example.com"])

    response = await async_client.patch(
        f"/api/trackers/{tracker.tracker_id}",
        json={"name": "Renamed", "siteUrl": "https://new.example.com/quiz"},
        headers=auth_headers(owner),
    )

    assert response.status_code == 200
    data = response.json()
    assert data["name"] == "Renamed"
    assert data["siteUrl"] == "https://new.example.com/quiz"
    assert data["origins"] == ["https://new.example.com"]


async def test_update_origins_are_normalized_and_validated(async_client, db_session, owner, make_tracker):
    tracker = await make_tracker(owner)

    ok = await async_client.patch(
        f"/api/trackers/{tracker.tracker_id}",
        json={"origins": ["https://A.example.com/path", "https://a.example.com", "http://b.example.com:8080"]},
        headers=auth_headers(owner),
    )
    bad = await async_client.patch(
        f"/api/trackers/{tracker.tracker_id}",
        json={"origins": ["nonsense"]},
        headers=auth_headers(owner),
    )

    assert ok.status_code == 200
    assert ok.json()["origins"] == ["https://a.example.com", "http://b.example.com:8080"]
    assert bad.status_code == 400

    await PolicyRepository(db_session).update_fields({"allowed_origins": ["example.com"]})
    await db_session.commit()
    blocked = await async_client.patch(
        f"/api/trackers/{tracker.tracker_id}",
        json={"origins": ["https://elsewhere.test"]},
        headers=auth_headers(owner),
    )
    assert blocked.status_code == 403


async def test_update_deactivate(async_client, owner, make_tracker):
    tracker = await make_tracker(owner)

    response = await async_client.patch(
        f"/api/trackers/{tracker.tracker_id}",
        json={"active": False, "pageRules": {"include": ["/quiz/*"]}},
        headers=auth_headers(owner),
    )

    assert response.status_code == 200
    assert response.json()["active"] is False
    assert response.json()["pageRules"] == {"include": ["/quiz/*"]}


async def test_member_cannot_modify(async_client, db_session, owner, other_user, make_tracker):
    tracker = await make_tracker(owner)
    db_session.add(TrackerMember(tracker_id=tracker.tracker_id, user_id=other_user.id))
    await db_session.commit()

    response = await async_client.patch(
        f"/api/trackers/{tracker.tracker_id}",
        json={"name": "Hijacked"},
        headers=auth_headers(other_user),
    )

    assert response.status_code == 403


async def test_admin_can_modify_any_tracker(async_client, owner, admin_user, make_tracker):
    tracker = await make_tracker(owner)

    response = await async_client.patch(
        f"/api/trackers/{tracker.tracker_id}",
        json={"name": "Moderated"},
        headers=auth_headers(admin_user),
    )

    assert response.status_code == 200
    assert response.json()["name"] == "Moderated"


async def test_revoke_is_terminal_and_keeps_first_timestamp(async_client, owner, make_tracker):
    tracker = await make_tracker(owner)

    first = await async_client.post(f"/api/trackers/{tracker.tracker_id}/revoke", headers=auth_headers(owner))
    second = await async_client.post(f"/api/trackers/{tracker.tracker_id}/revoke", headers=auth_headers(owner))

    assert first.status_code == 200
    assert first.json()["revokedAt"] is not None
    assert second.json()["revokedAt"] == first.json()["revokedAt"]


async def test_revoke_by_stranger_is_forbidden(async_client, owner, other_user, make_tracker):
    tracker = await make_tracker(owner)

    response = await async_client.post(
        f"/api/trackers/{tracker.tracker_id}/revoke",
        headers=auth_headers(other_user),
    )

    assert response.status_code == 403


async def test_delete_cascades(async_client, db_session, owner, other_user, make_tracker, add_events, add_lead):
    tracker = await make_tracker(owner)
    keep = await make_tracker(owner)
    await add_events(tracker.tracker_id, ("page_view", 1), ("quiz_start", 2))
    await add_events(keep.tracker_id, ("page_view", 1))
    await add_lead(tracker.tracker_id, 3, email="a@example.com")
    db_session.add(TrackerMember(tracker_id=tracker.tracker_id, user_id=other_user.id))
    await db_session.commit()

    response = await async_client.delete(f"/api/trackers/{tracker.tracker_id}", headers=auth_headers(owner))

    assert response.status_code == 204

    async def count(model, column):
        stmt = select(func.count()).select_from(model).where(column == tracker.tracker_id)
        return (await db_session.execute(stmt)).scalar()

    assert await count(Tracker, Tracker.tracker_id) == 0
    assert await count(Event, Event.tracker_id) == 0
    assert await count(Lead, Lead.tracker_id) == 0
    assert await count(TrackerMember, TrackerMember.tracker_id) == 0
    remaining = await db_session.execute(select(func.count()).select_from(Event))
    assert remaining.scalar() == 1


async def test_delete_missing_tracker(async_client, owner):
    response = await async_client.delete("/api/trackers/trk_doesnotexist00", headers=auth_headers(owner))

    assert response.status_code == 404


async def test_membership_lifecycle(async_client, owner, other_user, make_tracker):
    tracker = await make_tracker(owner)
    base = f"/api/trackers/{tracker.tracker_id}/members"

    added = await async_client.post(base, json={"email": other_user.email}, headers=auth_headers(owner))
    duplicate = await async_client.post(base, json={"email": other_user.email}, headers=auth_headers(owner))
    listed = await async_client.get(base, headers=auth_headers(owner))
    visible = await async_client.get(f"/api/trackers/{tracker.tracker_id}", headers=auth_headers(other_user))
    removed = await async_client.delete(f"{base}/{other_user.id}", headers=auth_headers(owner))
    hidden = await async_client.get(f"/api/trackers/{tracker.tracker_id}", headers=auth_headers(other_user))

    assert added.status_code == 201
    assert added.json() == {"trackerId": tracker.tracker_id, "userId": str(other_user.id), "role": "viewer"}
    assert duplicate.status_code == 409
    assert [m["userId"] for m in listed.json()] == [str(other_user.id)]
    assert visible.status_code == 200
    assert removed.status_code == 204
    assert hidden.status_code == 403


async def test_add_member_errors(async_client, owner, other_user, make_tracker):
    tracker = await make_tracker(owner)
    base = f"/api/trackers/{tracker.tracker_id}/members"

    unknown = await async_client.post(base, json={"email": "nobody@example.com"}, headers=auth_headers(owner))
    self_add = await async_client.post(base, json={"email": owner.email}, headers=auth_headers(owner))
    not_owner = await async_client.post(base, json={"email": owner.email}, headers=auth_headers(other_user))
    missing = await async_client.delete(f"{base}/{other_user.id}", headers=auth_headers(owner))

    assert unknown.status_code == 404
    assert self_add.status_code == 409
    assert not_owner.status_code == 403
    assert missing.status_code == 404


async def test_trackers_require_authentication(async_client):
    response = await async_client.get("/api/trackers")

    assert response.status_code == 401


async def test_cookie_token_is_accepted(async_client, owner):
    token = auth_headers(owner)["Authorization"].split(" ", 1)[1]
    async_client.cookies.set("auth-token", token)

    response = await async_client.get("/api/trackers")

    assert response.status_code == 200
