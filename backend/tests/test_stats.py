"""
Tests for the aggregation engine and the stats endpoints.
"""
import pytest

from conftest import auth_headers
from quiziq.models.event import Event
from quiziq.models.tracker import TrackerMember
from quiziq.schemas.stats import StatsQuery
from quiziq.services.stats import StatsService, rate

DAY_1 = 1704067200000  # 2024-01-01T00:00:00Z
DAY_2 = 1704153600000  # 2024-01-02T00:00:00Z
FEB_1 = 1706745600000  # 2024-02-01T00:00:00Z
Y2025 = 1735689600000  # 2025-01-01T00:00:00Z


def test_rate_is_zero_without_denominator():
    assert rate(5, 0) == 0
    assert rate(0, 0) == 0


def test_rate_rounds_to_two_decimals_and_stays_in_range():
    assert rate(1, 3) == 33.33
    assert rate(2, 3) == 66.67
    assert rate(1, 1) == 100.0
    assert rate(5, 4) == 100.0


async def test_overview_example(db_session, make_tracker, owner, add_events):
    tracker = await make_tracker(owner)
    await add_events(
        tracker.tracker_id,
        ("page_view", DAY_1),
        ("quiz_start", DAY_1 + 1),
        ("quiz_complete", DAY_1 + 2),
    )

    result = await StatsService(db_session).overview(StatsQuery(tracker_id=tracker.tracker_id))

    assert result["visits"] == 1
    assert result["starts"] == 1
    assert result["completes"] == 1
    assert result["completionRate"] == 100.0
    assert result["leads"] == 0
    assert result["leadRate"] == 0
    assert result["timeseries"] == [
        {"date": "2024-01-01", "visits": 1, "starts": 1, "completes": 1, "leads": 0}
    ]


async def test_overview_rates(db_session, make_tracker, owner, add_events):
    tracker = await make_tracker(owner)
    await add_events(
        tracker.tracker_id,
        *[("page_view", DAY_1)] * 4,
        *[("quiz_start", DAY_1)] * 3,
        ("quiz_complete", DAY_1),
        ("lead_capture", DAY_1),
    )

    result = await StatsService(db_session).overview(StatsQuery(tracker_id=tracker.tracker_id))

    assert result["completionRate"] == 33.33
    assert result["leadRate"] == 25.0


async def test_overview_empty_tracker_has_zero_rates(db_session, make_tracker, owner):
    tracker = await make_tracker(owner)

    result = await StatsService(db_session).overview(StatsQuery(tracker_id=tracker.tracker_id))

    assert result["visits"] == 0
    assert result["completionRate"] == 0
    assert result["leadRate"] == 0
    assert result["timeseries"] == []


async def test_overview_ignores_other_trackers_and_unknown_kinds(db_session, make_tracker, owner, add_events):
    mine = await make_tracker(owner)
    theirs = await make_tracker(owner)
    await add_events(mine.tracker_id, ("page_view", DAY_1), ("cta_click", DAY_1), ("video_play", DAY_1))
    await add_events(theirs.tracker_id, ("page_view", DAY_1), ("page_view", DAY_1))

    result = await StatsService(db_session).overview(StatsQuery(tracker_id=mine.tracker_id))

    assert result["visits"] == 1
    assert result["starts"] == 0


async def test_range_bounds_are_inclusive(db_session, make_tracker, owner, add_events):
    tracker = await make_tracker(owner)
    await add_events(
        tracker.tracker_id,
        ("page_view", DAY_1 - 1),
        ("page_view", DAY_1),
        ("page_view", DAY_2),
        ("page_view", DAY_2 + 1),
    )

    query = StatsQuery(tracker_id=tracker.tracker_id, from_ts=DAY_1, to_ts=DAY_2)
    result = await StatsService(db_session).overview(query)

    assert result["visits"] == 2


@pytest.mark.parametrize(
    ("group_by", "labels"),
    [
        ("day", ["2024-01-01", "2024-01-02", "2024-02-01", "2025-01-01"]),
        ("month", ["2024-01", "2024-02", "2025-01"]),
        ("year", ["2024", "2025"]),
    ],
)
async def test_timeseries_buckets_sorted_ascending(db_session, make_tracker, owner, add_events, group_by, labels):
    tracker = await make_tracker(owner)
    # inserted out of order; ordering comes from ts
    await add_events(
        tracker.tracker_id,
        ("page_view", Y2025),
        ("page_view", FEB_1),
        ("page_view", DAY_2),
        ("page_view", DAY_1),
    )

    query = StatsQuery(tracker_id=tracker.tracker_id, group_by=group_by)
    result = await StatsService(db_session).overview(query)

    assert [point["date"] for point in result["timeseries"]] == labels
    assert sum(point["visits"] for point in result["timeseries"]) == 4


async def test_top_pages(db_session, make_tracker, owner, add_events):
    tracker = await make_tracker(owner)
    await add_events(tracker.tracker_id, *[("page_view", DAY_1)] * 3, path="/b")
    await add_events(tracker.tracker_id, *[("page_view", DAY_1)] * 3, path="/a")
    await add_events(tracker.tracker_id, ("page_view", DAY_1), path="/c")
    await add_events(tracker.tracker_id, *[("quiz_start", DAY_1)] * 10, path="/c")

    result = await StatsService(db_session).top_pages(StatsQuery(tracker_id=tracker.tracker_id))

    assert result == [
        {"path": "/a", "visits": 3},
        {"path": "/b", "visits": 3},
        {"path": "/c", "visits": 1},
    ]


async def test_top_pages_limited_to_twenty(db_session, make_tracker, owner, add_events):
    tracker = await make_tracker(owner)
    for i in range(25):
        await add_events(tracker.tracker_id, ("page_view", DAY_1), path=f"/p{i:02d}")

    result = await StatsService(db_session).top_pages(StatsQuery(tracker_id=tracker.tracker_id))

    assert len(result) == 20


async def test_dropoff_may_be_negative(db_session, make_tracker, owner, add_events):
    tracker = await make_tracker(owner)
    await add_events(
        tracker.tracker_id,
        ("quiz_start", DAY_1),
        ("quiz_start", DAY_1),
        ("quiz_complete", DAY_2),
        ("quiz_complete", DAY_2),
    )

    result = await StatsService(db_session).dropoff(StatsQuery(tracker_id=tracker.tracker_id))

    assert result == [
        {"date": "2024-01-01", "starts": 2, "completes": 0, "dropoff": 2},
        {"date": "2024-01-02", "starts": 0, "completes": 2, "dropoff": -2},
    ]


async def test_dropoff_filters_by_quiz(db_session, make_tracker, owner, add_events):
    tracker = await make_tracker(owner)
    await add_events(tracker.tracker_id, ("quiz_start", DAY_1), ("quiz_complete", DAY_1), quiz_id="q1")
    await add_events(tracker.tracker_id, ("quiz_start", DAY_1), quiz_id="q2")

    result = await StatsService(db_session).dropoff(
        StatsQuery(tracker_id=tracker.tracker_id), quiz_id="q1"
    )

    assert result == [{"date": "2024-01-01", "starts": 1, "completes": 1, "dropoff": 0}]


async def test_utm_groups_include_nulls(db_session, make_tracker, owner, add_events):
    tracker = await make_tracker(owner)
    await add_events(
        tracker.tracker_id,
        ("page_view", DAY_1),
        ("quiz_start", DAY_1),
        ("quiz_complete", DAY_1),
        utm_source="google",
        utm_medium="cpc",
        utm_campaign="spring",
    )
    await add_events(tracker.tracker_id, ("page_view", DAY_1))

    result = await StatsService(db_session).utm_stats(StatsQuery(tracker_id=tracker.tracker_id))

    assert result == [
        {
            "utm_source": "google",
            "utm_medium": "cpc",
            "utm_campaign": "spring",
            "visits": 1,
            "starts": 1,
            "completes": 1,
        },
        {
            "utm_source": None,
            "utm_medium": None,
            "utm_campaign": None,
            "visits": 1,
            "starts": 0,
            "completes": 0,
        },
    ]


async def test_overview_endpoint(async_client, make_tracker, owner, add_events):
    tracker = await make_tracker(owner)
    await add_events(tracker.tracker_id, ("page_view", DAY_1), ("quiz_start", DAY_1))

    response = await async_client.get(
        "/api/stats/overview",
        params={"tracker_id": tracker.tracker_id, "groupBy": "month"},
        headers=auth_headers(owner),
    )

    assert response.status_code == 200
    data = response.json()
    assert data["visits"] == 1
    assert data["completionRate"] == 0
    assert data["timeseries"][0]["date"] == "2024-01"


@pytest.mark.parametrize("endpoint", ["overview", "top-pages", "dropoff", "utm"])
async def test_stats_endpoints_are_repeatable(async_client, make_tracker, owner, add_events, endpoint):
    tracker = await make_tracker(owner)
    # Tied page counts, tied UTM groups and rows without UTM values
    await add_events(tracker.tracker_id, ("page_view", DAY_1), ("quiz_start", DAY_1), path="/b")
    await add_events(tracker.tracker_id, ("page_view", DAY_1), ("quiz_complete", DAY_2), path="/a")
    await add_events(tracker.tracker_id, ("page_view", DAY_2), path="/c", utm_source="google")
    await add_events(tracker.tracker_id, ("page_view", DAY_2), path="/d", utm_source="bing")
    params = {"tracker_id": tracker.tracker_id, "from": DAY_1, "to": DAY_2, "groupBy": "day"}

    first = await async_client.get(f"/api/stats/{endpoint}", params=params, headers=auth_headers(owner))
    second = await async_client.get(f"/api/stats/{endpoint}", params=params, headers=auth_headers(owner))

    assert first.status_code == 200
    assert first.content == second.content


async def test_stats_require_authentication(async_client, make_tracker, owner):
    tracker = await make_tracker(owner)

    response = await async_client.get("/api/stats/overview", params={"tracker_id": tracker.tracker_id})

    assert response.status_code == 401
    assert response.json() == {"error": "Unauthorized"}


async def test_stats_reject_invalid_token(async_client, make_tracker, owner):
    tracker = await make_tracker(owner)

    response = await async_client.get(
        "/api/stats/top-pages",
        params={"tracker_id": tracker.tracker_id},
        headers={"Authorization": "Bearer not-a-token"},
    )

    assert response.status_code == 401


async def test_stats_forbidden_for_stranger(async_client, make_tracker, owner, other_user):
    tracker = await make_tracker(owner)

    response = await async_client.get(
        "/api/stats/utm",
        params={"tracker_id": tracker.tracker_id},
        headers=auth_headers(other_user),
    )

    assert response.status_code == 403


async def test_stats_allowed_for_member_and_admin(
    async_client, db_session, make_tracker, owner, other_user, admin_user
):
    tracker = await make_tracker(owner)
    db_session.add(TrackerMember(tracker_id=tracker.tracker_id, user_id=other_user.id))
    await db_session.commit()

    for user in (other_user, admin_user):
        response = await async_client.get(
            "/api/stats/dropoff",
            params={"tracker_id": tracker.tracker_id},
            headers=auth_headers(user),
        )
        assert response.status_code == 200
        assert response.json() == []


@pytest.mark.parametrize(
    "params",
    [
        {},
        {"groupBy": "week"},
        {"from": "yesterday"},
        {"from": "2000", "to": "1000"},
    ],
)
async def test_stats_invalid_query_is_400(async_client, make_tracker, owner, params):
    tracker = await make_tracker(owner)
    if params:
        params = {"tracker_id": tracker.tracker_id, **params}

    response = await async_client.get("/api/stats/overview", params=params, headers=auth_headers(owner))

    assert response.status_code == 400
    assert response.json()["error"] == "Invalid input"


def test_events_indexed_for_per_kind_aggregation():
    indexed = {tuple(column.name for column in index.columns) for index in Event.__table__.indexes}

    assert ("tracker_id", "ts") in indexed
    assert ("tracker_id", "ev", "ts") in indexed
