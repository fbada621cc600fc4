from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from app.api.deps import build_container
from app.core.errors import ProviderError
from app.main import app
from app.services.attendance_service import AttendanceService
from conftest import HILTON, ConflictingAttendanceStore, FakePlaces, venue

client = TestClient(app)
USER = {"X-User-Id": "user-1"}


@pytest.fixture
def places():
    return FakePlaces(
        [
            venue("near", rating=4.5, price_level=2),
            venue("far", lat=HILTON[0] + 0.03, rating=4.9),
            venue("meh", lat=HILTON[0] + 0.005, rating=3.0, price_level=1),
        ]
    )


@pytest.fixture
def container(session_factory, places):
    c = build_container(session_factory, places=places)
    app.state.container = c
    yield c
    del app.state.container
    c.shutdown()


def test_health():
    assert client.get("/health").json() == {"status": "ok"}


def test_user_header_is_required(container):
    assert client.get("/restaurants").status_code == 401


def test_list_restaurants_default_filters(container):
    resp = client.get("/restaurants", headers=USER)
    assert resp.status_code == 200
    body = resp.json()
    assert body["restaurants_with_attendance"] == []
    assert [r["id"] for r in body["restaurants_nearby"]] == ["near", "meh"]
    assert body["filters"] == {}


def test_list_restaurants_with_filters(container):
    resp = client.get("/restaurants", params={"distance": "5", "rating": "4", "price": "abc"}, headers=USER)
    body = resp.json()
    assert [r["id"] for r in body["restaurants_nearby"]] == ["far", "near"]
    assert body["filters"] == {"distance": 5.0, "rating": 4.0}


def test_join_then_leave(container):
    resp = client.post("/restaurants/action", json={"intent": "join", "restaurant_id": "near"}, headers=USER)
    assert resp.status_code == 200
    assert resp.json() == {"success": True}

    body = client.get("/restaurants", headers=USER).json()
    [attending] = body["restaurants_with_attendance"]
    assert attending["id"] == "near"
    assert attending["attendee_count"] == 1
    assert attending["is_user_attending"] is True
    assert "near" not in [r["id"] for r in body["restaurants_nearby"]]

    assert client.post("/restaurants/action", json={"intent": "leave"}, headers=USER).json() == {"success": True}
    body = client.get("/restaurants", headers=USER).json()
    assert body["restaurants_with_attendance"] == []


def test_invalid_action_is_rejected(container):
    resp = client.post("/restaurants/action", json={"intent": "dance"}, headers=USER)
    assert resp.status_code == 422


def test_conflict_maps_to_try_again(container):
    container.attendance = AttendanceService(ConflictingAttendanceStore(conflicts=5))
    resp = client.post("/restaurants/action", json={"intent": "join", "restaurant_id": "near"}, headers=USER)
    assert resp.status_code == 409
    assert "try again" in resp.json()["detail"]


def test_provider_outage_still_lists_catalog(container, places):
    client.get("/restaurants", headers=USER)
    container.places_cache.clear()
    places.error = ProviderError("OVER_QUERY_LIMIT")
    resp = client.get("/restaurants", headers=USER)
    assert resp.status_code == 200
    assert [r["id"] for r in resp.json()["restaurants_nearby"]] == ["near", "meh"]


def test_photo_proxy(container):
    resp = client.get("/resources/maps/photo", params={"photoRef": "ref1"})
    assert resp.status_code == 200
    assert resp.content == b"\x89PNG fake"
    assert resp.headers["cache-control"] == "public, max-age=86400"
    assert resp.headers["content-type"].startswith("image/png")


def test_photo_proxy_requires_ref(container):
    assert client.get("/resources/maps/photo").status_code == 422


def test_photo_proxy_request_failure_is_bad_gateway(container, places):
    places.error = ProviderError("REQUEST_FAILED")
    assert client.get("/resources/maps/photo", params={"photoRef": "x"}).status_code == 502


def test_photo_proxy_passes_upstream_status_through(container, places):
    places.error = ProviderError("HTTP_404", "Failed to fetch photo", http_status=404)
    resp = client.get("/resources/maps/photo", params={"photoRef": "expired"})
    assert resp.status_code == 404
    assert resp.json()["detail"] == "Failed to fetch photo"


def test_cache_stats(container):
    client.get("/restaurants", headers=USER)
    client.get("/restaurants", headers=USER)
    stats = client.get("/restaurants/cache-stats").json()
    assert stats["places"]["misses"] == 1
    assert stats["places"]["hits"] == 1
