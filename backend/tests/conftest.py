from __future__ import annotations

import os

# Before any app import: settings and engine are built at import time
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("GOOGLE_PLACES_API_KEY", "test-key")

import threading
from concurrent.futures import ThreadPoolExecutor

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from app.core.errors import ConflictError
from app.db.base import Base
from app.models import Attendee, DinnerGroup, Restaurant  # noqa: F401
from app.services.places.types import PhotoResponse, VenueRecord

HILTON = (40.7596, -111.8867)


def venue(vid: str, *, lat: float = HILTON[0], lng: float = HILTON[1], **kw) -> VenueRecord:
    return VenueRecord(
        id=vid,
        name=kw.get("name", f"Restaurant {vid}"),
        price_level=kw.get("price_level"),
        rating=kw.get("rating"),
        lat=lat,
        lng=lng,
        photo_ref=kw.get("photo_ref"),
        maps_url=kw.get("maps_url"),
    )


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakePlaces:
    """Stands in for GooglePlacesClient: returns configured venues or raises."""

    def __init__(self, venues: list[VenueRecord] | None = None) -> None:
        self.venues = list(venues or [])
        self.error: Exception | None = None
        self.calls: list[tuple[float, float, float]] = []
        self.photo = PhotoResponse(content=b"\x89PNG fake", content_type="image/png")

    def search(self, lat: float, lng: float, radius_meters: float) -> list[VenueRecord]:
        self.calls.append((lat, lng, radius_meters))
        if self.error is not None:
            raise self.error
        return list(self.venues)

    def fetch_photo(self, photo_ref: str, max_width: int = 400) -> PhotoResponse:
        if self.error is not None:
            raise self.error
        return self.photo


class InMemoryCatalogStore:
    def __init__(self, venues: list[VenueRecord] | None = None) -> None:
        self.rows: dict[str, VenueRecord] = {v.id: v for v in venues or []}
        self.list_calls = 0

    def upsert_many(self, venues) -> int:
        venues = list(venues)
        for v in venues:
            self.rows[v.id] = v
        return len(venues)

    def list_all(self) -> list[VenueRecord]:
        self.list_calls += 1
        return list(self.rows.values())


class InMemoryAttendanceStore:
    """Same contract as SqlAttendanceStore; unique user/restaurant enforced under one lock."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.groups: dict[str, int] = {}  # restaurant_id -> group id
        self.members: dict[str, int] = {}  # user_id -> group id
        self.count_reads = 0

    def counts_by_restaurant(self) -> dict[str, int]:
        with self._lock:
            self.count_reads += 1
            by_group: dict[int, int] = {}
            for gid in self.members.values():
                by_group[gid] = by_group.get(gid, 0) + 1
            return {rid: by_group[gid] for rid, gid in self.groups.items() if gid in by_group}

    def current_restaurant_id(self, user_id: str) -> str | None:
        with self._lock:
            gid = self.members.get(user_id)
            return next((rid for rid, g in self.groups.items() if g == gid), None)

    def replace_membership(self, user_id: str, restaurant_id: str) -> None:
        with self._lock:
            self.members.pop(user_id, None)
            gid = self.groups.setdefault(restaurant_id, len(self.groups) + 1)
            self.members[user_id] = gid

    def delete_membership(self, user_id: str) -> bool:
        with self._lock:
            return self.members.pop(user_id, None) is not None


class ConflictingAttendanceStore(InMemoryAttendanceStore):
    """Raises ConflictError on the first `conflicts` replace_membership calls."""

    def __init__(self, conflicts: int) -> None:
        super().__init__()
        self.conflicts = conflicts
        self.replace_calls = 0

    def replace_membership(self, user_id: str, restaurant_id: str) -> None:
        self.replace_calls += 1
        if self.replace_calls <= self.conflicts:
            raise ConflictError("simulated concurrent change")
        super().replace_membership(user_id, restaurant_id)


@pytest.fixture
def session_factory(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'test.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture
def executor():
    ex = ThreadPoolExecutor(max_workers=2, thread_name_prefix="test_refresh")
    yield ex
    ex.shutdown(wait=True)


@pytest.fixture
def clock():
    return FakeClock()
