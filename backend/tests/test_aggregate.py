from __future__ import annotations

import pytest
from sqlalchemy.exc import OperationalError

from app.core.errors import ProviderError
from app.services.restaurants.aggregate import RestaurantAggregator, merge_venues, places_cache_key
from app.services.restaurants.cache import StaleWhileRevalidateCache
from conftest import HILTON, FakePlaces, InMemoryAttendanceStore, InMemoryCatalogStore, venue

RADIUS = 8046.7


@pytest.fixture
def parts(clock, executor):
    places = FakePlaces([venue("a", rating=4.5), venue("b", lat=40.7696, rating=3.0)])
    catalog = InMemoryCatalogStore()
    attendance = InMemoryAttendanceStore()
    aggregator = RestaurantAggregator(
        places=places,
        catalog=catalog,
        attendance=attendance,
        places_cache=StaleWhileRevalidateCache("places", ttl_seconds=1800, stale_seconds=86400, executor=executor, clock=clock),
        catalog_cache=StaleWhileRevalidateCache("catalog", ttl_seconds=300, stale_seconds=1800, executor=executor, clock=clock),
    )
    return places, catalog, attendance, aggregator


def test_merge_venues_later_copy_wins_and_keeps_position():
    merged = merge_venues(
        [venue("a", name="Provider A"), venue("b")],
        [venue("c"), venue("a", name="Catalog A")],
    )
    assert [v.id for v in merged] == ["a", "b", "c"]
    assert merged[0].name == "Catalog A"


def test_aggregate_attaches_distance_and_attendance(parts):
    places, catalog, attendance, aggregator = parts
    attendance.replace_membership("u1", "a")
    attendance.replace_membership("u2", "a")
    attendance.replace_membership("u3", "b")

    result = {v.id: v for v in aggregator.aggregate(*HILTON, RADIUS, "u3")}

    assert set(result) == {"a", "b"}
    assert result["a"].attendee_count == 2
    assert result["a"].distance_miles == 0
    assert result["a"].is_user_attending is False
    assert result["b"].attendee_count == 1
    assert result["b"].distance_miles == 0.7
    assert result["b"].is_user_attending is True


def test_restaurant_without_group_has_zero_attendees(parts):
    _, _, _, aggregator = parts
    result = aggregator.aggregate(*HILTON, RADIUS, "nobody")
    assert all(v.attendee_count == 0 and not v.is_user_attending for v in result)


def test_provider_results_are_upserted_into_catalog(parts):
    places, catalog, _, aggregator = parts
    aggregator.aggregate(*HILTON, RADIUS, "u1")
    assert set(catalog.rows) == {"a", "b"}


def test_shared_id_appears_once_with_catalog_fields(parts):
    places, catalog, _, aggregator = parts
    catalog.upsert_many([venue("a", name="Catalog A", rating=4.9), venue("z", name="Only in catalog")])
    # Snapshot taken before the provider refresh overwrites the row
    aggregator.catalog_venues()
    places.venues = [venue("a", name="Provider A", rating=4.5)]

    result = aggregator.aggregate(*HILTON, RADIUS, "u1")

    assert [v.id for v in result].count("a") == 1
    by_id = {v.id: v for v in result}
    assert by_id["a"].name == "Catalog A"
    assert by_id["a"].rating == 4.9
    assert "z" in by_id


def test_provider_is_cached_but_attendance_is_read_every_time(parts):
    places, _, attendance, aggregator = parts
    first = aggregator.aggregate(*HILTON, RADIUS, "u1")
    attendance.replace_membership("u1", "a")
    second = aggregator.aggregate(*HILTON, RADIUS, "u1")

    assert len(places.calls) == 1
    assert attendance.count_reads == 2
    assert {v.id: v.attendee_count for v in first}["a"] == 0
    assert {v.id: v.attendee_count for v in second}["a"] == 1
    assert {v.id: v.is_user_attending for v in second}["a"] is True


def test_cache_key_uses_exact_coordinates(parts):
    places, _, _, aggregator = parts
    aggregator.aggregate(*HILTON, RADIUS, "u1")
    aggregator.aggregate(HILTON[0] + 0.0001, HILTON[1], RADIUS, "u1")
    assert len(places.calls) == 2
    assert places_cache_key(1.5, -2.25, 100) == "restaurants:1.5:-2.25:100"


def test_provider_failure_degrades_to_catalog_only(parts):
    places, catalog, _, aggregator = parts
    catalog.upsert_many([venue("z")])
    places.error = ProviderError("OVER_QUERY_LIMIT")

    result = aggregator.aggregate(*HILTON, RADIUS, "u1")

    assert [v.id for v in result] == ["z"]


def test_provider_failure_with_stale_entry_serves_stale(parts, clock, executor):
    places, _, _, aggregator = parts
    aggregator.aggregate(*HILTON, RADIUS, "u1")
    places.error = ProviderError("UNKNOWN_ERROR")
    clock.advance(1800 + 60)

    result = aggregator.aggregate(*HILTON, RADIUS, "u1")
    executor.shutdown(wait=True)

    assert {v.id for v in result} == {"a", "b"}
    assert len(places.calls) == 2


def test_warm_refreshes_both_tiers(parts):
    places, catalog, _, aggregator = parts
    aggregator.aggregate(*HILTON, RADIUS, "u1")
    places.venues.append(venue("c"))

    assert aggregator.warm(*HILTON, RADIUS) == 3

    ids = {v.id for v in aggregator.aggregate(*HILTON, RADIUS, "u1")}
    assert ids == {"a", "b", "c"}
    assert len(places.calls) == 2


class _BrokenCatalog(InMemoryCatalogStore):
    def list_all(self):
        raise OperationalError("SELECT restaurants", {}, Exception("connection refused"))


class _BrokenAttendance(InMemoryAttendanceStore):
    def counts_by_restaurant(self):
        raise OperationalError("SELECT dinner_groups", {}, Exception("connection refused"))


def _aggregator(clock, executor, *, catalog, attendance, places=None):
    return RestaurantAggregator(
        places=places or FakePlaces([venue("a", rating=4.5)]),
        catalog=catalog,
        attendance=attendance,
        places_cache=StaleWhileRevalidateCache("places", ttl_seconds=1800, stale_seconds=86400, executor=executor, clock=clock),
        catalog_cache=StaleWhileRevalidateCache("catalog", ttl_seconds=300, stale_seconds=1800, executor=executor, clock=clock),
    )


def test_catalog_read_failure_keeps_provider_venues(clock, executor):
    aggregator = _aggregator(clock, executor, catalog=_BrokenCatalog(), attendance=InMemoryAttendanceStore())
    assert [v.id for v in aggregator.aggregate(*HILTON, RADIUS, "u1")] == ["a"]


def test_attendance_read_failure_returns_no_venues(clock, executor):
    aggregator = _aggregator(clock, executor, catalog=InMemoryCatalogStore(), attendance=_BrokenAttendance())
    assert aggregator.aggregate(*HILTON, RADIUS, "u1") == []


def test_upsert_failure_degrades_to_catalog(clock, executor):
    class _ReadOnlyCatalog(InMemoryCatalogStore):
        def upsert_many(self, venues):
            raise OperationalError("INSERT restaurants", {}, Exception("read-only"))

    catalog = _ReadOnlyCatalog([venue("stored")])
    aggregator = _aggregator(clock, executor, catalog=catalog, attendance=InMemoryAttendanceStore())
    assert [v.id for v in aggregator.aggregate(*HILTON, RADIUS, "u1")] == ["stored"]
