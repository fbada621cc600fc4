"""
Restaurant details for one user around one search center.

Provider results (tier 1 cache) and the persisted catalog (tier 2 cache) are merged,
deduplicated by id and enriched with distance, live attendee counts and the user's own
membership. Attendance is read from the store on every call and never cached.

Merge order is fixed: provider venues first, catalog venues second, and the later copy
wins, so on divergence the persisted catalog's fields are returned.
"""
import logging
from dataclasses import asdict, dataclass
from typing import Any

from sqlalchemy.exc import SQLAlchemyError

from app.core.constants import CATALOG_CACHE_KEY
from app.core.errors import ProviderError
from app.services.attendance_service import AttendanceStore
from app.services.places.client import GooglePlacesClient
from app.services.places.types import VenueRecord
from app.services.restaurants.cache import StaleWhileRevalidateCache
from app.services.restaurants.catalog import CatalogStore
from app.services.restaurants.distance import distance_miles

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AggregatedVenue:
    id: str
    name: str
    price_level: int | None
    rating: float | None
    lat: float
    lng: float
    photo_ref: str | None
    maps_url: str | None
    distance_miles: float
    attendee_count: int
    is_user_attending: bool

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def places_cache_key(lat: float, lng: float, radius_meters: float) -> str:
    """Exact (lat, lng, radius) key; nearby but different centers do not share entries."""
    return f"restaurants:{lat}:{lng}:{radius_meters}"


def merge_venues(*sources: list[VenueRecord]) -> list[VenueRecord]:
    """Concatenate sources and dedupe by id. Later copies overwrite earlier ones in place."""
    by_id: dict[str, VenueRecord] = {}
    for source in sources:
        for venue in source:
            by_id[venue.id] = venue
    return list(by_id.values())


class RestaurantAggregator:
    def __init__(
        self,
        places: GooglePlacesClient,
        catalog: CatalogStore,
        attendance: AttendanceStore,
        places_cache: StaleWhileRevalidateCache,
        catalog_cache: StaleWhileRevalidateCache,
    ) -> None:
        self._places = places
        self._catalog = catalog
        self._attendance = attendance
        self._places_cache = places_cache
        self._catalog_cache = catalog_cache

    def fetch_and_store(self, lat: float, lng: float, radius_meters: float) -> list[VenueRecord]:
        """Cache-miss path for tier 1: query Places and upsert every result into the catalog."""
        venues = self._places.search(lat, lng, radius_meters)
        written = self._catalog.upsert_many(venues)
        logger.debug("Upserted %d restaurants from Places", written)
        return venues

    def provider_venues(self, lat: float, lng: float, radius_meters: float) -> list[VenueRecord]:
        """Tier 1. A provider or upsert failure with nothing servable degrades to no provider venues."""
        try:
            return self._places_cache.get_or_fetch(
                places_cache_key(lat, lng, radius_meters),
                lambda: self.fetch_and_store(lat, lng, radius_meters),
            )
        except (ProviderError, SQLAlchemyError) as e:
            logger.warning("Places unavailable and no cached results for (%s,%s r=%s): %s", lat, lng, radius_meters, e)
            return []

    def catalog_venues(self) -> list[VenueRecord]:
        """Tier 2: snapshot of every restaurant we have ever stored."""
        return self._catalog_cache.get_or_fetch(CATALOG_CACHE_KEY, self._catalog.list_all)

    def warm(self, lat: float, lng: float, radius_meters: float) -> int:
        """Refresh both cache tiers for one search so requests keep hitting fresh entries."""
        venues = self._places_cache.refresh(
            places_cache_key(lat, lng, radius_meters),
            lambda: self.fetch_and_store(lat, lng, radius_meters),
        )
        self._catalog_cache.refresh(CATALOG_CACHE_KEY, self._catalog.list_all)
        return len(venues)

    def aggregate(self, lat: float, lng: float, radius_meters: float, user_id: str) -> list[AggregatedVenue]:
        """Merged, enriched venues. Read failures degrade (logged) instead of raising."""
        provider = self.provider_venues(lat, lng, radius_meters)
        try:
            stored = self.catalog_venues()
        except SQLAlchemyError:
            logger.warning("Catalog read failed; continuing with provider venues only", exc_info=True)
            stored = []
        # Attendance must be real-time: always straight from the store
        try:
            counts = self._attendance.counts_by_restaurant()
            attending_id = self._attendance.current_restaurant_id(user_id)
        except SQLAlchemyError:
            logger.warning("Attendance read failed for user %s; returning no venues", user_id, exc_info=True)
            return []
        return [
            AggregatedVenue(
                **venue.to_row(),
                distance_miles=distance_miles(lat, lng, venue.lat, venue.lng),
                attendee_count=counts.get(venue.id, 0),
                is_user_attending=attending_id is not None and venue.id == attending_id,
            )
            for venue in merge_venues(provider, stored)
        ]
