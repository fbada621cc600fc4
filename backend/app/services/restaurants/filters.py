"""
Split aggregated restaurants into dinner plans (has attendees) and nearby candidates.

Dinner plans are sorted by attendee count and returned in full. Candidates are filtered
(distance, minimum rating, exact price level), sorted by rating then distance and capped.
"""
import math
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, field_validator

from app.core.constants import DEFAULT_DISTANCE_MILES, METERS_PER_MILE, NEARBY_LIMIT, SEARCH_RADIUS_MULTIPLIER
from app.services.restaurants.aggregate import AggregatedVenue


class VenueFilters(BaseModel):
    """Query filters. Missing, empty, unparseable, zero or negative values mean "no filter"."""

    distance: float | None = None
    rating: float | None = None
    price: float | None = None

    @field_validator("distance", "rating", "price", mode="before")
    @classmethod
    def lenient_number(cls, v: Any) -> float | None:
        if v is None or isinstance(v, bool):
            return None
        try:
            n = float(str(v).strip())
        except ValueError:
            return None
        if not math.isfinite(n) or n <= 0:
            return None
        return n

    def to_query(self) -> dict[str, float]:
        """Only the filters that are set (echoed back to the page)."""
        return self.model_dump(exclude_none=True)


@dataclass
class RestaurantListing:
    attending: list[AggregatedVenue] = field(default_factory=list)
    candidates: list[AggregatedVenue] = field(default_factory=list)


def search_radius_meters(filters: VenueFilters) -> float:
    """Provider search radius: the display radius widened so later filters have room."""
    miles = filters.distance or DEFAULT_DISTANCE_MILES
    return miles * METERS_PER_MILE * SEARCH_RADIUS_MULTIPLIER


def _matches(venue: AggregatedVenue, filters: VenueFilters) -> bool:
    max_distance = filters.distance if filters.distance is not None else DEFAULT_DISTANCE_MILES
    if venue.distance_miles > max_distance:
        return False
    if filters.rating is not None and (venue.rating or 0) < filters.rating:
        return False
    if filters.price is not None and venue.price_level != filters.price:
        return False
    return True


def split_restaurants(
    venues: list[AggregatedVenue],
    filters: VenueFilters | None = None,
    *,
    limit: int = NEARBY_LIMIT,
) -> RestaurantListing:
    filters = filters or VenueFilters()
    attending = sorted((v for v in venues if v.attendee_count > 0), key=lambda v: -v.attendee_count)
    candidates = [v for v in venues if v.attendee_count == 0 and _matches(v, filters)]
    candidates.sort(key=lambda v: (-(v.rating or 0), v.distance_miles))
    return RestaurantListing(attending=attending, candidates=candidates[:limit])
