"""
Restaurants API: nearby list with dinner plans, and join/leave a dinner group.

GET  /restaurants?distance=&rating=&price=   (filters optional; bad values are ignored)
POST /restaurants/action  {"intent": "join", "restaurant_id": "..."} | {"intent": "leave"}
"""
import logging

from fastapi import APIRouter, Body, Depends, HTTPException
from pydantic import ValidationError

from app.api.deps import Container, get_container, require_user_id
from app.config import settings
from app.core.errors import ConflictError, error_to_http
from app.services.attendance_service import ActionResult, parse_action
from app.services.restaurants import VenueFilters, search_radius_meters, split_restaurants

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("")
def list_restaurants(
    distance: str | None = None,
    rating: str | None = None,
    price: str | None = None,
    user_id: str = Depends(require_user_id),
    container: Container = Depends(get_container),
):
    """
    Dinner plans (restaurants with attendees, most attendees first) and up to 15 nearby
    restaurants without attendees, filtered and sorted by rating then distance.
    """
    filters = VenueFilters(distance=distance, rating=rating, price=price)
    venues = container.aggregator.aggregate(
        settings.search_center_lat,
        settings.search_center_lng,
        search_radius_meters(filters),
        user_id,
    )
    listing = split_restaurants(venues, filters)
    return {
        "restaurants_with_attendance": [v.to_dict() for v in listing.attending],
        "restaurants_nearby": [v.to_dict() for v in listing.candidates],
        "filters": filters.to_query(),
    }


@router.post("/action", response_model=ActionResult)
def restaurant_action(
    payload: dict = Body(...),
    user_id: str = Depends(require_user_id),
    container: Container = Depends(get_container),
) -> ActionResult:
    """Join or leave a dinner group. 409 means a concurrent change won; the client should retry."""
    try:
        action = parse_action(payload)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=[err["msg"] for err in e.errors()]) from e
    try:
        return container.attendance.apply(user_id, action)
    except ConflictError as e:
        logger.warning("restaurant_action conflict for %s: %s", user_id, e)
        raise error_to_http(e) from e


@router.get("/cache-stats")
def cache_stats(container: Container = Depends(get_container)):
    """Hit/miss counters for both cache tiers."""
    return {
        "places": container.places_cache.stats(),
        "catalog": container.catalog_cache.stats(),
    }
