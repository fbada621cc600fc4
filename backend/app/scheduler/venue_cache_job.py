"""Runs every VENUE_CACHE_WARM_MINUTES: refresh Places + catalog caches for the search center's default search."""
import logging

from app.api.deps import Container
from app.config import settings
from app.services.restaurants import VenueFilters, search_radius_meters

logger = logging.getLogger(__name__)


def run_venue_cache_warm(container: Container) -> None:
    radius = search_radius_meters(VenueFilters())
    try:
        count = container.aggregator.warm(settings.search_center_lat, settings.search_center_lng, radius)
        logger.info("Venue cache warmed: %d restaurants (r=%sm)", count, radius)
    except Exception as e:
        # Stale entries stay servable; next tick tries again
        logger.exception("Venue cache warm failed: %s", e)
