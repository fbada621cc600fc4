"""
Nearby restaurants: Places + catalog caches, aggregation with live attendance, filtering.
"""
from app.services.restaurants.aggregate import AggregatedVenue, RestaurantAggregator, merge_venues
from app.services.restaurants.cache import StaleWhileRevalidateCache
from app.services.restaurants.catalog import CatalogStore, SqlCatalogStore
from app.services.restaurants.distance import distance_miles
from app.services.restaurants.filters import RestaurantListing, VenueFilters, search_radius_meters, split_restaurants

__all__ = [
    "AggregatedVenue",
    "CatalogStore",
    "RestaurantAggregator",
    "RestaurantListing",
    "SqlCatalogStore",
    "StaleWhileRevalidateCache",
    "VenueFilters",
    "distance_miles",
    "merge_venues",
    "search_radius_meters",
    "split_restaurants",
]
