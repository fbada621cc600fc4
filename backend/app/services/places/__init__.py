"""Google Places client: nearby search with details backfill, plus photo download."""
from app.services.places.client import GooglePlacesClient
from app.services.places.config import PlacesConfig
from app.services.places.types import PhotoResponse, VenueRecord

__all__ = [
    "GooglePlacesClient",
    "PhotoResponse",
    "PlacesConfig",
    "VenueRecord",
]
