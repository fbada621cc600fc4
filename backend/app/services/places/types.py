"""
Typed definitions for Google Places responses and the normalized venue record.

Nearby Search (GET /nearbysearch/json) returns results[] with place_id, name, optional
price_level / rating, geometry.location and optional photos[]. Place Details
(GET /details/json?fields=url,photos) is only used to backfill maps_url and a fallback photo.
"""
from dataclasses import asdict, dataclass
from typing import Any, TypedDict

STATUS_OK = "OK"
STATUS_ZERO_RESULTS = "ZERO_RESULTS"


class PlacePhoto(TypedDict, total=False):
    photo_reference: str
    height: int
    width: int


class PlaceLocation(TypedDict):
    lat: float
    lng: float


class PlaceGeometry(TypedDict):
    location: PlaceLocation


class NearbySearchHit(TypedDict, total=False):
    """One entry of Nearby Search results[]."""
    place_id: str
    name: str
    price_level: int
    rating: float
    geometry: PlaceGeometry
    vicinity: str
    photos: list[PlacePhoto]


class PlaceDetails(TypedDict, total=False):
    """Place Details result with fields=url,photos."""
    url: str
    photos: list[PlacePhoto]


@dataclass(frozen=True)
class VenueRecord:
    """One restaurant as stored in the catalog. Same shape whether it came from Places or the DB."""

    id: str
    name: str
    price_level: int | None
    rating: float | None
    lat: float
    lng: float
    photo_ref: str | None = None
    maps_url: str | None = None

    @classmethod
    def from_model(cls, row: Any) -> "VenueRecord":
        """Build from a Restaurant ORM row (or anything with the same attributes)."""
        return cls(
            id=row.id,
            name=row.name,
            price_level=row.price_level,
            rating=row.rating,
            lat=row.lat,
            lng=row.lng,
            photo_ref=row.photo_ref,
            maps_url=row.maps_url,
        )

    def to_row(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class PhotoResponse:
    """Photo bytes forwarded by the photo proxy."""

    content: bytes
    content_type: str | None
