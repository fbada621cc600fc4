"""Google Places client: nearby search + details backfill, and photo download."""
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any

import httpx

from app.core.constants import PHOTO_MAX_WIDTH, PLACES_DETAILS_WORKERS, PLACES_TIMEOUT_SECONDS
from app.core.errors import ProviderError
from app.services.places.config import PlacesConfig
from app.services.places.types import (
    STATUS_OK,
    STATUS_ZERO_RESULTS,
    NearbySearchHit,
    PhotoResponse,
    PlaceDetails,
    VenueRecord,
)

logger = logging.getLogger(__name__)


def _first_photo_ref(photos: Any) -> str | None:
    if not isinstance(photos, list) or not photos:
        return None
    first = photos[0]
    if not isinstance(first, dict):
        return None
    return first.get("photo_reference") or None


def _to_venue(hit: NearbySearchHit, details: PlaceDetails) -> VenueRecord:
    """Normalize one search hit; search photo wins over the details photo."""
    location = (hit.get("geometry") or {}).get("location") or {}
    return VenueRecord(
        id=hit["place_id"],
        name=hit.get("name") or "",
        price_level=hit.get("price_level"),
        rating=hit.get("rating"),
        lat=float(location["lat"]),
        lng=float(location["lng"]),
        photo_ref=_first_photo_ref(hit.get("photos")) or _first_photo_ref(details.get("photos")),
        maps_url=details.get("url") or None,
    )


class GooglePlacesClient:
    """Nearby restaurant search against the Google Places web service."""

    def __init__(
        self,
        config: PlacesConfig | None = None,
        *,
        transport: httpx.BaseTransport | None = None,
        timeout: float = PLACES_TIMEOUT_SECONDS,
        details_workers: int = PLACES_DETAILS_WORKERS,
    ) -> None:
        self._config = (config or PlacesConfig()).require()
        self._transport = transport
        self._timeout = timeout
        self._details_workers = details_workers

    def _http(self) -> httpx.Client:
        return httpx.Client(timeout=self._timeout, transport=self._transport)

    def _get_json(self, c: httpx.Client, path: str, params: dict[str, Any]) -> dict[str, Any]:
        url = f"{self._config.base_url}{path}"
        try:
            r = c.get(url, params={**params, "key": self._config.api_key})
        except httpx.HTTPError as e:
            raise ProviderError("REQUEST_FAILED", f"Google Places request failed: {e}") from e
        if not r.is_success:
            raise ProviderError(f"HTTP_{r.status_code}", http_status=r.status_code)
        try:
            data = r.json()
        except ValueError as e:
            raise ProviderError("INVALID_RESPONSE") from e
        return data if isinstance(data, dict) else {}

    def _details(self, c: httpx.Client, place_id: str) -> PlaceDetails:
        """Place details for backfill. Failures only cost us maps_url / fallback photo."""
        try:
            data = self._get_json(c, "/details/json", {"place_id": place_id, "fields": "url,photos"})
        except ProviderError as e:
            logger.debug("Places details failed for %s: %s", place_id, e)
            return {}
        if data.get("status") != STATUS_OK:
            logger.debug("Places details for %s returned %s", place_id, data.get("status"))
            return {}
        result = data.get("result")
        return result if isinstance(result, dict) else {}

    def search(self, lat: float, lng: float, radius_meters: float) -> list[VenueRecord]:
        """
        Nearby restaurants around (lat, lng). ZERO_RESULTS -> []; any other non-OK status
        raises ProviderError. Each hit is backfilled from Place Details concurrently.
        """
        with self._http() as c:
            data = self._get_json(
                c,
                "/nearbysearch/json",
                {"location": f"{lat},{lng}", "radius": str(radius_meters), "type": "restaurant"},
            )
            status = data.get("status")
            if status not in (STATUS_OK, STATUS_ZERO_RESULTS):
                raise ProviderError(str(status))
            hits: list[NearbySearchHit] = [
                h
                for h in (data.get("results") or [])
                if isinstance(h, dict) and h.get("place_id") and (h.get("geometry") or {}).get("location")
            ]
            if status == STATUS_ZERO_RESULTS or not hits:
                return []
            with ThreadPoolExecutor(
                max_workers=min(self._details_workers, len(hits)),
                thread_name_prefix="places_details",
            ) as executor:
                details = list(executor.map(lambda h: self._details(c, h["place_id"]), hits))
        venues = [_to_venue(h, d) for h, d in zip(hits, details)]
        logger.info("Places search (%s,%s r=%s): %d restaurants", lat, lng, radius_meters, len(venues))
        return venues

    def fetch_photo(self, photo_ref: str, max_width: int = PHOTO_MAX_WIDTH) -> PhotoResponse:
        """Download photo bytes for a photo reference. Non-2xx raises ProviderError."""
        url = f"{self._config.base_url}/photo"
        params = {"maxwidth": str(max_width), "photoreference": photo_ref, "key": self._config.api_key}
        with self._http() as c:
            try:
                r = c.get(url, params=params, follow_redirects=True)
            except httpx.HTTPError as e:
                raise ProviderError("REQUEST_FAILED", f"Google Places photo request failed: {e}") from e
        if not r.is_success:
            raise ProviderError(f"HTTP_{r.status_code}", "Failed to fetch photo", http_status=r.status_code)
        return PhotoResponse(content=r.content, content_type=r.headers.get("content-type"))
