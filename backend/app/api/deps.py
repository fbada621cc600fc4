"""
Service wiring. One container per app, built in the lifespan and stored on app.state;
routes pull collaborators from it through the dependencies below.
"""
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass

from fastapi import Header, HTTPException, Request
from sqlalchemy.orm import sessionmaker

from app.core.constants import (
    CACHE_REFRESH_WORKERS,
    CATALOG_CACHE_STALE_SECONDS,
    CATALOG_CACHE_TTL_SECONDS,
    PLACES_CACHE_MAX_ENTRIES,
    PLACES_CACHE_STALE_SECONDS,
    PLACES_CACHE_TTL_SECONDS,
)
from app.services.attendance_service import AttendanceService, SqlAttendanceStore
from app.services.places import GooglePlacesClient
from app.services.restaurants import RestaurantAggregator, SqlCatalogStore, StaleWhileRevalidateCache


@dataclass
class Container:
    places: GooglePlacesClient
    aggregator: RestaurantAggregator
    attendance: AttendanceService
    places_cache: StaleWhileRevalidateCache
    catalog_cache: StaleWhileRevalidateCache
    executor: ThreadPoolExecutor

    def shutdown(self) -> None:
        self.executor.shutdown(wait=False)


def build_container(session_factory: sessionmaker, places: GooglePlacesClient | None = None) -> Container:
    """Build every service once. Raises ConfigurationError if GOOGLE_PLACES_API_KEY is missing."""
    places = places or GooglePlacesClient()
    executor = ThreadPoolExecutor(max_workers=CACHE_REFRESH_WORKERS, thread_name_prefix="cache_refresh")
    places_cache = StaleWhileRevalidateCache(
        "places",
        ttl_seconds=PLACES_CACHE_TTL_SECONDS,
        stale_seconds=PLACES_CACHE_STALE_SECONDS,
        max_entries=PLACES_CACHE_MAX_ENTRIES,
        executor=executor,
    )
    catalog_cache = StaleWhileRevalidateCache(
        "catalog",
        ttl_seconds=CATALOG_CACHE_TTL_SECONDS,
        stale_seconds=CATALOG_CACHE_STALE_SECONDS,
        max_entries=1,
        executor=executor,
    )
    attendance_store = SqlAttendanceStore(session_factory)
    aggregator = RestaurantAggregator(
        places=places,
        catalog=SqlCatalogStore(session_factory),
        attendance=attendance_store,
        places_cache=places_cache,
        catalog_cache=catalog_cache,
    )
    return Container(
        places=places,
        aggregator=aggregator,
        attendance=AttendanceService(attendance_store),
        places_cache=places_cache,
        catalog_cache=catalog_cache,
        executor=executor,
    )


def get_container(request: Request) -> Container:
    container = getattr(request.app.state, "container", None)
    if container is None:
        raise HTTPException(status_code=503, detail="Services not initialized")
    return container


def require_user_id(x_user_id: str | None = Header(default=None)) -> str:
    """Identity comes from the auth layer in front of us via X-User-Id."""
    user_id = (x_user_id or "").strip()
    if not user_id:
        raise HTTPException(status_code=401, detail="X-User-Id header is required")
    return user_id
