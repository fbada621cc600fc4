"""
Centralized constants for caching, search and scheduling (Encapsulate What Changes).

Change cache windows, limits or job IDs here instead of scattering literals across services and routes.
"""
# Scheduler job IDs (must match ids used in main.py add_job)
VENUE_CACHE_WARM_JOB_ID = "venue_cache_warm"

# Tier 1: Google Places results per exact (lat, lng, radius)
PLACES_CACHE_TTL_SECONDS = 30 * 60
PLACES_CACHE_STALE_SECONDS = 24 * 60 * 60
PLACES_CACHE_MAX_ENTRIES = 500

# Tier 2: snapshot of every restaurant in the catalog
CATALOG_CACHE_KEY = "restaurants:all"
CATALOG_CACHE_TTL_SECONDS = 5 * 60
CATALOG_CACHE_STALE_SECONDS = 30 * 60

# Background revalidation workers shared by both caches
CACHE_REFRESH_WORKERS = 4

# Distance
EARTH_RADIUS_MILES = 3958.8
METERS_PER_MILE = 1609.34
DEFAULT_DISTANCE_MILES = 1.0
# Query the provider over a wider radius than we display so filters have room
SEARCH_RADIUS_MULTIPLIER = 5

# Nearby list (restaurants without attendees) is capped; dinner plans are not
NEARBY_LIMIT = 15

# Places details lookups run concurrently per search
PLACES_DETAILS_WORKERS = 8
PLACES_TIMEOUT_SECONDS = 20.0
PHOTO_MAX_WIDTH = 400
PHOTO_CACHE_CONTROL = "public, max-age=86400"

# Join/leave: retry the membership transaction once on a unique-constraint conflict
MEMBERSHIP_CONFLICT_RETRIES = 1
