#!/usr/bin/env python3
"""
Fetch restaurants around a center from Google Places and upsert them into the catalog.
Same path the scheduler's cache warm job takes, but from the command line.

Run: cd backend && poetry run python scripts/warm_venue_cache.py [--lat 40.7596 --lng -111.8867 --miles 1]
"""
import argparse
import logging
import sys
from pathlib import Path

# backend/scripts/ -> backend/
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from app.api.deps import build_container
from app.config import settings
from app.core.errors import ConfigurationError, ProviderError
from app.db.session import SessionLocal
from app.services.restaurants import VenueFilters, search_radius_meters


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("--lat", type=float, default=settings.search_center_lat)
    parser.add_argument("--lng", type=float, default=settings.search_center_lng)
    parser.add_argument("--miles", type=float, default=None, help="display radius; provider is queried wider")
    args = parser.parse_args()
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    radius = search_radius_meters(VenueFilters(distance=args.miles))
    try:
        container = build_container(SessionLocal)
    except ConfigurationError as e:
        print(f"FAIL {e}")
        return 1
    try:
        count = container.aggregator.warm(args.lat, args.lng, radius)
    except ProviderError as e:
        print(f"FAIL Google Places: {e}")
        return 1
    finally:
        container.shutdown()
    print(f"Done. {count} restaurants around ({args.lat}, {args.lng}) r={radius:.0f}m stored.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
