"""
Restaurant catalog: upsert-by-id and read-all over the restaurants table.

Rows are never deleted. Concurrent upserts of the same id are last-write-wins.
"""
import logging
from typing import Iterable, Protocol

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from app.models.restaurant import Restaurant
from app.services.places.types import VenueRecord

logger = logging.getLogger(__name__)


class CatalogStore(Protocol):
    """Persistent venue catalog. SqlCatalogStore in production; in-memory fakes in tests."""

    def upsert_many(self, venues: Iterable[VenueRecord]) -> int:
        """Insert or overwrite each venue by id. Returns number of venues written."""
        ...

    def list_all(self) -> list[VenueRecord]:
        ...


def _apply(db: Session, venue: VenueRecord) -> None:
    row = db.get(Restaurant, venue.id)
    if row is None:
        db.add(Restaurant(**venue.to_row()))
        return
    row.name = venue.name
    row.price_level = venue.price_level
    row.rating = venue.rating
    row.lat = venue.lat
    row.lng = venue.lng
    row.photo_ref = venue.photo_ref
    row.maps_url = venue.maps_url


class SqlCatalogStore:
    """Each call opens its own session so cache refreshes can run off the request thread."""

    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory

    def upsert_many(self, venues: Iterable[VenueRecord]) -> int:
        # Last occurrence of an id wins within one batch
        venues = list({v.id: v for v in venues}.values())
        if not venues:
            return 0
        # One retry: a concurrent refresh may insert the same ids between our read and flush
        for attempt in range(2):
            db = self._session_factory()
            try:
                for venue in venues:
                    _apply(db, venue)
                db.commit()
                return len(venues)
            except IntegrityError:
                db.rollback()
                if attempt:
                    raise
                logger.info("Restaurant upsert raced with another refresh; retrying")
            finally:
                db.close()
        return 0

    def list_all(self) -> list[VenueRecord]:
        db = self._session_factory()
        try:
            return [VenueRecord.from_model(r) for r in db.query(Restaurant).all()]
        finally:
            db.close()
