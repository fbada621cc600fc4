"""
Dinner group attendance: each user attends at most one restaurant's dinner group.

join() replaces the user's membership in one transaction (delete old row, find-or-create the
restaurant's group, insert new row). The unique constraints on attendees.user_id and
dinner_groups.restaurant_id turn concurrent changes into IntegrityError; the transaction
rolls back, ConflictError is raised and the whole sequence is retried once.
"""
import logging
import threading
from typing import Annotated, Any, Literal, Protocol, Union

from pydantic import BaseModel, Field, TypeAdapter
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from app.core.constants import MEMBERSHIP_CONFLICT_RETRIES
from app.core.errors import ConflictError
from app.models.attendee import Attendee
from app.models.dinner_group import DinnerGroup

logger = logging.getLogger(__name__)

_LOCK_STRIPES = 64


# ---------------------------------------------------------------------------
# Actions (tagged by intent)
# ---------------------------------------------------------------------------


class JoinAction(BaseModel):
    intent: Literal["join"] = "join"
    restaurant_id: str = Field(min_length=1)


class LeaveAction(BaseModel):
    intent: Literal["leave"] = "leave"


AttendanceAction = Annotated[Union[JoinAction, LeaveAction], Field(discriminator="intent")]
_action_adapter: TypeAdapter = TypeAdapter(AttendanceAction)


def parse_action(payload: Any) -> Union[JoinAction, LeaveAction]:
    """Validate a raw request body into the tagged variant. Raises pydantic.ValidationError."""
    return _action_adapter.validate_python(payload)


class ActionResult(BaseModel):
    success: bool = True


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------


class AttendanceStore(Protocol):
    """Membership + dinner group persistence. Reads are never cached."""

    def counts_by_restaurant(self) -> dict[str, int]:
        """Attendee count per restaurant_id; restaurants with no attendees are absent."""
        ...

    def current_restaurant_id(self, user_id: str) -> str | None:
        ...

    def replace_membership(self, user_id: str, restaurant_id: str) -> None:
        """Atomically drop the user's membership and add one under restaurant_id. Raises ConflictError."""
        ...

    def delete_membership(self, user_id: str) -> bool:
        """Delete the user's membership. Returns False when there was none."""
        ...


# Unique constraints that make concurrent membership changes collide. PostgreSQL reports the
# constraint name, SQLite the table.column.
_MEMBERSHIP_UNIQUE_MARKERS = (
    "uq_attendees_user_id",
    "uq_dinner_groups_restaurant_id",
    "attendees.user_id",
    "dinner_groups.restaurant_id",
)


def _is_membership_conflict(exc: IntegrityError) -> bool:
    """True only for unique violations on user_id / restaurant_id (retryable races)."""
    message = str(exc.orig)
    if "unique" not in message.lower():
        return False
    return any(marker in message for marker in _MEMBERSHIP_UNIQUE_MARKERS)


class SqlAttendanceStore:
    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory

    def counts_by_restaurant(self) -> dict[str, int]:
        db = self._session_factory()
        try:
            rows = (
                db.query(DinnerGroup.restaurant_id, func.count(Attendee.id))
                .join(Attendee, Attendee.dinner_group_id == DinnerGroup.id)
                .group_by(DinnerGroup.restaurant_id)
                .all()
            )
            return {restaurant_id: count for restaurant_id, count in rows}
        finally:
            db.close()

    def current_restaurant_id(self, user_id: str) -> str | None:
        db = self._session_factory()
        try:
            return (
                db.query(DinnerGroup.restaurant_id)
                .join(Attendee, Attendee.dinner_group_id == DinnerGroup.id)
                .filter(Attendee.user_id == user_id)
                .scalar()
            )
        finally:
            db.close()

    def _find_group(self, db: Session, restaurant_id: str) -> DinnerGroup | None:
        return db.query(DinnerGroup).filter(DinnerGroup.restaurant_id == restaurant_id).first()

    def replace_membership(self, user_id: str, restaurant_id: str) -> None:
        db = self._session_factory()
        try:
            db.query(Attendee).filter(Attendee.user_id == user_id).delete(synchronize_session=False)
            group = self._find_group(db, restaurant_id)
            if group is None:
                group = DinnerGroup(restaurant_id=restaurant_id)
                db.add(group)
                db.flush()
            db.add(Attendee(user_id=user_id, dinner_group_id=group.id))
            db.commit()
        except IntegrityError as e:
            db.rollback()
            if not _is_membership_conflict(e):
                raise
            raise ConflictError(f"Membership change for user {user_id} conflicted") from e
        except BaseException:
            db.rollback()
            raise
        finally:
            db.close()

    def delete_membership(self, user_id: str) -> bool:
        db = self._session_factory()
        try:
            deleted = db.query(Attendee).filter(Attendee.user_id == user_id).delete(synchronize_session=False)
            db.commit()
            return deleted > 0
        except BaseException:
            db.rollback()
            raise
        finally:
            db.close()


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class AttendanceService:
    """Join/leave state machine: NotAttending <-> Attending(restaurant_id)."""

    def __init__(self, store: AttendanceStore, *, conflict_retries: int = MEMBERSHIP_CONFLICT_RETRIES) -> None:
        self._store = store
        self._conflict_retries = conflict_retries
        # Striped per-user locks: same user always maps to the same lock
        self._locks = [threading.Lock() for _ in range(_LOCK_STRIPES)]

    def _user_lock(self, user_id: str) -> threading.Lock:
        return self._locks[hash(user_id) % _LOCK_STRIPES]

    def join(self, user_id: str, restaurant_id: str) -> ActionResult:
        """Join restaurant_id's dinner group, leaving any other group. No-op if already there."""
        with self._user_lock(user_id):
            if self._store.current_restaurant_id(user_id) == restaurant_id:
                return ActionResult(success=True)
            attempt = 0
            while True:
                try:
                    self._store.replace_membership(user_id, restaurant_id)
                    break
                except ConflictError:
                    if attempt >= self._conflict_retries:
                        logger.warning("join conflict for user %s at %s; giving up", user_id, restaurant_id)
                        raise
                    attempt += 1
                    logger.info("join conflict for user %s at %s; retrying", user_id, restaurant_id)
        logger.info("User %s joined dinner group for %s", user_id, restaurant_id)
        return ActionResult(success=True)

    def leave(self, user_id: str) -> ActionResult:
        """Leave the current dinner group. No-op if not attending."""
        with self._user_lock(user_id):
            if self._store.delete_membership(user_id):
                logger.info("User %s left their dinner group", user_id)
        return ActionResult(success=True)

    def apply(self, user_id: str, action: Union[JoinAction, LeaveAction]) -> ActionResult:
        if isinstance(action, JoinAction):
            return self.join(user_id, action.restaurant_id)
        return self.leave(user_id)
