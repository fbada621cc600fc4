"""Membership: links a user to at most one dinner group (unique user_id)."""
from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.db.base import Base


class Attendee(Base):
    __tablename__ = "attendees"
    __table_args__ = (UniqueConstraint("user_id", name="uq_attendees_user_id"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(64), nullable=False)
    dinner_group_id = Column(
        Integer,
        ForeignKey("dinner_groups.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    dinner_group = relationship("DinnerGroup", back_populates="attendees")
