"""One dinner group per restaurant, created on first join. Empty groups are kept."""
from sqlalchemy import Column, DateTime, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.db.base import Base


class DinnerGroup(Base):
    __tablename__ = "dinner_groups"
    __table_args__ = (UniqueConstraint("restaurant_id", name="uq_dinner_groups_restaurant_id"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    # No FK to restaurants: attendance must not depend on catalog refresh timing
    restaurant_id = Column(String(256), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    attendees = relationship("Attendee", back_populates="dinner_group", passive_deletes=True)
