"""
RoomBook Server - Room Database Model

Meeting rooms. Rooms are never removed; deactivation hides them from
listings while their historical bookings stay queryable.
"""

from datetime import datetime, timezone
from sqlalchemy import Column, Integer, String, DateTime, Boolean, JSON
from sqlalchemy.orm import relationship

from models.database.base import Base


class Room(Base):
    """
    Rooms table - bookable meeting rooms
    """
    __tablename__ = "rooms"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String, nullable=False)
    floor = Column(String, nullable=False)
    capacity = Column(Integer, nullable=False, default=1)
    equipment = Column(JSON, nullable=False, default=list)  # List of equipment names
    is_active = Column(Boolean, nullable=False, default=True)  # False = soft deleted
    created_at = Column(DateTime, nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime, nullable=False, default=lambda: datetime.now(timezone.utc))

    bookings = relationship("Booking", back_populates="room")
