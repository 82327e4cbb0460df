"""
RoomBook Server - Booking Database Model

A reservation of one room for a half-open [start_time, end_time) interval
on a single date. For a given room and date no two confirmed bookings may
overlap; cancelled rows are kept for history and ignored by that rule.
"""

from datetime import datetime, timezone
from sqlalchemy import Column, Integer, String, Text, Date, Time, DateTime, JSON, ForeignKey, Index
from sqlalchemy.orm import relationship

from models.database.base import Base


BOOKING_STATUS_CONFIRMED = "confirmed"
BOOKING_STATUS_CANCELLED = "cancelled"
BOOKING_STATUSES = (BOOKING_STATUS_CONFIRMED, BOOKING_STATUS_CANCELLED)


class Booking(Base):
    """
    Bookings table - room reservations
    """
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    user_id = Column(String, ForeignKey("users.id"), nullable=False)
    room_id = Column(Integer, ForeignKey("rooms.id"), nullable=False)
    date = Column(Date, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    attendees = Column(JSON, nullable=False, default=list)  # List of email addresses
    status = Column(String, nullable=False, default=BOOKING_STATUS_CONFIRMED)
    created_at = Column(DateTime, nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime, nullable=False, default=lambda: datetime.now(timezone.utc))

    user = relationship("User", back_populates="bookings")
    room = relationship("Room", back_populates="bookings")

    __table_args__ = (
        # Availability checks filter on all three columns
        Index('idx_bookings_room_date_status', 'room_id', 'date', 'status'),
        Index('idx_bookings_user', 'user_id'),
    )
