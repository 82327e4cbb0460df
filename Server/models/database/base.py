"""
RoomBook Server - Database Base

Shared declarative base for all SQLAlchemy models, so rooms, bookings and
users share one metadata object and can reference each other.
"""

from sqlalchemy.orm import declarative_base

Base = declarative_base()
