"""
RoomBook Server - Database Models Package

This package contains all SQLAlchemy database model definitions.
All models share a common declarative base for proper table relationships.
"""

# Import Base first
from models.database.base import Base

# Import all models
from models.database.user import User
from models.database.room import Room
from models.database.booking import (
    Booking,
    BOOKING_STATUSES,
    BOOKING_STATUS_CONFIRMED,
    BOOKING_STATUS_CANCELLED,
)
from models.database.auth_config import AuthConfig
from models.database.user_session import UserSession
from models.database.setting import Setting

__all__ = [
    'Base',
    'User',
    'Room',
    'Booking',
    'BOOKING_STATUSES',
    'BOOKING_STATUS_CONFIRMED',
    'BOOKING_STATUS_CANCELLED',
    'AuthConfig',
    'UserSession',
    'Setting',
]
