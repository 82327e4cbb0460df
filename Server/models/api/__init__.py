"""
RoomBook Server - API Models Package

This package contains Pydantic models for all API endpoints.
"""

from models.api.room import CreateRoomRequest, UpdateRoomRequest, RoomResponse
from models.api.booking import (
    CreateBookingRequest,
    UpdateBookingRequest,
    AvailabilityRequest,
    AvailabilityResponse,
    BookingResponse,
    BookingWithDetailsResponse,
    RoomWithBookingsResponse
)
from models.api.stats import StatsResponse
from models.api.auth_config import AuthConfigRequest, AuthConfigResponse, AuthMethodsResponse

__all__ = [
    'CreateRoomRequest',
    'UpdateRoomRequest',
    'RoomResponse',
    'CreateBookingRequest',
    'UpdateBookingRequest',
    'AvailabilityRequest',
    'AvailabilityResponse',
    'BookingResponse',
    'BookingWithDetailsResponse',
    'RoomWithBookingsResponse',
    'StatsResponse',
    'AuthConfigRequest',
    'AuthConfigResponse',
    'AuthMethodsResponse',
]
