"""
RoomBook Server - Booking API Models

Pydantic models for booking endpoints, including the joined
BookingWithDetails and RoomWithBookings projections.
"""

from datetime import date as Date, time as Time, datetime
from typing import List, Literal, Optional
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator

from models.api.room import RoomResponse
from models.auth.user_response import UserResponse


class TimeRangeMixin(BaseModel):
    """Rejects empty and inverted [start_time, end_time) ranges"""

    # Stored times are naive wall-clock values
    @field_validator("start_time", "end_time", check_fields=False)
    @classmethod
    def CheckNaiveTime(cls, value):
        if value is not None and value.tzinfo is not None:
            raise ValueError("time must not include a timezone offset")
        return value

    @model_validator(mode="after")
    def CheckTimeRange(self):
        if self.start_time is not None and self.end_time is not None:
            if self.end_time <= self.start_time:
                raise ValueError("end_time must be after start_time")
        return self


class CreateBookingRequest(TimeRangeMixin):
    """Request model for creating a booking"""
    title: str = Field(min_length=1, max_length=200)
    description: Optional[str] = None
    room_id: int
    date: Date
    start_time: Time
    end_time: Time
    attendees: List[EmailStr] = []
    send_invite: bool = False  # Email attendees and the organizer after booking


class UpdateBookingRequest(TimeRangeMixin):
    """Request model for updating a booking; omitted fields keep their stored values"""
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None
    room_id: Optional[int] = None
    date: Optional[Date] = None
    start_time: Optional[Time] = None
    end_time: Optional[Time] = None
    attendees: Optional[List[EmailStr]] = None
    status: Optional[Literal["confirmed", "cancelled"]] = None


class AvailabilityRequest(TimeRangeMixin):
    """Request model for the availability check endpoint"""
    room_id: int
    date: Date
    start_time: Time
    end_time: Time
    exclude_booking_id: Optional[int] = None


class AvailabilityResponse(BaseModel):
    """Response model for the availability check endpoint"""
    available: bool


class BookingResponse(BaseModel):
    """Booking row as returned by the API"""
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    description: Optional[str] = None
    user_id: str
    room_id: int
    date: Date
    start_time: Time
    end_time: Time
    attendees: List[str] = []
    status: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class BookingWithDetailsResponse(BookingResponse):
    """Booking joined with its owner and room"""
    user: Optional[UserResponse] = None
    room: Optional[RoomResponse] = None


class RoomWithBookingsResponse(RoomResponse):
    """Room joined with its bookings"""
    bookings: List[BookingResponse] = []
