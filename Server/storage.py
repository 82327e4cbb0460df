"""
RoomBook Server - Storage Layer

Typed CRUD for users, rooms and bookings, plus the room availability check
and the dashboard statistics query. Every function takes an open SQLAlchemy
session; callers own commit/rollback except where noted.

Availability rule: on one room and date, confirmed bookings occupy half-open
[start_time, end_time) intervals that must not overlap. A booking ending at
10:00 and another starting at 10:00 do not conflict.
"""

import math
import logging
from datetime import date, datetime, time, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session, joinedload

from models.database import (
    User, Room, Booking,
    BOOKING_STATUS_CONFIRMED, BOOKING_STATUS_CANCELLED
)

logger = logging.getLogger(__name__)

# Booking columns a client may reset to null
CLEARABLE_BOOKING_FIELDS = ("description",)


def _Now() -> datetime:
    return datetime.now(timezone.utc)


def _BookingQuery(session: Session):
    """Booking query with owner and room eager-loaded (BookingWithDetails)"""
    return session.query(Booking).options(joinedload(Booking.user), joinedload(Booking.room))


# ==================== Users ====================

def GetUser(session: Session, user_id: str) -> Optional[User]:
    return session.query(User).filter(User.id == user_id).first()


def GetUserByUsername(session: Session, username: str) -> Optional[User]:
    return session.query(User).filter(User.username == username).first()


def GetUserByEmail(session: Session, email: str) -> Optional[User]:
    return session.query(User).filter(User.email == email).first()


def CreateUser(session: Session, **fields) -> User:
    """
    Insert a new user row and flush it

    Args:
        session: SQLAlchemy session
        **fields: User column values (id is required)

    Returns:
        User: The new user
    """
    user = User(**fields)
    session.add(user)
    session.flush()
    return user


def UpsertUser(session: Session, user_id: str, **fields) -> User:
    """
    Create a user with the given id, or update the existing row in place

    Args:
        session: SQLAlchemy session
        user_id: Primary key to match on
        **fields: Column values to set

    Returns:
        User: The created or updated user
    """
    user = GetUser(session, user_id)
    if user is None:
        return CreateUser(session, id=user_id, **fields)

    for key, value in fields.items():
        setattr(user, key, value)
    user.updated_at = _Now()
    session.flush()
    return user


# ==================== Rooms ====================

def GetAllRooms(session: Session) -> List[Room]:
    return session.query(Room).order_by(Room.name.asc()).all()


def GetActiveRooms(session: Session) -> List[Room]:
    return session.query(Room).filter(Room.is_active.is_(True)).order_by(Room.name.asc()).all()


def GetRoom(session: Session, room_id: int) -> Optional[Room]:
    return session.query(Room).filter(Room.id == room_id).first()


def CreateRoom(session: Session, **fields) -> Room:
    room = Room(**fields)
    session.add(room)
    session.flush()
    return room


def UpdateRoom(session: Session, room: Room, **fields) -> Room:
    """
    Apply field changes to a room

    Args:
        session: SQLAlchemy session
        room: Room to update
        **fields: Column values to set (None values are skipped)

    Returns:
        Room: The updated room
    """
    for key, value in fields.items():
        if value is not None:
            setattr(room, key, value)
    room.updated_at = _Now()
    session.flush()
    return room


def DeactivateRoom(session: Session, room: Room) -> Room:
    """Soft delete: hide the room from listings, keep its bookings"""
    room.is_active = False
    room.updated_at = _Now()
    session.flush()
    return room


def GetRoomWithBookings(session: Session, room_id: int, booking_date: Optional[date] = None) -> Optional[Dict[str, Any]]:
    """
    Room plus its bookings (optionally limited to one date)

    Returns:
        dict: {"room": Room, "bookings": [Booking]} or None if the room does not exist
    """
    room = GetRoom(session, room_id)
    if room is None:
        return None

    query = session.query(Booking).filter(Booking.room_id == room_id)
    if booking_date is not None:
        query = query.filter(Booking.date == booking_date)
    bookings = query.order_by(Booking.date.asc(), Booking.start_time.asc()).all()

    return {"room": room, "bookings": bookings}


# ==================== Bookings ====================

def GetAllBookings(session: Session) -> List[Booking]:
    return _BookingQuery(session).order_by(Booking.date.desc(), Booking.start_time.asc()).all()


def GetUserBookings(session: Session, user_id: str) -> List[Booking]:
    return (
        _BookingQuery(session)
        .filter(Booking.user_id == user_id)
        .order_by(Booking.date.desc(), Booking.start_time.asc())
        .all()
    )


def GetRoomBookings(session: Session, room_id: int, booking_date: Optional[date] = None) -> List[Booking]:
    query = _BookingQuery(session).filter(Booking.room_id == room_id)
    if booking_date is not None:
        query = query.filter(Booking.date == booking_date)
    return query.order_by(Booking.date.asc(), Booking.start_time.asc()).all()


def GetBookingsByStatus(session: Session, status: str) -> List[Booking]:
    return (
        _BookingQuery(session)
        .filter(Booking.status == status)
        .order_by(Booking.date.desc(), Booking.start_time.asc())
        .all()
    )


def GetBooking(session: Session, booking_id: int) -> Optional[Booking]:
    return _BookingQuery(session).filter(Booking.id == booking_id).first()


def CreateBooking(session: Session, **fields) -> Booking:
    booking = Booking(**fields)
    session.add(booking)
    session.flush()
    return booking


def UpdateBooking(session: Session, booking: Booking, **fields) -> Booking:
    """
    Apply field changes to a booking

    Args:
        session: SQLAlchemy session
        booking: Booking to update
        **fields: Column values to set (None is skipped, except for
            nullable columns such as description, where it clears the value)

    Returns:
        Booking: The updated booking
    """
    for key, value in fields.items():
        if value is not None or key in CLEARABLE_BOOKING_FIELDS:
            setattr(booking, key, value)
    booking.updated_at = _Now()
    session.flush()
    return booking


def CancelBooking(session: Session, booking: Booking) -> Booking:
    """Cancellation is a status change; booking rows are never deleted"""
    if booking.status != BOOKING_STATUS_CANCELLED:
        booking.status = BOOKING_STATUS_CANCELLED
        booking.updated_at = _Now()
        session.flush()
    return booking


# ==================== Availability ====================

def IntervalsOverlap(start: time, end: time, other_start: time, other_end: time) -> bool:
    """
    Check whether two half-open [start, end) intervals overlap

    Equivalent to the three-way test "new start inside existing, new end
    inside existing, or new interval contains existing" for non-empty
    intervals. Touching endpoints do not overlap.
    """
    return start < other_end and other_start < end


def CheckRoomAvailability(
    session: Session,
    room_id: int,
    booking_date: date,
    start_time: time,
    end_time: time,
    exclude_booking_id: Optional[int] = None
) -> bool:
    """
    Check whether a room is free for [start_time, end_time) on a date

    Args:
        session: SQLAlchemy session
        room_id: Room to check
        booking_date: Calendar day
        start_time: Interval start (inclusive)
        end_time: Interval end (exclusive)
        exclude_booking_id: Booking to ignore, used when editing that booking

    Returns:
        bool: True if no confirmed booking overlaps the interval
    """
    query = session.query(Booking).filter(
        Booking.room_id == room_id,
        Booking.date == booking_date,
        Booking.status == BOOKING_STATUS_CONFIRMED
    )
    if exclude_booking_id is not None:
        query = query.filter(Booking.id != exclude_booking_id)

    for existing in query.all():
        if IntervalsOverlap(start_time, end_time, existing.start_time, existing.end_time):
            logger.debug(
                f"Room {room_id} on {booking_date}: {start_time}-{end_time} overlaps booking "
                f"{existing.id} ({existing.start_time}-{existing.end_time})"
            )
            return False

    return True


# ==================== Statistics ====================

def GetBookingStats(session: Session, now: Optional[datetime] = None, workday_hours: int = 8) -> Dict[str, int]:
    """
    Point-in-time dashboard numbers

    Args:
        session: SQLAlchemy session
        now: Local wall-clock time to evaluate at (defaults to datetime.now())
        workday_hours: Hours per room per day used for the utilization rate

    Returns:
        dict: total_rooms, available_rooms, total_bookings_today, utilization_rate
    """
    if now is None:
        now = datetime.now()
    today = now.date()
    current_time = now.time()

    active_rooms = GetActiveRooms(session)
    active_room_ids = {room.id for room in active_rooms}
    total_rooms = len(active_rooms)

    todays_bookings = session.query(Booking).filter(
        Booking.date == today,
        Booking.status == BOOKING_STATUS_CONFIRMED
    ).all()

    busy_room_ids = {
        booking.room_id
        for booking in todays_bookings
        if booking.room_id in active_room_ids
        and booking.start_time <= current_time < booking.end_time
    }

    utilization_rate = 0
    if total_rooms > 0 and workday_hours > 0:
        # Round half up
        utilization_rate = int(math.floor(len(todays_bookings) / (total_rooms * workday_hours) * 100 + 0.5))

    return {
        "total_rooms": total_rooms,
        "available_rooms": total_rooms - len(busy_room_ids),
        "total_bookings_today": len(todays_bookings),
        "utilization_rate": utilization_rate,
    }
