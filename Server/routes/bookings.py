"""
RoomBook Server - Booking Endpoints

Booking create/update flow:
1. Validate the request body (pydantic, 400 on failure)
2. Merge request fields over the stored booking (updates only)
3. Check availability for the effective room/date/interval
4. 409 on conflict, otherwise persist
5. Queue notification emails (creates only); their outcome never
   affects the response

Steps 3 and 4 run inside one write-locked transaction
(DatabaseManager.GetWriteSession) so two requests cannot both claim the
same slot. Cancelling is a status change; bookings are never deleted.
"""

import logging
from datetime import date
from typing import List, Optional
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, Response, status

import storage
from auth import GetCurrentUser, IsOwnerOrAdmin
from config import ServerConfig
from database import GetDatabaseManager, GetServerConfig
from managers.database_manager import DatabaseManager
from models.api import (
    CreateBookingRequest, UpdateBookingRequest,
    AvailabilityRequest, AvailabilityResponse,
    BookingResponse, BookingWithDetailsResponse
)
from models.database import User, Booking, BOOKING_STATUS_CONFIRMED, BOOKING_STATUSES
from notifications import BookingEmailData, DispatchBookingNotifications

# Create logger
logger = logging.getLogger(__name__)

# Create router instance
router = APIRouter(prefix="/api/bookings")

CONFLICT_DETAIL = "Room is not available at the requested time"


def _WithDetails(bookings: List[Booking]) -> List[BookingWithDetailsResponse]:
    return [BookingWithDetailsResponse.model_validate(booking) for booking in bookings]


def _LoadOwnedBooking(db_session, booking_id: int, current_user: User) -> Booking:
    """
    Fetch a booking the current user may act on

    Raises:
        HTTPException: 404 if missing, 403 if neither owner nor admin
    """
    booking = storage.GetBooking(db_session, booking_id)
    if not booking:
        raise HTTPException(status_code=404, detail="Booking not found")

    if not IsOwnerOrAdmin(current_user, booking.user_id):
        logger.warning(f"User '{current_user.username}' denied access to booking {booking_id}")
        raise HTTPException(status_code=403, detail="Access denied")

    return booking


# ==================== Listings ====================

@router.get("", response_model=List[BookingWithDetailsResponse], tags=["Bookings"])
async def list_bookings(
    status_filter: Optional[str] = Query(None, alias="status"),
    current_user: User = Depends(GetCurrentUser),
    db_manager: DatabaseManager = Depends(GetDatabaseManager)
):
    """
    All bookings for admins, the caller's own bookings otherwise.
    Optionally filtered by status.
    """
    if status_filter is not None and status_filter not in BOOKING_STATUSES:
        raise HTTPException(status_code=400, detail=f"status must be one of: {', '.join(BOOKING_STATUSES)}")

    db_session = db_manager.GetSession()
    try:
        if current_user.is_admin:
            if status_filter:
                bookings = storage.GetBookingsByStatus(db_session, status_filter)
            else:
                bookings = storage.GetAllBookings(db_session)
        else:
            bookings = storage.GetUserBookings(db_session, current_user.id)
            if status_filter:
                bookings = [booking for booking in bookings if booking.status == status_filter]

        return _WithDetails(bookings)
    except Exception as e:
        logger.error(f"Error fetching bookings: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to fetch bookings")
    finally:
        db_session.close()


@router.get("/my", response_model=List[BookingWithDetailsResponse], tags=["Bookings"])
async def list_my_bookings(
    current_user: User = Depends(GetCurrentUser),
    db_manager: DatabaseManager = Depends(GetDatabaseManager)
):
    db_session = db_manager.GetSession()
    try:
        return _WithDetails(storage.GetUserBookings(db_session, current_user.id))
    except Exception as e:
        logger.error(f"Error fetching bookings for user '{current_user.username}': {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to fetch user bookings")
    finally:
        db_session.close()


@router.get("/room/{room_id}", response_model=List[BookingWithDetailsResponse], tags=["Bookings"])
async def list_room_bookings(
    room_id: int,
    date: Optional[date] = Query(None),
    current_user: User = Depends(GetCurrentUser),
    db_manager: DatabaseManager = Depends(GetDatabaseManager)
):
    """
    A room's schedule, optionally for a single date
    """
    db_session = db_manager.GetSession()
    try:
        return _WithDetails(storage.GetRoomBookings(db_session, room_id, date))
    except Exception as e:
        logger.error(f"Error fetching bookings for room {room_id}: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to fetch room bookings")
    finally:
        db_session.close()


# ==================== Availability ====================

@router.post("/check-availability", response_model=AvailabilityResponse, tags=["Bookings"])
async def check_availability(
    request_data: AvailabilityRequest,
    current_user: User = Depends(GetCurrentUser),
    db_manager: DatabaseManager = Depends(GetDatabaseManager)
):
    db_session = db_manager.GetSession()
    try:
        available = storage.CheckRoomAvailability(
            db_session,
            request_data.room_id,
            request_data.date,
            request_data.start_time,
            request_data.end_time,
            request_data.exclude_booking_id
        )
        return AvailabilityResponse(available=available)
    except Exception as e:
        logger.error(f"Error checking availability: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to check availability")
    finally:
        db_session.close()


# ==================== Single Booking ====================

@router.get("/{booking_id}", response_model=BookingWithDetailsResponse, tags=["Bookings"])
async def get_booking(
    booking_id: int,
    current_user: User = Depends(GetCurrentUser),
    db_manager: DatabaseManager = Depends(GetDatabaseManager)
):
    db_session = db_manager.GetSession()
    try:
        booking = _LoadOwnedBooking(db_session, booking_id, current_user)
        return BookingWithDetailsResponse.model_validate(booking)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error fetching booking {booking_id}: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to fetch booking")
    finally:
        db_session.close()


@router.post("", response_model=BookingResponse, status_code=status.HTTP_201_CREATED, tags=["Bookings"])
async def create_booking(
    request_data: CreateBookingRequest,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(GetCurrentUser),
    db_manager: DatabaseManager = Depends(GetDatabaseManager),
    config: ServerConfig = Depends(GetServerConfig)
):
    """
    Book a room for the current user

    Raises:
        HTTPException: 404 unknown room, 400 deactivated room, 409 slot taken
    """
    try:
        with db_manager.GetWriteSession() as db_session:
            room = storage.GetRoom(db_session, request_data.room_id)
            if not room:
                raise HTTPException(status_code=404, detail="Room not found")
            if not room.is_active:
                raise HTTPException(status_code=400, detail="Room is not available for booking")

            if not storage.CheckRoomAvailability(
                db_session,
                request_data.room_id,
                request_data.date,
                request_data.start_time,
                request_data.end_time
            ):
                raise HTTPException(status_code=409, detail=CONFLICT_DETAIL)

            booking = storage.CreateBooking(
                db_session,
                title=request_data.title,
                description=request_data.description,
                user_id=current_user.id,
                room_id=request_data.room_id,
                date=request_data.date,
                start_time=request_data.start_time,
                end_time=request_data.end_time,
                attendees=[str(email) for email in request_data.attendees],
                status=BOOKING_STATUS_CONFIRMED
            )
            room_name = room.name

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error creating booking: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to create booking")

    logger.info(
        f"User '{current_user.username}' booked room {booking.room_id} on {booking.date} "
        f"{booking.start_time}-{booking.end_time} (booking {booking.id})"
    )

    if request_data.send_invite and booking.attendees:
        organizer_email = current_user.email or "noreply@roombook.com"
        email_data = BookingEmailData(
            title=booking.title,
            room_name=room_name,
            date=booking.date.isoformat(),
            start_time=booking.start_time.strftime("%H:%M"),
            end_time=booking.end_time.strftime("%H:%M"),
            organizer_name=current_user.display_name,
            organizer_email=organizer_email,
            description=booking.description
        )
        background_tasks.add_task(
            DispatchBookingNotifications, config, email_data, list(booking.attendees), organizer_email
        )

    return BookingResponse.model_validate(booking)


@router.put("/{booking_id}", response_model=BookingResponse, tags=["Bookings"])
async def update_booking(
    booking_id: int,
    request_data: UpdateBookingRequest,
    current_user: User = Depends(GetCurrentUser),
    db_manager: DatabaseManager = Depends(GetDatabaseManager)
):
    """
    Edit a booking (owner or admin). Omitted fields keep their stored
    values. A booking that ends up confirmed is re-checked for conflicts,
    ignoring itself.
    """
    changes = request_data.model_dump(exclude_unset=True)

    try:
        with db_manager.GetWriteSession() as db_session:
            booking = _LoadOwnedBooking(db_session, booking_id, current_user)

            room_id = changes.get("room_id") or booking.room_id
            booking_date = changes.get("date") or booking.date
            start_time = changes.get("start_time") or booking.start_time
            end_time = changes.get("end_time") or booking.end_time
            effective_status = changes.get("status") or booking.status

            if end_time <= start_time:
                raise HTTPException(status_code=400, detail="end_time must be after start_time")

            if "room_id" in changes and changes["room_id"] != booking.room_id:
                room = storage.GetRoom(db_session, room_id)
                if not room:
                    raise HTTPException(status_code=404, detail="Room not found")
                if not room.is_active:
                    raise HTTPException(status_code=400, detail="Room is not available for booking")

            if effective_status == BOOKING_STATUS_CONFIRMED and not storage.CheckRoomAvailability(
                db_session, room_id, booking_date, start_time, end_time, exclude_booking_id=booking_id
            ):
                raise HTTPException(status_code=409, detail=CONFLICT_DETAIL)

            if "attendees" in changes and changes["attendees"] is not None:
                changes["attendees"] = [str(email) for email in changes["attendees"]]

            booking = storage.UpdateBooking(db_session, booking, **changes)

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error updating booking {booking_id}: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to update booking")

    logger.info(f"User '{current_user.username}' updated booking {booking_id}")

    return BookingResponse.model_validate(booking)


@router.delete("/{booking_id}", status_code=status.HTTP_204_NO_CONTENT, tags=["Bookings"])
async def cancel_booking(
    booking_id: int,
    current_user: User = Depends(GetCurrentUser),
    db_manager: DatabaseManager = Depends(GetDatabaseManager)
):
    """
    Cancel a booking (owner or admin). The row is kept with status
    'cancelled'; cancelling twice is a no-op.
    """
    try:
        with db_manager.GetWriteSession() as db_session:
            booking = _LoadOwnedBooking(db_session, booking_id, current_user)
            storage.CancelBooking(db_session, booking)

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error cancelling booking {booking_id}: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to cancel booking")

    logger.info(f"User '{current_user.username}' cancelled booking {booking_id}")

    return Response(status_code=status.HTTP_204_NO_CONTENT)
