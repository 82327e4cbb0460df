"""
RoomBook Server - Room Endpoints

Any signed-in user can list rooms and view a room's schedule. Creating,
editing and deactivating rooms requires the admin role. Rooms are never
physically deleted.
"""

import logging
from datetime import date
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

import storage
from auth import GetCurrentUser, RequireAdmin
from database import GetDatabaseManager
from managers.database_manager import DatabaseManager
from models.api import (
    CreateRoomRequest, UpdateRoomRequest, RoomResponse, RoomWithBookingsResponse, BookingResponse
)
from models.database import User

# Create logger
logger = logging.getLogger(__name__)

# Create router instance
router = APIRouter(prefix="/api/rooms")


@router.get("", response_model=List[RoomResponse], tags=["Rooms"])
async def list_rooms(
    include_inactive: bool = Query(False),
    current_user: User = Depends(GetCurrentUser),
    db_manager: DatabaseManager = Depends(GetDatabaseManager)
):
    """
    List active rooms ordered by name. Admins may include deactivated rooms.
    """
    db_session = db_manager.GetSession()
    try:
        if include_inactive and current_user.is_admin:
            rooms = storage.GetAllRooms(db_session)
        else:
            rooms = storage.GetActiveRooms(db_session)
        return [RoomResponse.model_validate(room) for room in rooms]
    except Exception as e:
        logger.error(f"Error fetching rooms: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to fetch rooms")
    finally:
        db_session.close()


@router.get("/{room_id}", response_model=RoomResponse, tags=["Rooms"])
async def get_room(
    room_id: int,
    current_user: User = Depends(GetCurrentUser),
    db_manager: DatabaseManager = Depends(GetDatabaseManager)
):
    db_session = db_manager.GetSession()
    try:
        room = storage.GetRoom(db_session, room_id)
        if not room:
            raise HTTPException(status_code=404, detail="Room not found")
        return RoomResponse.model_validate(room)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error fetching room {room_id}: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to fetch room")
    finally:
        db_session.close()


@router.get("/{room_id}/schedule", response_model=RoomWithBookingsResponse, tags=["Rooms"])
async def get_room_schedule(
    room_id: int,
    date: Optional[date] = Query(None),
    current_user: User = Depends(GetCurrentUser),
    db_manager: DatabaseManager = Depends(GetDatabaseManager)
):
    """
    Room together with its bookings, optionally for a single date
    """
    db_session = db_manager.GetSession()
    try:
        result = storage.GetRoomWithBookings(db_session, room_id, date)
        if result is None:
            raise HTTPException(status_code=404, detail="Room not found")

        room_data = RoomResponse.model_validate(result["room"]).model_dump()
        bookings = [BookingResponse.model_validate(booking) for booking in result["bookings"]]
        return RoomWithBookingsResponse(**room_data, bookings=bookings)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error fetching schedule for room {room_id}: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to fetch room schedule")
    finally:
        db_session.close()


@router.post("", response_model=RoomResponse, status_code=status.HTTP_201_CREATED, tags=["Rooms"])
async def create_room(
    request_data: CreateRoomRequest,
    admin: User = Depends(RequireAdmin),
    db_manager: DatabaseManager = Depends(GetDatabaseManager)
):
    """
    Create a room (admin only)
    """
    db_session = db_manager.GetSession()
    try:
        room = storage.CreateRoom(db_session, **request_data.model_dump())
        db_session.commit()

        logger.info(f"Admin '{admin.username}' created room '{room.name}' (id {room.id})")

        return RoomResponse.model_validate(room)
    except Exception as e:
        db_session.rollback()
        logger.error(f"Error creating room: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to create room")
    finally:
        db_session.close()


@router.put("/{room_id}", response_model=RoomResponse, tags=["Rooms"])
async def update_room(
    room_id: int,
    request_data: UpdateRoomRequest,
    admin: User = Depends(RequireAdmin),
    db_manager: DatabaseManager = Depends(GetDatabaseManager)
):
    """
    Update a room (admin only); omitted fields are left unchanged
    """
    db_session = db_manager.GetSession()
    try:
        room = storage.GetRoom(db_session, room_id)
        if not room:
            raise HTTPException(status_code=404, detail="Room not found")

        room = storage.UpdateRoom(db_session, room, **request_data.model_dump(exclude_unset=True))
        db_session.commit()

        logger.info(f"Admin '{admin.username}' updated room '{room.name}' (id {room.id})")

        return RoomResponse.model_validate(room)
    except HTTPException:
        db_session.rollback()
        raise
    except Exception as e:
        db_session.rollback()
        logger.error(f"Error updating room {room_id}: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to update room")
    finally:
        db_session.close()


@router.delete("/{room_id}", status_code=status.HTTP_204_NO_CONTENT, tags=["Rooms"])
async def delete_room(
    room_id: int,
    admin: User = Depends(RequireAdmin),
    db_manager: DatabaseManager = Depends(GetDatabaseManager)
):
    """
    Deactivate a room (admin only). Its bookings are kept.
    """
    db_session = db_manager.GetSession()
    try:
        room = storage.GetRoom(db_session, room_id)
        if not room:
            raise HTTPException(status_code=404, detail="Room not found")

        storage.DeactivateRoom(db_session, room)
        db_session.commit()

        logger.info(f"Admin '{admin.username}' deactivated room '{room.name}' (id {room.id})")

        return Response(status_code=status.HTTP_204_NO_CONTENT)
    except HTTPException:
        db_session.rollback()
        raise
    except Exception as e:
        db_session.rollback()
        logger.error(f"Error deactivating room {room_id}: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to delete room")
    finally:
        db_session.close()
