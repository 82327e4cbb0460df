"""
RoomBook Server - Statistics Endpoint

Point-in-time dashboard numbers for the portal home page.
"""

import logging
from fastapi import APIRouter, Depends, HTTPException

import storage
from auth import GetCurrentUser
from database import GetDatabaseManager
from managers.database_manager import DatabaseManager
from models.api import StatsResponse
from models.database import User

# Create logger
logger = logging.getLogger(__name__)

# Create router instance
router = APIRouter(prefix="/api")


@router.get("/stats", response_model=StatsResponse, tags=["Statistics"])
async def get_stats(
    current_user: User = Depends(GetCurrentUser),
    db_manager: DatabaseManager = Depends(GetDatabaseManager)
):
    """
    Get dashboard statistics

    Returns:
        StatsResponse: Active room count, rooms free right now, confirmed
        bookings today and the utilization rate in percent
    """
    workday_hours = db_manager.GetIntSetting("workday_hours")

    db_session = db_manager.GetSession()
    try:
        return StatsResponse(**storage.GetBookingStats(db_session, workday_hours=workday_hours))
    except Exception as e:
        logger.error(f"Error computing statistics: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to fetch statistics")
    finally:
        db_session.close()
