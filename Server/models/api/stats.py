"""
RoomBook Server - Stats API Models

Pydantic model for the dashboard statistics endpoint.
"""

from pydantic import BaseModel


class StatsResponse(BaseModel):
    total_rooms: int
    available_rooms: int
    total_bookings_today: int
    utilization_rate: int  # Percent, rounded
