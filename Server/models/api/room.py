"""
RoomBook Server - Room API Models

Pydantic models for room endpoints.
"""

from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field


class CreateRoomRequest(BaseModel):
    """Request model for creating a room"""
    name: str = Field(min_length=1, max_length=100)
    floor: str = Field(min_length=1, max_length=50)
    capacity: int = Field(ge=1, le=1000)
    equipment: List[str] = []
    is_active: bool = True


class UpdateRoomRequest(BaseModel):
    """Request model for updating a room; omitted fields are left unchanged"""
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    floor: Optional[str] = Field(default=None, min_length=1, max_length=50)
    capacity: Optional[int] = Field(default=None, ge=1, le=1000)
    equipment: Optional[List[str]] = None
    is_active: Optional[bool] = None


class RoomResponse(BaseModel):
    """Room as returned by the API"""
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    floor: str
    capacity: int
    equipment: List[str] = []
    is_active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
