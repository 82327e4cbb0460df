"""
RoomBook Server - User Response Model

Public view of a user; never carries the password hash.
"""

from typing import Optional
from pydantic import BaseModel, ConfigDict


class UserResponse(BaseModel):
    """User as returned by the API"""
    model_config = ConfigDict(from_attributes=True)

    id: str
    username: Optional[str] = None
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: str
    auth_type: str
