"""
RoomBook Server - Change Password Request Model

Pydantic model for change password endpoint request.
"""

from pydantic import BaseModel, Field


class ChangePasswordRequest(BaseModel):
    """Request model for change password endpoint"""
    current_password: str = Field(min_length=1)
    new_password: str = Field(min_length=6)
