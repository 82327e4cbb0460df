"""
RoomBook Server - Login Response Model

Pydantic model returned by login and registration.
"""

from pydantic import BaseModel

from models.auth.user_response import UserResponse


class LoginResponse(BaseModel):
    """Response model for login and register endpoints"""
    user: UserResponse
    token: str
