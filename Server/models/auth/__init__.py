"""
RoomBook Server - Auth Models Package

This package contains Pydantic models for authentication endpoints.
"""

from models.auth.login_request import LoginRequest
from models.auth.login_response import LoginResponse
from models.auth.register_request import RegisterRequest
from models.auth.change_password_request import ChangePasswordRequest
from models.auth.change_password_response import ChangePasswordResponse
from models.auth.token_data import TokenData
from models.auth.user_response import UserResponse

__all__ = [
    'LoginRequest',
    'LoginResponse',
    'RegisterRequest',
    'ChangePasswordRequest',
    'ChangePasswordResponse',
    'TokenData',
    'UserResponse',
]
