"""
RoomBook Server - Authentication Dependencies

FastAPI dependencies for protected routes:
- GetCurrentUser accepts a bearer token or the session cookie
- RequireAdmin additionally requires the admin role

Every authentication failure is a plain 401 whichever strategy is active,
so responses do not reveal how the server is configured.
"""

import logging
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

import storage
from auth_service import AuthService
from database import GetDatabaseManager
from managers.database_manager import DatabaseManager
from models.database import User
from sessions import GetSession, SESSION_COOKIE_NAME

logger = logging.getLogger(__name__)

# Security scheme for FastAPI; a missing header falls through to the cookie
security = HTTPBearer(auto_error=False)


def GetAuthService(request: Request) -> AuthService:
    return request.app.state.auth_service


def _Unauthorized() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Unauthorized",
        headers={"WWW-Authenticate": "Bearer"},
    )


def GetCurrentUser(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db_manager: DatabaseManager = Depends(GetDatabaseManager),
    auth_service: AuthService = Depends(GetAuthService)
) -> User:
    """
    FastAPI dependency to get the current authenticated user

    Args:
        request: Incoming request (for the session cookie)
        credentials: HTTP Bearer token from Authorization header, if any
        db_manager: DatabaseManager instance
        auth_service: AuthService instance

    Returns:
        User: The authenticated user object

    Raises:
        HTTPException: 401 if neither a valid token nor a valid session is presented
    """
    if credentials is not None:
        user = auth_service.VerifyToken(credentials.credentials)
        if user is None:
            raise _Unauthorized()
        return user

    user_session = GetSession(db_manager, request.cookies.get(SESSION_COOKIE_NAME))
    if user_session is None:
        raise _Unauthorized()

    session = db_manager.GetSession()
    try:
        user = storage.GetUser(session, user_session.user_id)
    finally:
        session.close()

    if user is None:
        raise _Unauthorized()

    return user


def RequireAdmin(current_user: User = Depends(GetCurrentUser)) -> User:
    """
    FastAPI dependency requiring the admin role

    Raises:
        HTTPException: 403 Forbidden if the user is not an admin
    """
    if not current_user.is_admin:
        logger.warning(f"User '{current_user.username}' denied admin access")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required"
        )
    return current_user


def IsOwnerOrAdmin(user: User, owner_id: str) -> bool:
    """Check whether a user may modify a record owned by owner_id"""
    return user.is_admin or user.id == owner_id
