"""
RoomBook Server - Authentication Endpoints

This module contains login, registration, logout, current-user and
password endpoints, plus the admin endpoints that switch the active
authentication strategy.
"""

import logging
import uuid
from datetime import datetime, timezone
from fastapi import APIRouter, Depends, HTTPException, Request, Response, status

import storage
from auth import GetAuthService, GetCurrentUser, RequireAdmin
from auth_service import AuthService
from config import ServerConfig
from database import GetDatabaseManager, GetServerConfig
from ldap_auth import AuthConfigurationError
from managers.database_manager import DatabaseManager
from models.api import AuthConfigRequest, AuthConfigResponse, AuthMethodsResponse
from models.auth import (
    LoginRequest, LoginResponse, RegisterRequest, UserResponse,
    ChangePasswordRequest, ChangePasswordResponse
)
from models.database import User
from models.infrastructure import AUTH_TYPE_JWT, AVAILABLE_AUTH_TYPES
from sessions import CreateSession, DeleteSession, SESSION_COOKIE_NAME


# Create logger
logger = logging.getLogger(__name__)

# Create router instance
router = APIRouter(prefix="/api/auth")


def _SetSessionCookie(response: Response, session_id: str, config: ServerConfig, lifetime_hours: int) -> None:
    response.set_cookie(
        key=SESSION_COOKIE_NAME,
        value=session_id,
        max_age=lifetime_hours * 3600,
        httponly=True,
        secure=config.session_cookie_secure,
        samesite="lax"
    )


# ==================== Authentication Endpoints ====================

@router.post("/login", response_model=LoginResponse, tags=["Authentication"])
async def login(
    login_request: LoginRequest,
    response: Response,
    auth_service: AuthService = Depends(GetAuthService),
    db_manager: DatabaseManager = Depends(GetDatabaseManager),
    config: ServerConfig = Depends(GetServerConfig)
):
    """
    Authenticate with the active strategy, start a cookie session and
    return a bearer token

    Args:
        login_request: Username and password

    Returns:
        LoginResponse: User and JWT token

    Raises:
        HTTPException: 401 if credentials are invalid
    """
    try:
        user = auth_service.Authenticate(login_request.username, login_request.password)
    except AuthConfigurationError as e:
        logger.error(f"Login failed, authentication strategy misconfigured: {e}")
        raise HTTPException(status_code=500, detail="Login failed")
    except Exception as e:
        logger.error(f"Login error for user '{login_request.username}': {str(e)}")
        raise HTTPException(status_code=500, detail="Login failed")

    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    token = auth_service.GenerateToken(user)
    user_session = CreateSession(db_manager, user.id)
    _SetSessionCookie(response, user_session.session_id, config, db_manager.GetIntSetting("session_lifetime_hours"))

    logger.info(f"User '{user.username}' logged in successfully")

    return LoginResponse(user=UserResponse.model_validate(user), token=token)


@router.post("/register", response_model=LoginResponse, status_code=status.HTTP_201_CREATED, tags=["Authentication"])
async def register(
    register_request: RegisterRequest,
    response: Response,
    auth_service: AuthService = Depends(GetAuthService),
    db_manager: DatabaseManager = Depends(GetDatabaseManager),
    config: ServerConfig = Depends(GetServerConfig)
):
    """
    Create a local account (only while the local strategy is active)

    Returns:
        LoginResponse: The new user and a JWT token

    Raises:
        HTTPException: 400 if another strategy is active, 409 if the username or email is taken
    """
    if auth_service.active_config.auth_type != AUTH_TYPE_JWT:
        raise HTTPException(
            status_code=400,
            detail="Registration is only available for JWT authentication"
        )

    db_session = db_manager.GetSession()
    try:
        if storage.GetUserByUsername(db_session, register_request.username):
            raise HTTPException(status_code=409, detail="Username already exists")
        if storage.GetUserByEmail(db_session, register_request.email):
            raise HTTPException(status_code=409, detail="Email already registered")

        user = storage.CreateUser(
            db_session,
            id=f"user-{uuid.uuid4().hex}",
            username=register_request.username,
            email=register_request.email,
            password_hash=db_manager.HashPassword(register_request.password),
            first_name=register_request.first_name,
            last_name=register_request.last_name,
            role="user",
            auth_type=AUTH_TYPE_JWT
        )
        db_session.commit()

    except HTTPException:
        db_session.rollback()
        raise
    except Exception as e:
        db_session.rollback()
        logger.error(f"Error registering user '{register_request.username}': {str(e)}")
        raise HTTPException(status_code=500, detail="Registration failed")
    finally:
        db_session.close()

    token = auth_service.GenerateToken(user)
    user_session = CreateSession(db_manager, user.id)
    _SetSessionCookie(response, user_session.session_id, config, db_manager.GetIntSetting("session_lifetime_hours"))

    logger.info(f"Registered new user '{user.username}'")

    return LoginResponse(user=UserResponse.model_validate(user), token=token)


@router.post("/logout", tags=["Authentication"])
async def logout(
    request: Request,
    response: Response,
    db_manager: DatabaseManager = Depends(GetDatabaseManager)
):
    """
    End the cookie session. Bearer tokens simply expire.
    """
    try:
        DeleteSession(db_manager, request.cookies.get(SESSION_COOKIE_NAME))
    except Exception as e:
        logger.error(f"Error during logout: {str(e)}")
        raise HTTPException(status_code=500, detail="Logout failed")

    response.delete_cookie(SESSION_COOKIE_NAME)
    return {"message": "Logged out successfully"}


@router.get("/user", response_model=UserResponse, tags=["Authentication"])
async def get_current_user(current_user: User = Depends(GetCurrentUser)):
    """
    Get the currently authenticated user
    """
    return UserResponse.model_validate(current_user)


@router.post("/change-password", response_model=ChangePasswordResponse, tags=["Authentication"])
async def change_password(
    password_request: ChangePasswordRequest,
    current_user: User = Depends(GetCurrentUser),
    db_manager: DatabaseManager = Depends(GetDatabaseManager)
):
    """
    Change the password of the current local account

    Args:
        password_request: Current and new passwords
        current_user: Currently authenticated user

    Returns:
        ChangePasswordResponse: Success status and message
    """
    if current_user.auth_type != AUTH_TYPE_JWT:
        return ChangePasswordResponse(
            success=False,
            message="Password is managed by the external identity provider"
        )

    if not db_manager.VerifyPassword(password_request.current_password, current_user.password_hash):
        logger.warning(f"Failed password change attempt for user '{current_user.username}' - incorrect current password")
        return ChangePasswordResponse(
            success=False,
            message="Current password is incorrect"
        )

    db_session = db_manager.GetSession()
    try:
        user = storage.GetUser(db_session, current_user.id)
        user.password_hash = db_manager.HashPassword(password_request.new_password)
        user.updated_at = datetime.now(timezone.utc)
        db_session.commit()

        logger.info(f"User '{current_user.username}' changed password successfully")

        return ChangePasswordResponse(
            success=True,
            message="Password changed successfully"
        )

    except Exception as e:
        db_session.rollback()
        logger.error(f"Error changing password for user '{current_user.username}': {str(e)}")
        return ChangePasswordResponse(
            success=False,
            message="An error occurred while changing password"
        )

    finally:
        db_session.close()


# ==================== Strategy Configuration ====================

@router.get("/config", response_model=AuthConfigResponse, tags=["Authentication"])
async def get_auth_config(
    admin: User = Depends(RequireAdmin),
    auth_service: AuthService = Depends(GetAuthService)
):
    """
    Get the active authentication strategy (admin only, secrets redacted)
    """
    active = auth_service.active_config
    return AuthConfigResponse(
        auth_type=active.auth_type,
        config=active.Redacted(),
        is_active=True,
        changed_by=active.changed_by,
        updated_at=active.updated_at
    )


@router.post("/config", tags=["Authentication"])
async def set_auth_config(
    config_request: AuthConfigRequest,
    admin: User = Depends(RequireAdmin),
    auth_service: AuthService = Depends(GetAuthService)
):
    """
    Switch the active authentication strategy (admin only)

    Raises:
        HTTPException: 400 if the strategy settings are incomplete
    """
    try:
        auth_service.SetActiveConfig(config_request.auth_type, config_request.config, changed_by=admin.username)
    except AuthConfigurationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error updating auth configuration: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to update auth configuration")

    return {"message": "Authentication configuration updated"}


@router.get("/methods", response_model=AuthMethodsResponse, tags=["Authentication"])
async def get_auth_methods(auth_service: AuthService = Depends(GetAuthService)):
    """
    List the authentication strategies and which one is active (public,
    so the login page can adapt)
    """
    return AuthMethodsResponse(
        current=auth_service.active_config.auth_type,
        available=list(AVAILABLE_AUTH_TYPES)
    )
