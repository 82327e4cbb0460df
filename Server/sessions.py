"""
RoomBook Server - Session Management

Cookie-based login sessions for the browser portal. Session rows are stored
in the sessions table so logins survive a server restart. Bearer tokens
(see auth_service.py) work independently of these sessions.
"""

import secrets
import logging
from datetime import datetime, timezone, timedelta
from typing import Optional

from models.database import UserSession
from managers.database_manager import DatabaseManager

logger = logging.getLogger(__name__)

SESSION_COOKIE_NAME = "roombook_session"


def CreateSession(db_manager: DatabaseManager, user_id: str) -> UserSession:
    """
    Create a new login session

    Args:
        db_manager: DatabaseManager instance
        user_id: User ID the session belongs to

    Returns:
        UserSession: The stored session (session_id goes into the cookie)
    """
    lifetime_hours = db_manager.GetIntSetting("session_lifetime_hours")
    now = datetime.now(timezone.utc)

    user_session = UserSession(
        session_id=secrets.token_urlsafe(32),
        user_id=user_id,
        created_at=now,
        expires_at=now + timedelta(hours=lifetime_hours)
    )

    session = db_manager.GetSession()
    try:
        session.add(user_session)
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()

    logger.info(f"Created session for user '{user_id}' (expires in {lifetime_hours} hours)")
    return user_session


def GetSession(db_manager: DatabaseManager, session_id: Optional[str]) -> Optional[UserSession]:
    """
    Get an active session by ID

    Args:
        db_manager: DatabaseManager instance
        session_id: Session ID from cookie

    Returns:
        UserSession if valid and not expired, None otherwise
    """
    if not session_id:
        return None

    session = db_manager.GetSession()
    try:
        user_session = session.query(UserSession).filter(UserSession.session_id == session_id).first()
        if not user_session:
            return None

        if user_session.IsExpired():
            logger.info(f"Session expired for user '{user_session.user_id}'")
            session.delete(user_session)
            session.commit()
            return None

        return user_session
    finally:
        session.close()


def DeleteSession(db_manager: DatabaseManager, session_id: Optional[str]) -> None:
    """
    Delete a session (logout)

    Args:
        db_manager: DatabaseManager instance
        session_id: Session ID to delete
    """
    if not session_id:
        return

    session = db_manager.GetSession()
    try:
        user_session = session.query(UserSession).filter(UserSession.session_id == session_id).first()
        if user_session:
            session.delete(user_session)
            session.commit()
            logger.info(f"Deleted session for user '{user_session.user_id}'")
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def CleanupExpiredSessions(db_manager: DatabaseManager) -> int:
    """
    Remove all expired sessions

    Returns:
        Number of sessions cleaned up
    """
    session = db_manager.GetSession()
    try:
        now = datetime.now(timezone.utc)
        expired_count = (
            session.query(UserSession)
            .filter(UserSession.expires_at <= now)
            .delete(synchronize_session=False)
        )
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()

    if expired_count:
        logger.info(f"Cleaned up {expired_count} expired sessions")

    return expired_count
