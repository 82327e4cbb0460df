"""
RoomBook Server - UserSession Database Model

Cookie-backed login sessions, persisted so they survive restarts.
"""

from datetime import datetime, timezone
from sqlalchemy import Column, String, DateTime, ForeignKey, Index

from models.database.base import Base


class UserSession(Base):
    """
    Sessions table - server side state for the session cookie
    """
    __tablename__ = "sessions"

    session_id = Column(String, primary_key=True)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime, nullable=False, default=lambda: datetime.now(timezone.utc))
    expires_at = Column(DateTime, nullable=False)

    __table_args__ = (
        Index('idx_sessions_expire', 'expires_at'),
    )

    def IsExpired(self) -> bool:
        """Check if session has expired"""
        expires_at = self.expires_at
        # SQLite hands back naive datetimes
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        return datetime.now(timezone.utc) >= expires_at
