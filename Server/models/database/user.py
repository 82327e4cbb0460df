"""
RoomBook Server - User Database Model

Identity record for everyone who can sign in to the portal.
The auth_type column records which strategy owns the user's credentials.
"""

from datetime import datetime, timezone
from sqlalchemy import Column, String, DateTime
from sqlalchemy.orm import relationship

from models.database.base import Base


class User(Base):
    """
    Users table - local accounts and shadow rows for LDAP/OIDC identities
    """
    __tablename__ = "users"

    id = Column(String, primary_key=True)
    username = Column(String, unique=True, nullable=True)
    email = Column(String, unique=True, nullable=True)
    password_hash = Column(String, nullable=True)  # Only set for local (jwt) accounts
    first_name = Column(String, nullable=True)
    last_name = Column(String, nullable=True)
    profile_image_url = Column(String, nullable=True)
    role = Column(String, nullable=False, default="user")  # 'user' or 'admin'
    auth_type = Column(String, nullable=False, default="jwt")  # 'jwt', 'ldap', 'oidc' or 'replit'
    created_at = Column(DateTime, nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime, nullable=False, default=lambda: datetime.now(timezone.utc))

    bookings = relationship("Booking", back_populates="user")

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    @property
    def display_name(self) -> str:
        """Full name if known, otherwise email or username"""
        full_name = f"{self.first_name or ''} {self.last_name or ''}".strip()
        return full_name or self.email or self.username or "Unknown"
