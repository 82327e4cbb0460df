"""
RoomBook Server - AuthConfig Database Model

Audit log of authentication strategy changes. The newest row is the only
one with is_active set; the running strategy itself is held by AuthService.
"""

from datetime import datetime, timezone
from sqlalchemy import Column, Integer, String, DateTime, Boolean, JSON

from models.database.base import Base


class AuthConfig(Base):
    """
    Auth_config table - one row per strategy change
    """
    __tablename__ = "auth_config"

    id = Column(Integer, primary_key=True, autoincrement=True)
    auth_type = Column(String, nullable=False)  # 'jwt', 'ldap' or 'oidc'
    is_active = Column(Boolean, nullable=False, default=False)
    config = Column(JSON, nullable=True)  # Strategy specific settings
    changed_by = Column(String, nullable=True)  # Username of the admin who made the change
    created_at = Column(DateTime, nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime, nullable=False, default=lambda: datetime.now(timezone.utc))
