"""
RoomBook Server - Infrastructure Models Package

This package contains dataclass models for in-memory service state.
"""

from models.infrastructure.active_auth_config import (
    ActiveAuthConfig,
    AUTH_TYPE_JWT,
    AUTH_TYPE_LDAP,
    AUTH_TYPE_OIDC,
    AVAILABLE_AUTH_TYPES,
    SECRET_CONFIG_KEYS,
    REDACTED_VALUE,
)

__all__ = [
    'ActiveAuthConfig',
    'AUTH_TYPE_JWT',
    'AUTH_TYPE_LDAP',
    'AUTH_TYPE_OIDC',
    'AVAILABLE_AUTH_TYPES',
    'SECRET_CONFIG_KEYS',
    'REDACTED_VALUE',
]
