"""
RoomBook Server - Configuration

Loads server configuration from environment variables. A .env file in the
working directory (or the path given to LoadConfig) is read first.
Settings that admins change at runtime live in the settings table instead
(see DatabaseManager.PopulateDefaultSettings).
"""

import os
import secrets
import logging
from dataclasses import dataclass, field
from typing import List, Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)


DEFAULT_DATABASE_URL = "sqlite:///database/roombook.db"
DEFAULT_LDAP_SEARCH_FILTER = "(uid={{username}})"


@dataclass
class ServerConfig:
    """Process-wide configuration, built once at startup"""
    database_url: str = DEFAULT_DATABASE_URL
    jwt_secret: str = field(default_factory=lambda: secrets.token_urlsafe(32))
    session_cookie_secure: bool = False

    default_admin_username: str = "admin"
    default_admin_email: str = "admin@company.com"
    default_admin_password: Optional[str] = None  # Generated on first run when unset

    # Fallbacks for LDAP settings missing from the stored auth config
    ldap_url: Optional[str] = None
    ldap_bind_dn: Optional[str] = None
    ldap_bind_password: Optional[str] = None
    ldap_search_base: Optional[str] = None
    ldap_search_filter: str = DEFAULT_LDAP_SEARCH_FILTER

    sendgrid_api_key: Optional[str] = None
    mail_from: Optional[str] = None  # Falls back to the organizer's address

    log_level: str = "INFO"
    log_dir: Optional[str] = "logs"  # None disables file logging setup
    cors_origins: List[str] = field(default_factory=lambda: ["*"])


def _GetBool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def LoadConfig(env_file: Optional[str] = None) -> ServerConfig:
    """
    Build a ServerConfig from the environment

    Args:
        env_file: Optional path to a .env file (defaults to ./.env if present)

    Returns:
        ServerConfig: Populated configuration
    """
    load_dotenv(env_file)

    config = ServerConfig(
        database_url=os.getenv("DATABASE_URL", DEFAULT_DATABASE_URL),
        session_cookie_secure=_GetBool("SESSION_COOKIE_SECURE"),
        default_admin_username=os.getenv("DEFAULT_ADMIN_USERNAME", "admin"),
        default_admin_email=os.getenv("DEFAULT_ADMIN_EMAIL", "admin@company.com"),
        default_admin_password=os.getenv("DEFAULT_ADMIN_PASSWORD"),
        ldap_url=os.getenv("LDAP_URL"),
        ldap_bind_dn=os.getenv("LDAP_BIND_DN"),
        ldap_bind_password=os.getenv("LDAP_BIND_PASSWORD"),
        ldap_search_base=os.getenv("LDAP_SEARCH_BASE"),
        ldap_search_filter=os.getenv("LDAP_SEARCH_FILTER", DEFAULT_LDAP_SEARCH_FILTER),
        sendgrid_api_key=os.getenv("SENDGRID_API_KEY"),
        mail_from=os.getenv("MAIL_FROM"),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        log_dir=os.getenv("LOG_DIR", "logs"),
        cors_origins=[origin.strip() for origin in os.getenv("CORS_ORIGINS", "*").split(",") if origin.strip()],
    )

    jwt_secret = os.getenv("JWT_SECRET")
    if jwt_secret:
        config.jwt_secret = jwt_secret
    else:
        logger.warning("JWT_SECRET is not set - using a random key, tokens will not survive a restart")

    return config
