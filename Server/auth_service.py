"""
RoomBook Server - Authentication Service

Holds the active authentication strategy and verifies credentials with it.

The active strategy is an in-memory ActiveAuthConfig value owned by this
service. Changes are persisted to the auth_config table as an audit log
(deactivate the previous row and append the new one in one transaction),
then the in-memory value is swapped, so some strategy is always active.

One AuthService is built per application in the lifespan handler and
reached from routes through the GetAuthService dependency.
"""

import logging
import threading
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional

from jose import JWTError, jwt
from sqlalchemy.orm import Session

import storage
from config import ServerConfig
from ldap_auth import AuthConfigurationError, LdapAuthenticator, ResolveLdapSettings
from managers.database_manager import DatabaseManager
from models.auth import TokenData
from models.database import AuthConfig, User
from models.infrastructure import (
    ActiveAuthConfig, AUTH_TYPE_JWT, AUTH_TYPE_LDAP, AUTH_TYPE_OIDC, AVAILABLE_AUTH_TYPES,
    SECRET_CONFIG_KEYS, REDACTED_VALUE
)

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"


class AuthService:
    """
    Strategy dispatch for credential checks, plus token issue/verification
    """

    def __init__(self, db_manager: DatabaseManager, config: ServerConfig,
                 ldap_connection_factory: Optional[Callable] = None):
        """
        Initialize the authentication service

        Args:
            db_manager: DatabaseManager instance
            config: Server configuration (JWT secret, LDAP fallbacks)
            ldap_connection_factory: Optional override for building LDAP connections
        """
        self.db_manager = db_manager
        self.config = config
        self.ldap_connection_factory = ldap_connection_factory
        self._active_config = ActiveAuthConfig()
        self._config_lock = threading.Lock()

        # auth_type -> credential check
        self._strategies: Dict[str, Callable[[Session, str, str], Optional[User]]] = {
            AUTH_TYPE_JWT: self._AuthenticateLocal,
            AUTH_TYPE_OIDC: self._AuthenticateLocal,  # No password flow of its own
            AUTH_TYPE_LDAP: self._AuthenticateLdap,
        }

    # ==================== Strategy Configuration ====================

    @property
    def active_config(self) -> ActiveAuthConfig:
        return self._active_config

    def LoadActiveConfig(self) -> ActiveAuthConfig:
        """
        Load the active strategy from the audit log (jwt if none recorded)

        Returns:
            ActiveAuthConfig: The loaded strategy
        """
        session = self.db_manager.GetSession()
        try:
            row = (
                session.query(AuthConfig)
                .filter(AuthConfig.is_active.is_(True))
                .order_by(AuthConfig.id.desc())
                .first()
            )
            if row and row.auth_type in AVAILABLE_AUTH_TYPES:
                active = ActiveAuthConfig(
                    auth_type=row.auth_type,
                    config=dict(row.config or {}),
                    changed_by=row.changed_by,
                    updated_at=row.updated_at
                )
            else:
                active = ActiveAuthConfig()
        finally:
            session.close()

        with self._config_lock:
            self._active_config = active

        logger.info(f"Active authentication strategy: {active.auth_type}")
        return active

    def ValidateConfig(self, auth_type: str, config: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        """
        Check that a strategy has the settings it needs

        Args:
            auth_type: 'jwt', 'ldap' or 'oidc'
            config: Strategy settings

        Returns:
            dict: The config to store

        Raises:
            AuthConfigurationError: If the strategy is unknown or settings are missing
        """
        if auth_type not in AVAILABLE_AUTH_TYPES:
            raise AuthConfigurationError(f"Unknown authentication type: {auth_type}")

        config = dict(config or {})
        if auth_type == AUTH_TYPE_LDAP:
            ResolveLdapSettings(config, self.config)

        return config

    def SetActiveConfig(self, auth_type: str, config: Optional[Dict[str, Any]] = None,
                        changed_by: Optional[str] = None) -> ActiveAuthConfig:
        """
        Switch the active authentication strategy

        Args:
            auth_type: 'jwt', 'ldap' or 'oidc'
            config: Strategy settings
            changed_by: Username of the admin making the change

        Returns:
            ActiveAuthConfig: The new active strategy

        Raises:
            AuthConfigurationError: If the config is invalid
        """
        config = self.ValidateConfig(auth_type, self._RestoreRedactedSecrets(config))
        now = datetime.now(timezone.utc)

        with self._config_lock:
            session = self.db_manager.GetSession()
            try:
                session.query(AuthConfig).filter(AuthConfig.is_active.is_(True)).update(
                    {AuthConfig.is_active: False, AuthConfig.updated_at: now},
                    synchronize_session=False
                )
                session.add(AuthConfig(
                    auth_type=auth_type,
                    is_active=True,
                    config=config,
                    changed_by=changed_by,
                    created_at=now,
                    updated_at=now
                ))
                session.commit()
            except Exception:
                session.rollback()
                raise
            finally:
                session.close()

            self._active_config = ActiveAuthConfig(
                auth_type=auth_type,
                config=config,
                changed_by=changed_by,
                updated_at=now
            )

        logger.info(f"Authentication strategy set to '{auth_type}' by '{changed_by or 'system'}'")
        return self._active_config

    def _RestoreRedactedSecrets(self, config: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
        """
        Replace masked secrets (as returned by GET /api/auth/config) with the
        values currently stored; a mask with nothing behind it is dropped
        """
        if not config:
            return config

        config = dict(config)
        previous = self._active_config.config
        for key in SECRET_CONFIG_KEYS:
            if config.get(key) == REDACTED_VALUE:
                if previous.get(key):
                    config[key] = previous[key]
                else:
                    del config[key]
        return config

    # ==================== Credential Checks ====================

    def Authenticate(self, username: str, password: str) -> Optional[User]:
        """
        Verify credentials with the active strategy

        Args:
            username: Username
            password: Plain text password

        Returns:
            User: Authenticated user, or None for bad credentials

        Raises:
            AuthConfigurationError: If the active strategy is misconfigured
        """
        active = self._active_config
        strategy = self._strategies[active.auth_type]

        session = self.db_manager.GetSession()
        try:
            user = strategy(session, username, password)
            if user is None:
                logger.warning(f"Authentication failed for user '{username}' ({active.auth_type})")
            return user
        finally:
            session.close()

    def _AuthenticateLocal(self, session: Session, username: str, password: str) -> Optional[User]:
        """Compare against the bcrypt hash of a local account"""
        user = storage.GetUserByUsername(session, username)
        if not user or not user.password_hash:
            return None

        if not self.db_manager.VerifyPassword(password, user.password_hash):
            return None

        return user

    def _AuthenticateLdap(self, session: Session, username: str, password: str) -> Optional[User]:
        """Bind-search-bind against the directory, then upsert a shadow user"""
        settings = ResolveLdapSettings(self._active_config.config, self.config)
        authenticator = LdapAuthenticator(settings, self.ldap_connection_factory)

        entry = authenticator.Authenticate(username, password)
        if entry is None:
            return None

        user_id = entry["uid"] or username
        fields = {
            "username": username,
            "email": entry["mail"] or f"{username}@company.com",
            "first_name": entry["given_name"] or "",
            "last_name": entry["surname"] or "",
            "auth_type": AUTH_TYPE_LDAP,
        }
        return self._UpsertExternalUser(session, user_id, username, fields)

    def AuthenticateOidcClaims(self, claims: Dict[str, Any]) -> Optional[User]:
        """
        Create or update the local user for a verified OIDC identity

        Args:
            claims: ID token claims (sub required; email, preferred_username, given_name, family_name optional)

        Returns:
            User: The shadow user, or None if its username belongs to another account

        Raises:
            ValueError: If the claims carry no subject
        """
        subject = claims.get("sub")
        if not subject:
            raise ValueError("OIDC claims must include 'sub'")

        username = claims.get("preferred_username") or claims.get("email") or subject
        fields = {
            "username": username,
            "email": claims.get("email"),
            "first_name": claims.get("given_name"),
            "last_name": claims.get("family_name"),
            "profile_image_url": claims.get("picture"),
            "auth_type": AUTH_TYPE_OIDC,
        }

        session = self.db_manager.GetSession()
        try:
            return self._UpsertExternalUser(session, str(subject), username, fields)
        finally:
            session.close()

    def _UpsertExternalUser(self, session: Session, user_id: str, username: str,
                            fields: Dict[str, Any]) -> Optional[User]:
        """
        Create or refresh the shadow row for a directory/OIDC identity.
        Matches on id only; an existing user keeps its role. An identity whose
        username already belongs to a different account is refused, and an
        email owned by another account is left off the shadow row.

        Returns:
            User: The shadow user, or None if the username is taken
        """
        fields = {key: value for key, value in fields.items() if value is not None}
        try:
            owner = storage.GetUserByUsername(session, username)
            if owner is not None and owner.id != user_id:
                logger.warning(
                    f"Refusing {fields['auth_type']} login for '{username}': "
                    f"username belongs to existing {owner.auth_type} user '{owner.id}'"
                )
                return None

            email = fields.get("email")
            if email:
                email_owner = storage.GetUserByEmail(session, email)
                if email_owner is not None and email_owner.id != user_id:
                    logger.warning(f"Email '{email}' already belongs to user '{email_owner.id}', not copying it")
                    del fields["email"]

            user = storage.GetUser(session, user_id)
            if user is None:
                user = storage.CreateUser(session, id=user_id, role="user", **fields)
                logger.info(f"Created {fields['auth_type']} user '{username}'")
            else:
                user = storage.UpsertUser(session, user.id, **fields)
            session.commit()
            return user
        except Exception:
            session.rollback()
            raise

    # ==================== Tokens ====================

    def GenerateToken(self, user: User, expires_delta: Optional[timedelta] = None) -> str:
        """
        Create a signed bearer token for a user

        Args:
            user: Authenticated user
            expires_delta: Optional custom lifetime (defaults to the jwt_expiration_hours setting)

        Returns:
            str: Encoded JWT
        """
        if expires_delta is None:
            expires_delta = timedelta(hours=self.db_manager.GetIntSetting("jwt_expiration_hours"))

        payload = {
            "user_id": user.id,
            "username": user.username or user.id,
            "role": user.role,
            "exp": datetime.now(timezone.utc) + expires_delta,
        }
        return jwt.encode(payload, self.config.jwt_secret, algorithm=ALGORITHM)

    def DecodeToken(self, token: str) -> Optional[TokenData]:
        """
        Decode and validate a bearer token

        Returns:
            TokenData: Token contents, or None if invalid or expired
        """
        try:
            payload = jwt.decode(token, self.config.jwt_secret, algorithms=[ALGORITHM])
        except JWTError:
            return None

        user_id = payload.get("user_id")
        username = payload.get("username")
        if user_id is None or username is None:
            return None

        return TokenData(user_id=user_id, username=username, role=payload.get("role", "user"))

    def VerifyToken(self, token: str) -> Optional[User]:
        """
        Resolve a bearer token to its user

        Returns:
            User: Token owner, or None if the token is invalid or the user is gone
        """
        token_data = self.DecodeToken(token)
        if token_data is None:
            return None

        session = self.db_manager.GetSession()
        try:
            return storage.GetUser(session, token_data.user_id)
        finally:
            session.close()
