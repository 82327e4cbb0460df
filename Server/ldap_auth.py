"""
RoomBook Server - LDAP Authentication

Bind-search-bind flow against a directory server:
1. Bind with the service account
2. Search for the user's entry with the configured filter
3. Rebind as that entry's DN with the password the user supplied

Every failure along the way (unreachable server, rejected service bind,
no entry, wrong password) is reported as None, the same as bad credentials.
Only missing settings raise, from ResolveLdapSettings.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from ldap3 import Server, Connection, SUBTREE, NONE
from ldap3.core.exceptions import LDAPException
from ldap3.utils.conv import escape_filter_chars

from config import ServerConfig, DEFAULT_LDAP_SEARCH_FILTER

logger = logging.getLogger(__name__)

USERNAME_PLACEHOLDER = "{{username}}"
LDAP_USER_ATTRIBUTES = ["uid", "mail", "givenName", "sn"]
LDAP_TIMEOUT_SECONDS = 10


class AuthConfigurationError(Exception):
    """The selected authentication strategy is missing required settings"""
    pass


@dataclass(frozen=True)
class LdapSettings:
    url: str
    search_base: str
    bind_dn: Optional[str] = None
    bind_password: Optional[str] = None
    search_filter: str = DEFAULT_LDAP_SEARCH_FILTER


def ResolveLdapSettings(config: Optional[Dict[str, Any]], server_config: ServerConfig) -> LdapSettings:
    """
    Merge stored LDAP settings with environment fallbacks

    Args:
        config: Stored strategy config (keys: url, bindDN, bindPassword, searchBase, searchFilter)
        server_config: Process configuration holding LDAP_* fallbacks

    Returns:
        LdapSettings: Complete settings

    Raises:
        AuthConfigurationError: If the server URL or search base is missing
    """
    config = config or {}

    url = config.get("url") or server_config.ldap_url
    search_base = config.get("searchBase") or server_config.ldap_search_base
    search_filter = config.get("searchFilter") or server_config.ldap_search_filter

    if not url:
        raise AuthConfigurationError("LDAP server URL is not configured")
    if not search_base:
        raise AuthConfigurationError("LDAP search base is not configured")
    if USERNAME_PLACEHOLDER not in search_filter:
        raise AuthConfigurationError(f"LDAP search filter must contain {USERNAME_PLACEHOLDER}")

    return LdapSettings(
        url=url,
        search_base=search_base,
        bind_dn=config.get("bindDN") or server_config.ldap_bind_dn,
        bind_password=config.get("bindPassword") or server_config.ldap_bind_password,
        search_filter=search_filter
    )


def DefaultConnectionFactory(settings: LdapSettings) -> Connection:
    """Unbound ldap3 connection using the service account credentials"""
    server = Server(settings.url, get_info=NONE, connect_timeout=LDAP_TIMEOUT_SECONDS)
    return Connection(
        server,
        user=settings.bind_dn,
        password=settings.bind_password,
        receive_timeout=LDAP_TIMEOUT_SECONDS
    )


def _FirstValue(value: Any) -> Optional[str]:
    """LDAP attributes may come back as lists; take the first value"""
    if isinstance(value, (list, tuple)):
        return str(value[0]) if value else None
    return str(value) if value else None


class LdapAuthenticator:
    """
    Verifies a username/password pair against a directory server
    """

    def __init__(self, settings: LdapSettings,
                 connection_factory: Optional[Callable[[LdapSettings], Any]] = None):
        """
        Args:
            settings: Resolved LDAP settings
            connection_factory: Builds an unbound connection (tests substitute a fake)
        """
        self.settings = settings
        self.connection_factory = connection_factory or DefaultConnectionFactory

    def BuildSearchFilter(self, username: str) -> str:
        return self.settings.search_filter.replace(USERNAME_PLACEHOLDER, escape_filter_chars(username))

    def Authenticate(self, username: str, password: str) -> Optional[Dict[str, Optional[str]]]:
        """
        Run the bind-search-bind flow

        Args:
            username: Username as typed by the user
            password: Password as typed by the user

        Returns:
            dict: Directory attributes (dn, uid, mail, given_name, surname) on success, None otherwise
        """
        # An empty password would turn the user rebind into an anonymous bind
        if not password:
            return None

        try:
            connection = self.connection_factory(self.settings)
        except LDAPException as e:
            logger.warning(f"Could not create LDAP connection to {self.settings.url}: {e}")
            return None

        try:
            if not connection.bind():
                logger.warning(f"LDAP service account bind failed for {self.settings.url}")
                return None

            search_filter = self.BuildSearchFilter(username)
            if not connection.search(self.settings.search_base, search_filter,
                                     search_scope=SUBTREE, attributes=LDAP_USER_ATTRIBUTES):
                logger.info(f"No LDAP entry found for user '{username}'")
                return None

            entries = [entry for entry in connection.response or [] if entry.get("type") == "searchResEntry"]
            if not entries:
                logger.info(f"No LDAP entry found for user '{username}'")
                return None

            entry = entries[0]
            if not connection.rebind(user=entry["dn"], password=password):
                logger.info(f"LDAP bind rejected for user '{username}'")
                return None

            attributes = entry.get("attributes") or {}
            return {
                "dn": entry["dn"],
                "uid": _FirstValue(attributes.get("uid")),
                "mail": _FirstValue(attributes.get("mail")),
                "given_name": _FirstValue(attributes.get("givenName")),
                "surname": _FirstValue(attributes.get("sn")),
            }

        except LDAPException as e:
            logger.warning(f"LDAP authentication failed for user '{username}': {e}")
            return None

        finally:
            try:
                connection.unbind()
            except LDAPException as e:
                logger.debug(f"Error closing LDAP connection: {e}")
