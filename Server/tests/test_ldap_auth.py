"""
Tests for the LDAP bind-search-bind flow

A fake connection stands in for the directory server.
"""

import pytest
from ldap3.core.exceptions import LDAPSocketOpenError

from config import ServerConfig
from conftest import FakeLdapConnection, LdapEntry
from ldap_auth import AuthConfigurationError, LdapAuthenticator, LdapSettings, ResolveLdapSettings


SETTINGS = LdapSettings(
    url="ldap://ldap.example.com",
    search_base="ou=people,dc=example,dc=com",
    bind_dn="cn=svc,dc=example,dc=com",
    bind_password="svc-pass"
)


def Authenticator(connection):
    return LdapAuthenticator(SETTINGS, lambda settings: connection)


def test_successful_login():
    connection = FakeLdapConnection(entries=[LdapEntry("jdoe", "jdoe@example.com", "Jane", "Doe")])

    result = Authenticator(connection).Authenticate("jdoe", "secret")

    assert result == {
        "dn": "uid=jdoe,ou=people,dc=example,dc=com",
        "uid": "jdoe",
        "mail": "jdoe@example.com",
        "given_name": "Jane",
        "surname": "Doe",
    }
    assert connection.search_filters == ["(uid=jdoe)"]
    assert connection.rebound_as == "uid=jdoe,ou=people,dc=example,dc=com"
    assert connection.unbound


def test_service_bind_failure():
    connection = FakeLdapConnection(bind_ok=False)

    assert Authenticator(connection).Authenticate("jdoe", "secret") is None
    assert connection.search_filters == []
    assert connection.unbound


def test_no_matching_entry():
    connection = FakeLdapConnection(entries=[])

    assert Authenticator(connection).Authenticate("ghost", "secret") is None
    assert connection.unbound


def test_wrong_user_password():
    connection = FakeLdapConnection(entries=[LdapEntry("jdoe")])

    assert Authenticator(connection).Authenticate("jdoe", "wrong") is None
    assert connection.unbound


def test_empty_password_never_binds():
    """Test an empty password is refused before contacting the server"""
    def factory(settings):
        raise AssertionError("connection should not be created")

    assert LdapAuthenticator(SETTINGS, factory).Authenticate("jdoe", "") is None


def test_server_unreachable():
    connection = FakeLdapConnection(search_error=LDAPSocketOpenError("connection refused"))

    assert Authenticator(connection).Authenticate("jdoe", "secret") is None
    assert connection.unbound


def test_search_filter_escapes_username():
    """Test filter metacharacters in usernames cannot widen the search"""
    authenticator = Authenticator(FakeLdapConnection())

    assert authenticator.BuildSearchFilter("j*)(uid=*") == r"(uid=j\2a\29\28uid=\2a)"


def test_resolve_settings_from_stored_config():
    settings = ResolveLdapSettings({
        "url": "ldaps://dir.example.com",
        "searchBase": "dc=example,dc=com",
        "bindDN": "cn=svc",
        "bindPassword": "pw",
        "searchFilter": "(sAMAccountName={{username}})"
    }, ServerConfig())

    assert settings.url == "ldaps://dir.example.com"
    assert settings.bind_dn == "cn=svc"
    assert settings.search_filter == "(sAMAccountName={{username}})"


def test_resolve_settings_environment_fallback():
    server_config = ServerConfig(ldap_url="ldap://env.example.com", ldap_search_base="dc=env")

    settings = ResolveLdapSettings({}, server_config)

    assert settings.url == "ldap://env.example.com"
    assert settings.search_base == "dc=env"
    assert settings.search_filter == "(uid={{username}})"


def test_resolve_settings_missing_values():
    with pytest.raises(AuthConfigurationError):
        ResolveLdapSettings({"searchBase": "dc=example,dc=com"}, ServerConfig())

    with pytest.raises(AuthConfigurationError):
        ResolveLdapSettings({"url": "ldap://ldap.example.com"}, ServerConfig())

    with pytest.raises(AuthConfigurationError):
        ResolveLdapSettings({
            "url": "ldap://ldap.example.com",
            "searchBase": "dc=example,dc=com",
            "searchFilter": "(uid=fixed)"
        }, ServerConfig())
