"""
Tests for AuthService

Strategy dispatch, the auth_config audit log, external user upserts and
bearer tokens.
"""

from dataclasses import replace
from datetime import timedelta

import pytest

import storage
from auth_service import AuthService
from conftest import ADMIN_USERNAME, ADMIN_PASSWORD, FakeLdapConnection, LdapEntry
from ldap_auth import AuthConfigurationError
from models.database import AuthConfig


LDAP_CONFIG = {
    "url": "ldap://ldap.example.com",
    "searchBase": "ou=people,dc=example,dc=com",
    "bindDN": "cn=svc,dc=example,dc=com",
    "bindPassword": "svc-pass"
}


@pytest.fixture
def ldap_connection():
    return FakeLdapConnection(entries=[LdapEntry("jdoe", "jdoe@example.com", "Jane", "Doe")])


@pytest.fixture
def auth_service(db_manager, config, ldap_connection):
    service = AuthService(db_manager, config, ldap_connection_factory=lambda settings: ldap_connection)
    service.LoadActiveConfig()
    return service


def test_defaults_to_local_strategy(auth_service):
    assert auth_service.active_config.auth_type == "jwt"

    user = auth_service.Authenticate(ADMIN_USERNAME, ADMIN_PASSWORD)
    assert user is not None
    assert user.role == "admin"

    assert auth_service.Authenticate(ADMIN_USERNAME, "wrong") is None
    assert auth_service.Authenticate("ghost", ADMIN_PASSWORD) is None


def test_config_changes_are_audited(auth_service, db_manager):
    """Test each change appends a row and only the newest is active"""
    auth_service.SetActiveConfig("ldap", LDAP_CONFIG, changed_by="admin")
    auth_service.SetActiveConfig("oidc", {"issuer": "https://id.example.com"}, changed_by="admin")

    session = db_manager.GetSession()
    try:
        rows = session.query(AuthConfig).order_by(AuthConfig.id.asc()).all()
    finally:
        session.close()

    assert [row.auth_type for row in rows] == ["ldap", "oidc"]
    assert [row.is_active for row in rows] == [False, True]
    assert auth_service.active_config.auth_type == "oidc"


def test_active_config_survives_restart(auth_service, db_manager, config):
    auth_service.SetActiveConfig("ldap", LDAP_CONFIG, changed_by="admin")

    restarted = AuthService(db_manager, config)
    active = restarted.LoadActiveConfig()

    assert active.auth_type == "ldap"
    assert active.config["searchBase"] == LDAP_CONFIG["searchBase"]
    assert active.changed_by == "admin"


def test_invalid_config_keeps_previous_strategy(auth_service, db_manager):
    with pytest.raises(AuthConfigurationError):
        auth_service.SetActiveConfig("ldap", {"url": "ldap://ldap.example.com"})

    with pytest.raises(AuthConfigurationError):
        auth_service.SetActiveConfig("kerberos", {})

    assert auth_service.active_config.auth_type == "jwt"
    session = db_manager.GetSession()
    try:
        assert session.query(AuthConfig).count() == 0
    finally:
        session.close()


def test_ldap_login_creates_shadow_user(auth_service, db_manager):
    """Test a first LDAP login creates a local user from directory attributes"""
    auth_service.SetActiveConfig("ldap", LDAP_CONFIG)

    user = auth_service.Authenticate("jdoe", "secret")

    assert user is not None
    assert user.id == "jdoe"
    assert user.email == "jdoe@example.com"
    assert user.first_name == "Jane"
    assert user.role == "user"
    assert user.auth_type == "ldap"
    assert user.password_hash is None

    # Local passwords no longer work while LDAP is active
    assert auth_service.Authenticate(ADMIN_USERNAME, ADMIN_PASSWORD) is None


def test_ldap_login_keeps_existing_role(auth_service, db_manager, ldap_connection):
    auth_service.SetActiveConfig("ldap", LDAP_CONFIG)
    auth_service.Authenticate("jdoe", "secret")

    session = db_manager.GetSession()
    try:
        storage.UpsertUser(session, "jdoe", role="admin")
        session.commit()
    finally:
        session.close()

    ldap_connection.entries = [LdapEntry("jdoe", "jane.doe@example.com", "Jane", "Doe")]
    user = auth_service.Authenticate("jdoe", "secret")

    assert user.role == "admin"
    assert user.email == "jane.doe@example.com"


def test_ldap_login_without_mail(auth_service, ldap_connection):
    """Test directory entries without mail get a placeholder address"""
    ldap_connection.entries = [LdapEntry("nomail")]
    auth_service.SetActiveConfig("ldap", LDAP_CONFIG)

    user = auth_service.Authenticate("nomail", "secret")

    assert user.email == "nomail@company.com"


def test_ldap_bad_password(auth_service):
    auth_service.SetActiveConfig("ldap", LDAP_CONFIG)

    assert auth_service.Authenticate("jdoe", "wrong") is None


def test_oidc_password_login_uses_local_accounts(auth_service):
    """Test the OIDC strategy has no password flow and falls back to local accounts"""
    auth_service.SetActiveConfig("oidc", {})

    assert auth_service.Authenticate(ADMIN_USERNAME, ADMIN_PASSWORD) is not None


def test_oidc_claims_upsert(auth_service):
    user = auth_service.AuthenticateOidcClaims({
        "sub": "oidc|42",
        "email": "kim@example.com",
        "preferred_username": "kim",
        "given_name": "Kim",
        "family_name": "Lee"
    })

    assert user.id == "oidc|42"
    assert user.username == "kim"
    assert user.auth_type == "oidc"

    again = auth_service.AuthenticateOidcClaims({"sub": "oidc|42", "email": "kim.lee@example.com"})
    assert again.id == "oidc|42"
    assert again.email == "kim.lee@example.com"
    assert again.first_name == "Kim"


def test_oidc_claims_require_subject(auth_service):
    with pytest.raises(ValueError):
        auth_service.AuthenticateOidcClaims({"email": "kim@example.com"})


def test_token_round_trip(auth_service):
    user = auth_service.Authenticate(ADMIN_USERNAME, ADMIN_PASSWORD)
    token = auth_service.GenerateToken(user)

    token_data = auth_service.DecodeToken(token)
    assert token_data.user_id == user.id
    assert token_data.username == ADMIN_USERNAME
    assert token_data.role == "admin"

    assert auth_service.VerifyToken(token).id == user.id


def test_expired_or_forged_tokens(auth_service, db_manager, config):
    user = auth_service.Authenticate(ADMIN_USERNAME, ADMIN_PASSWORD)

    expired = auth_service.GenerateToken(user, expires_delta=timedelta(seconds=-1))
    assert auth_service.VerifyToken(expired) is None

    forged = AuthService(db_manager, replace(config, jwt_secret="another-secret")).GenerateToken(user)
    assert auth_service.VerifyToken(forged) is None

    assert auth_service.VerifyToken("garbage") is None


def test_directory_user_cannot_take_over_local_account(auth_service, db_manager, ldap_connection):
    """Test a directory entry named like a local user does not rewrite that user"""
    ldap_connection.entries = [LdapEntry(ADMIN_USERNAME, "admin@directory.example.com")]
    auth_service.SetActiveConfig("ldap", LDAP_CONFIG)

    assert auth_service.Authenticate(ADMIN_USERNAME, "secret") is None

    session = db_manager.GetSession()
    try:
        admin = storage.GetUserByUsername(session, ADMIN_USERNAME)
        assert admin.id == "admin-default"
        assert admin.auth_type == "jwt"
        assert storage.GetUser(session, ADMIN_USERNAME) is None
    finally:
        session.close()


def test_external_user_skips_email_owned_by_another_account(auth_service):
    user = auth_service.AuthenticateOidcClaims({
        "sub": "oidc|7", "preferred_username": "sam", "email": "admin@company.com"
    })

    assert user.id == "oidc|7"
    assert user.email is None


def test_oidc_claims_for_taken_username(auth_service):
    assert auth_service.AuthenticateOidcClaims({"sub": "oidc|9", "preferred_username": ADMIN_USERNAME}) is None


def test_resubmitted_redacted_secret_keeps_stored_value(auth_service):
    """Test posting back the masked config from GET /api/auth/config keeps the real secret"""
    auth_service.SetActiveConfig("ldap", LDAP_CONFIG, changed_by="admin")

    masked = auth_service.active_config.Redacted()
    assert masked["bindPassword"] == "********"

    masked["searchFilter"] = "(cn={{username}})"
    auth_service.SetActiveConfig("ldap", masked, changed_by="admin")

    active = auth_service.active_config
    assert active.config["bindPassword"] == LDAP_CONFIG["bindPassword"]
    assert active.config["searchFilter"] == "(cn={{username}})"


def test_redacted_secret_without_stored_value_is_dropped(auth_service):
    config = dict(LDAP_CONFIG, bindPassword="********")

    auth_service.SetActiveConfig("ldap", config)

    assert "bindPassword" not in auth_service.active_config.config
