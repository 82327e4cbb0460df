"""
Shared fixtures for RoomBook Server tests

Each test gets its own application on a temporary SQLite file, so tests
never see each other's rooms, bookings or sessions.
"""

import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from config import ServerConfig
from managers.database_manager import DatabaseManager
from server import CreateApp


ADMIN_USERNAME = "admin"
ADMIN_PASSWORD = "Admin@123456"
BOOKING_DATE = "2030-06-03"


@pytest.fixture
def config(tmp_path):
    """Server configuration pointing at a throwaway database"""
    return ServerConfig(
        database_url=f"sqlite:///{tmp_path / 'roombook-test.db'}",
        jwt_secret="test-secret",
        default_admin_username=ADMIN_USERNAME,
        default_admin_password=ADMIN_PASSWORD,
        log_dir=None
    )


@pytest.fixture
def db_manager(config):
    """Initialized DatabaseManager without the web application"""
    manager = DatabaseManager(config.database_url)
    manager.InitializeDatabase(
        admin_username=config.default_admin_username,
        admin_password=config.default_admin_password
    )
    yield manager
    manager.engine.dispose()


@pytest.fixture
def client(config):
    """TestClient with the lifespan (database, auth service) running"""
    with TestClient(CreateApp(config)) as test_client:
        yield test_client


def Login(client, username, password):
    """Log in and return bearer headers; cookies are dropped so tests stay header-driven"""
    response = client.post("/api/auth/login", json={"username": username, "password": password})
    assert response.status_code == 200, response.text
    client.cookies.clear()
    return {"Authorization": f"Bearer {response.json()['token']}"}


def Register(client, username, password="Passw0rd!"):
    """Register a local user and return bearer headers"""
    response = client.post("/api/auth/register", json={
        "username": username,
        "email": f"{username}@example.com",
        "password": password,
        "first_name": username.capitalize(),
        "last_name": "Tester"
    })
    assert response.status_code == 201, response.text
    client.cookies.clear()
    return {"Authorization": f"Bearer {response.json()['token']}"}


@pytest.fixture
def admin_headers(client):
    return Login(client, ADMIN_USERNAME, ADMIN_PASSWORD)


@pytest.fixture
def alice_headers(client):
    return Register(client, "alice")


@pytest.fixture
def bob_headers(client):
    return Register(client, "bob")


@pytest.fixture
def room(client, admin_headers):
    """An active room created through the API"""
    response = client.post("/api/rooms", headers=admin_headers, json={
        "name": "Board Room",
        "floor": "3",
        "capacity": 12,
        "equipment": ["projector", "whiteboard"]
    })
    assert response.status_code == 201, response.text
    return response.json()


def BookingPayload(room_id, start_time, end_time, **overrides):
    payload = {
        "title": "Planning",
        "room_id": room_id,
        "date": BOOKING_DATE,
        "start_time": start_time,
        "end_time": end_time
    }
    payload.update(overrides)
    return payload


class FakeLdapConnection:
    """Stand-in for ldap3.Connection covering the calls LdapAuthenticator makes"""

    def __init__(self, bind_ok=True, entries=None, user_password="secret", search_error=None):
        self.bind_ok = bind_ok
        self.entries = entries or []
        self.user_password = user_password
        self.search_error = search_error
        self.response = None
        self.search_filters = []
        self.rebound_as = None
        self.unbound = False

    def bind(self):
        return self.bind_ok

    def search(self, search_base, search_filter, search_scope=None, attributes=None):
        if self.search_error is not None:
            raise self.search_error
        self.search_filters.append(search_filter)
        self.response = list(self.entries)
        return bool(self.entries)

    def rebind(self, user=None, password=None):
        self.rebound_as = user
        return password == self.user_password

    def unbind(self):
        self.unbound = True
        return True


def LdapEntry(uid, mail=None, given_name=None, surname=None):
    attributes = {"uid": [uid]}
    if mail:
        attributes["mail"] = [mail]
    if given_name:
        attributes["givenName"] = [given_name]
    if surname:
        attributes["sn"] = [surname]
    return {"type": "searchResEntry", "dn": f"uid={uid},ou=people,dc=example,dc=com", "attributes": attributes}
