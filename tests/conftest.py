from typing import List, Tuple

import pytest
from fastapi.testclient import TestClient

from craftsman_hub.core.config import Settings
from craftsman_hub.core.database_client import Database
from craftsman_hub.core.mailer import Mailer
from craftsman_hub.main import create_app
from craftsman_hub.services.auth_service import AuthService
from craftsman_hub.services.user_service import UserService

SECRET = "test-secret"
PASSWORD = "password123"


class RecordingMailer(Mailer):
    """Keeps sent reset links; can be switched to fail delivery."""

    def __init__(self):
        self.sent: List[Tuple[str, str]] = []
        self.fail = False

    def send_password_reset(self, email: str, reset_url: str) -> None:
        if self.fail:
            raise RuntimeError("SMTP unavailable")
        self.sent.append((email, reset_url))


def user_payload(**overrides):
    data = {
        "name": "Test User",
        "email": "user@example.com",
        "phone": "01012345678",
        "password": PASSWORD,
        "passwordConfirm": PASSWORD,
    }
    data.update(overrides)
    return data


@pytest.fixture
def settings():
    return Settings(database_url="sqlite://", secret_key=SECRET, mode="testing", bcrypt_rounds=4)


@pytest.fixture
def database(settings):
    db = Database(settings.database_url, bcrypt_rounds=settings.bcrypt_rounds)
    db.initialize()
    yield db
    db.dispose()


@pytest.fixture
def mailer():
    return RecordingMailer()


@pytest.fixture
def users(database):
    return UserService(database)


@pytest.fixture
def auth_service(users, settings):
    return AuthService(users, settings)


@pytest.fixture
def app(settings, database, mailer):
    return create_app(settings, database, mailer)


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def make_user(users):
    """Create a user directly in the store and return its document."""
    counter = {"n": 0}

    def _make_user(role="client", **overrides):
        counter["n"] += 1
        overrides.setdefault("email", f"{role}{counter['n']}@example.com")
        return users.create_one(user_payload(role=role, **overrides))

    return _make_user


@pytest.fixture
def login_headers(client):
    """Log a stored user in over HTTP and return bearer headers."""

    def _login_headers(user, password=PASSWORD):
        res = client.post("/api/v1/auth/login", json={"email": user["email"], "password": password})
        assert res.status_code == 200, res.text
        return {"Authorization": f"Bearer {res.json()['payload']['token']}"}

    return _login_headers
