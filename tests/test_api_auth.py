"""
Authentication endpoint tests
"""

from datetime import timedelta

from fastapi.testclient import TestClient
from jose import jwt

from craftsman_hub.core.config import Settings
from craftsman_hub.main import create_app
from craftsman_hub.models.base import utcnow

from conftest import PASSWORD, SECRET, RecordingMailer, user_payload

AUTH = "/api/v1/auth"


def register(client, **overrides):
    return client.post(f"{AUTH}/register", json=user_payload(**overrides))


class TestRegister:
    def test_register_sets_token_and_cookie(self, client, users):
        res = register(client)

        assert res.status_code == 201
        body = res.json()
        assert body["ok"] is True
        token = body["payload"]["token"]
        assert res.cookies.get("jwt") == token
        assert "httponly" in res.headers["set-cookie"].lower()
        user = users.find_by_email("user@example.com")
        assert jwt.decode(token, SECRET, algorithms=["HS256"])["sub"] == user["id"]

    def test_registered_user_can_fetch_profile_with_cookie(self, client):
        register(client)

        res = client.get(f"{AUTH}/me")

        assert res.status_code == 200
        me = res.json()["payload"]["data"]
        assert me["email"] == "user@example.com"
        assert "password" not in me

    def test_duplicate_email_is_rejected(self, client):
        register(client)

        res = register(client, email="USER@example.com")

        assert res.status_code == 400
        assert res.json()["ok"] is False
        assert res.json()["message"].startswith("Duplicate field value")

    def test_password_mismatch_is_rejected(self, client, users):
        res = register(client, passwordConfirm="not-the-same")

        assert res.status_code == 400
        assert res.json()["message"].startswith("Invalid input data.")
        assert users.count() == 0

    def test_admin_role_cannot_be_self_assigned(self, client, users):
        res = register(client, role="admin")

        assert res.status_code == 400
        assert users.count() == 0

    def test_password_over_bcrypt_byte_limit(self, client, users):
        wide = "é" * 40

        res = register(client, password=wide, passwordConfirm=wide)

        assert res.status_code == 400
        assert "password cannot be longer than 72 bytes" in res.json()["message"]
        assert users.count() == 0

    def test_craftsman_can_register(self, client, users):
        assert register(client, role="craftsman").status_code == 201
        assert users.find_by_email("user@example.com")["role"] == "craftsman"


class TestLogin:
    def test_login_success(self, client, make_user):
        user = make_user()

        res = client.post(f"{AUTH}/login", json={"email": user["email"], "password": PASSWORD})

        assert res.status_code == 200
        assert jwt.decode(res.json()["payload"]["token"], SECRET, algorithms=["HS256"])["sub"] == user["id"]

    def test_wrong_password_and_unknown_email_look_the_same(self, client, make_user):
        user = make_user()

        wrong = client.post(f"{AUTH}/login", json={"email": user["email"], "password": "wrong-pass"})
        unknown = client.post(f"{AUTH}/login", json={"email": "ghost@example.com", "password": PASSWORD})

        assert wrong.status_code == unknown.status_code == 401
        assert wrong.json()["message"] == unknown.json()["message"] == "Incorrect email or password"

    def test_missing_fields(self, client):
        res = client.post(f"{AUTH}/login", json={"email": "user@example.com"})

        assert res.status_code == 400
        assert res.json()["message"] == "Please provide email and password"


class TestProtect:
    def test_no_token(self, client):
        res = client.get(f"{AUTH}/me")

        assert res.status_code == 401
        assert res.json()["message"] == "You are not logged in. Please log in to get access."

    def test_logged_out_sentinel_is_an_invalid_token(self, client):
        res = client.get(f"{AUTH}/me", headers={"Authorization": "Bearer none"})

        assert res.status_code == 401
        assert res.json()["message"] == "Invalid token. Please log in again!"

    def test_expired_token(self, client, make_user):
        user = make_user()
        token = jwt.encode({"sub": user["id"], "exp": utcnow() - timedelta(minutes=1)}, SECRET, algorithm="HS256")

        res = client.get(f"{AUTH}/me", headers={"Authorization": f"Bearer {token}"})

        assert res.status_code == 401
        assert res.json()["message"] == "Your token has expired! Please log in again."

    def test_token_signed_with_another_secret(self, client, make_user):
        user = make_user()
        token = jwt.encode({"sub": user["id"]}, "other-secret", algorithm="HS256")

        res = client.get(f"{AUTH}/me", headers={"Authorization": f"Bearer {token}"})

        assert res.status_code == 401

    def test_deleted_user(self, client, make_user, users, login_headers):
        user = make_user()
        headers = login_headers(user)
        users.delete_one_by_id(user["id"])

        res = client.get(f"{AUTH}/me", headers=headers)

        assert res.status_code == 401
        assert res.json()["message"] == "The user belonging to this token does no longer exist."

    def test_cookie_wins_over_bearer_header(self, client, make_user, login_headers):
        first = make_user()
        second = make_user()
        second_headers = login_headers(second)
        login_headers(first)  # cookie jar now holds first's token

        res = client.get(f"{AUTH}/me", headers=second_headers)

        assert res.status_code == 200
        assert res.json()["payload"]["data"]["id"] == first["id"]

    def test_bearer_header_used_without_cookie(self, client, make_user, login_headers):
        user = make_user()
        headers = login_headers(user)
        client.cookies.clear()

        res = client.get(f"{AUTH}/me", headers=headers)

        assert res.status_code == 200
        assert res.json()["payload"]["data"]["id"] == user["id"]

    def test_invalid_cookie_is_not_rescued_by_header(self, client, make_user, login_headers):
        headers = login_headers(make_user())
        client.cookies.clear()
        client.cookies.set("jwt", "not-a-token")

        res = client.get(f"{AUTH}/me", headers=headers)

        assert res.status_code == 401
        assert res.json()["message"] == "Invalid token. Please log in again!"


class TestLogout:
    def test_logout_clears_cookie(self, client):
        register(client)

        res = client.get(f"{AUTH}/logout")

        assert res.status_code == 200
        assert res.json()["payload"]["token"] == "none"
        assert "jwt=none" in res.headers["set-cookie"]
        assert client.get(f"{AUTH}/me").status_code == 401

    def test_logout_requires_login(self, client):
        assert client.get(f"{AUTH}/logout").status_code == 401


class TestPasswordReset:
    def test_forgot_password_sends_link_without_exposing_token(self, client, make_user, mailer):
        user = make_user()

        res = client.post(f"{AUTH}/forgot_password", json={"email": user["email"]})

        assert res.status_code == 200
        assert res.json()["message"] == "Reset token sent to email"
        assert res.json()["payload"] is None
        ((email, url),) = mailer.sent
        assert email == user["email"]
        assert "/api/v1/auth/reset_password/" in url

    def test_reset_with_mailed_link(self, client, make_user, mailer):
        user = make_user()
        client.post(f"{AUTH}/forgot_password", json={"email": user["email"]})
        reset_token = mailer.sent[0][1].rsplit("/", 1)[1]
        body = {"password": "brand-new-pass", "passwordConfirm": "brand-new-pass"}

        res = client.put(f"{AUTH}/reset_password/{reset_token}", json=body)

        assert res.status_code == 200
        assert jwt.decode(res.json()["payload"]["token"], SECRET, algorithms=["HS256"])["sub"] == user["id"]
        login = client.post(f"{AUTH}/login", json={"email": user["email"], "password": "brand-new-pass"})
        assert login.status_code == 200

        again = client.put(f"{AUTH}/reset_password/{reset_token}", json=body)
        assert again.status_code == 400
        assert again.json()["message"] == "Token is invalid or has expired"

    def test_reset_requires_both_passwords(self, client):
        res = client.put(f"{AUTH}/reset_password/abc", json={"password": "brand-new-pass"})

        assert res.status_code == 400

    def test_forgot_password_unknown_email(self, client, mailer):
        res = client.post(f"{AUTH}/forgot_password", json={"email": "ghost@example.com"})

        assert res.status_code == 404
        assert res.json()["message"] == "There is no user with this email"
        assert mailer.sent == []

    def test_mail_failure_rolls_back_token(self, client, make_user, mailer, users):
        user = make_user()
        mailer.fail = True

        res = client.post(f"{AUTH}/forgot_password", json={"email": user["email"]})

        assert res.status_code == 500
        assert res.json()["message"] == "There was an error sending the email. Try again later!"
        stored = users.find_by_email(user["email"], include_hidden=("password_reset_token", "password_reset_expires"))
        assert stored["password_reset_token"] is None
        assert stored["password_reset_expires"] is None

    def test_development_mode_returns_token(self, database):
        settings = Settings(database_url="sqlite://", secret_key=SECRET, mode="development", bcrypt_rounds=4)
        client = TestClient(create_app(settings, database, RecordingMailer()))
        register(client)

        res = client.post(f"{AUTH}/forgot_password", json={"email": "user@example.com"})

        assert res.status_code == 200
        assert len(res.json()["payload"]["reset_token"]) == 64


class TestProfile:
    def test_update_me(self, client, make_user, login_headers):
        user = make_user()
        headers = login_headers(user)

        res = client.patch(f"{AUTH}/update_me", json={"name": "New Name", "role": "admin"}, headers=headers)

        assert res.status_code == 200
        updated = res.json()["payload"]["user"]
        assert updated["name"] == "New Name"
        assert updated["role"] == "client"

    def test_update_me_rejects_passwords(self, client, make_user, login_headers):
        headers = login_headers(make_user())

        res = client.patch(f"{AUTH}/update_me", json={"password": "sneaky-pass"}, headers=headers)

        assert res.status_code == 400
        assert res.json()["message"] == "This route is not for password updates. Please use /update_password."

    def test_update_me_validates_phone(self, client, make_user, login_headers):
        headers = login_headers(make_user())

        res = client.patch(f"{AUTH}/update_me", json={"phone": "555"}, headers=headers)

        assert res.status_code == 400

    def test_update_password(self, client, make_user, login_headers):
        user = make_user()
        headers = login_headers(user)
        body = {"password": "changed-pass", "passwordConfirm": "changed-pass"}

        res = client.patch(f"{AUTH}/update_password", json=body, headers=headers)

        assert res.status_code == 200
        assert res.json()["payload"]["token"]
        old = client.post(f"{AUTH}/login", json={"email": user["email"], "password": PASSWORD})
        assert old.status_code == 401
        login_headers(user, "changed-pass")


def test_unknown_route(client):
    res = client.get("/api/v1/nowhere")

    assert res.status_code == 404
    assert res.json() == {
        "ok": False,
        "message": "Can't find /api/v1/nowhere on this server!",
        "payload": {"status": "fail", "message": "Can't find /api/v1/nowhere on this server!"},
    }


def test_update_password_over_bcrypt_byte_limit(client, make_user, login_headers):
    user = make_user()
    headers = login_headers(user)
    wide = "é" * 40

    res = client.patch(f"{AUTH}/update_password", json={"password": wide, "passwordConfirm": wide}, headers=headers)

    assert res.status_code == 400
    assert "72 bytes" in res.json()["message"]
    login_headers(user)


def test_update_me_rejects_null_name(client, make_user, login_headers):
    headers = login_headers(make_user())

    res = client.patch(f"{AUTH}/update_me", json={"name": None}, headers=headers)

    assert res.status_code == 400
    assert "name may not be null" in res.json()["message"]
