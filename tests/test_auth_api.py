from __future__ import annotations

from datetime import datetime, timedelta, timezone

from api import create_app
from _helpers import cookie_value, register_and_login

AUTH = "/api/v1/auth"


def test_register_returns_account_without_hash(client):
    r = client.post(f"{AUTH}/register", json={"email": " New@Example.com ", "password": "password123", "name": "New"})
    assert r.status_code == 201
    data = r.get_json()["data"]
    assert data["email"] == "new@example.com"
    assert data["name"] == "New"
    assert "password" not in data and "password_hash" not in data


def test_register_duplicate_is_conflict(client):
    body = {"email": "a@example.com", "password": "password123"}
    assert client.post(f"{AUTH}/register", json=body).status_code == 201
    r = client.post(f"{AUTH}/register", json={**body, "email": "A@EXAMPLE.COM"})
    assert r.status_code == 409
    assert r.get_json()["error"] == "CONFLICT"


def test_register_validation_errors(client):
    r = client.post(f"{AUTH}/register", json={"email": "not-an-email", "password": "short"})
    assert r.status_code == 422
    body = r.get_json()
    assert body["error"] == "VALIDATION_ERROR"
    assert "email" in body["details"] and "password" in body["details"]


def test_login_sets_refresh_cookie_and_short_lived_access_token(client):
    r = register_and_login(client)
    body = r.get_json()
    assert body["token_type"] == "bearer"
    assert 14 * 60 < body["expires_in"] <= 15 * 60
    expires_at = datetime.fromisoformat(body["expires_at"].replace("Z", "+00:00"))
    assert expires_at - datetime.now(timezone.utc) <= timedelta(minutes=15)
    assert "refresh_token" not in body

    set_cookie = next(h for h in r.headers.getlist("Set-Cookie") if h.startswith("refresh_token="))
    assert "HttpOnly" in set_cookie
    assert "Path=/api/v1/auth" in set_cookie
    assert "SameSite=Strict" in set_cookie


def test_end_to_end_cookie_rotation(app, client):
    login = register_and_login(client)
    old_secret = cookie_value(login)
    assert old_secret

    r = client.post(f"{AUTH}/refresh")
    assert r.status_code == 200
    body = r.get_json()
    assert body["access_token"]
    assert "refresh_token" not in body
    new_secret = cookie_value(r)
    assert new_secret and new_secret != old_secret

    me = client.get("/api/v1/me", headers={"Authorization": f"Bearer {body['access_token']}"})
    assert me.status_code == 200
    assert me.get_json()["data"]["email"] == "a@example.com"

    # replay the old secret from a client without cookies
    replay = app.test_client().post(f"{AUTH}/refresh", json={"refresh_token": old_secret})
    assert replay.status_code == 401
    assert replay.get_json()["error"] == "UNAUTHORIZED"


def test_body_channel_rotation(app, client):
    login = register_and_login(client, refresh_in_body=True)
    secret = login.get_json()["refresh_token"]

    body_client = app.test_client()
    r = body_client.post(f"{AUTH}/refresh", json={"refresh_token": secret})
    assert r.status_code == 200
    rotated = r.get_json()["refresh_token"]
    assert rotated != secret
    assert cookie_value(r) is None

    assert body_client.post(f"{AUTH}/refresh", json={"refresh_token": secret}).status_code == 401
    assert body_client.post(f"{AUTH}/refresh", json={"refresh_token": rotated}).status_code == 200


def test_refresh_without_token(app):
    r = app.test_client().post(f"{AUTH}/refresh")
    assert r.status_code == 401
    assert r.get_json()["message"] == "invalid refresh token"


def test_wrong_password_and_unknown_account_look_the_same(client):
    register_and_login(client)
    wrong = client.post(f"{AUTH}/login", json={"email": "a@example.com", "password": "wrong-password"})
    unknown = client.post(f"{AUTH}/login", json={"email": "nobody@example.com", "password": "password123"})
    assert wrong.status_code == unknown.status_code == 401
    assert wrong.get_data() == unknown.get_data()
    assert wrong.get_json()["error"] == "INVALID_CREDENTIALS"


def test_login_requires_fields(client):
    r = client.post(f"{AUTH}/login", json={"email": "a@example.com"})
    assert r.status_code == 422


def test_logout_is_idempotent_over_http(app, client):
    login = register_and_login(client, refresh_in_body=True)
    secret = login.get_json()["refresh_token"]

    first = client.post(f"{AUTH}/logout")
    second = client.post(f"{AUTH}/logout", json={"refresh_token": secret})
    garbage = app.test_client().post(f"{AUTH}/logout", json={"refresh_token": "garbage"})
    for r in (first, second, garbage):
        assert r.status_code == 200
        assert r.get_json() == {"message": "logged out"}

    assert app.test_client().post(f"{AUTH}/refresh", json={"refresh_token": secret}).status_code == 401


def test_revoke_all_requires_access_token(client):
    assert client.post(f"{AUTH}/revoke-all").status_code == 401


def test_revoke_all_kills_every_session(app, client):
    login = register_and_login(client, refresh_in_body=True)
    other = app.test_client().post(
        f"{AUTH}/login", json={"email": "a@example.com", "password": "password123", "refresh_in_body": True}
    )
    access = login.get_json()["access_token"]

    r = client.post(f"{AUTH}/revoke-all", headers={"Authorization": f"Bearer {access}"})
    assert r.status_code == 200
    assert r.get_json()["revoked"] == 2

    for secret in (login.get_json()["refresh_token"], other.get_json()["refresh_token"]):
        assert app.test_client().post(f"{AUTH}/refresh", json={"refresh_token": secret}).status_code == 401


def test_health(client):
    r = client.get("/api/v1/health")
    assert r.status_code == 200
    assert r.get_json() == {"status": "ok", "database": "ok"}


def test_purge_tokens_command(app):
    result = app.test_cli_runner().invoke(args=["purge-tokens"])
    assert result.exit_code == 0
    assert "purged 0 expired refresh token(s)" in result.output


def test_lone_surrogate_refresh_token(app):
    c = app.test_client()
    r = c.post(f"{AUTH}/logout", json={"refresh_token": "\ud800"})
    assert r.status_code == 200
    assert r.get_json() == {"message": "logged out"}

    r = c.post(f"{AUTH}/refresh", json={"refresh_token": "\ud800"})
    assert r.status_code == 401
    assert r.get_json()["message"] == "invalid refresh token"


def test_lone_surrogate_login_is_invalid_credentials(client):
    register_and_login(client)
    r = client.post(f"{AUTH}/login", json={"email": "a@example.com", "password": "\ud800xxxxxxxx"})
    assert r.status_code == 401
    assert r.get_json()["error"] == "INVALID_CREDENTIALS"


def test_lone_surrogate_registration_is_a_validation_error(client):
    r = client.post(f"{AUTH}/register", json={"email": "b@example.com", "password": "\ud800xxxxxxxx"})
    assert r.status_code == 422
    assert "password" in r.get_json()["details"]


def test_malformed_refresh_bodies(app):
    c = app.test_client()
    for body in ({"refresh_token": 123}, {"refresh_token": ["a"]}, ["refresh_token"]):
        assert c.post(f"{AUTH}/refresh", json=body).status_code == 401
        assert c.post(f"{AUTH}/logout", json=body).status_code == 200


def test_rejected_cookie_is_cleared(app, client):
    login = register_and_login(client)
    secret = cookie_value(login)
    # the session ends elsewhere, the browser still holds the cookie
    assert app.test_client().post(f"{AUTH}/logout", json={"refresh_token": secret}).status_code == 200

    r = client.post(f"{AUTH}/refresh")
    assert r.status_code == 401
    assert r.get_json()["message"] == "invalid refresh token"
    set_cookie = next(h for h in r.headers.getlist("Set-Cookie") if h.startswith("refresh_token="))
    assert cookie_value(r) == ""
    assert "Max-Age=0" in set_cookie
    assert "Path=/api/v1/auth" in set_cookie

    # the jar dropped it, so the next attempt presents nothing
    again = client.post(f"{AUTH}/refresh")
    assert again.status_code == 401
    assert cookie_value(again) is None


def test_unhandled_errors_hide_the_cause_in_debug(storage):
    app = create_app("testing", overrides={"DEBUG": True}, storage=storage)

    def explode():
        raise RuntimeError("db password is hunter2")

    app.add_url_rule("/explode", "explode", explode)
    r = app.test_client().get("/explode")
    assert r.status_code == 500
    assert r.get_json() == {
        "error": "INTERNAL_ERROR",
        "message": "An unexpected error occurred",
        "status": 500,
    }
    assert "hunter2" not in r.get_data(as_text=True)
