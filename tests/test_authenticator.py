from __future__ import annotations

import uuid

import jwt
import pytest

from api import create_app
from utils.decorators import RequestAuthenticator
from utils.exceptions import Unauthorized, VerificationError
from _helpers import register_and_login


def test_authenticate_returns_identity(signer):
    account_id = str(uuid.uuid4())
    token, _ = signer.issue_access_token(account_id, "a@example.com")
    identity = RequestAuthenticator(signer).authenticate(f"Bearer {token}")
    assert identity.account_id == account_id
    assert identity.email == "a@example.com"


def test_scheme_is_case_insensitive(signer):
    token, _ = signer.issue_access_token(str(uuid.uuid4()), "a@example.com")
    assert RequestAuthenticator(signer).authenticate(f"bearer {token}").email == "a@example.com"


@pytest.mark.parametrize("header", [None, "", "Bearer", "Bearer ", "Basic dXNlcjpwYXNz", "Token abc"])
def test_malformed_headers_are_rejected(signer, header):
    with pytest.raises(Unauthorized):
        RequestAuthenticator(signer).authenticate(header)


def test_forged_token_is_rejected(signer):
    forged = jwt.encode({"sub": str(uuid.uuid4()), "iss": "task-manager-api"}, "x" * 64, algorithm="HS256")
    with pytest.raises(VerificationError):
        RequestAuthenticator(signer).authenticate(f"Bearer {forged}")


def test_protected_route_rejects_before_handler_runs(client):
    r = client.get("/api/v1/me")
    assert r.status_code == 401
    r = client.get("/api/v1/me", headers={"Authorization": "Bearer not-a-token"})
    assert r.status_code == 401
    assert r.get_json()["message"] == "invalid token"


def test_protected_route_sees_identity(client):
    access = register_and_login(client).get_json()["access_token"]
    r = client.get("/api/v1/me", headers={"Authorization": f"Bearer {access}"})
    assert r.status_code == 200
    assert r.get_json()["data"]["email"] == "a@example.com"


def test_access_token_outlives_logout(client):
    """Access tokens are stateless: logging out does not cut them short."""
    access = register_and_login(client).get_json()["access_token"]
    assert client.post("/api/v1/auth/logout").status_code == 200
    r = client.get("/api/v1/me", headers={"Authorization": f"Bearer {access}"})
    assert r.status_code == 200


def test_missing_secret_is_a_server_error(storage):
    app = create_app("testing", overrides={"JWT_SECRET": None}, storage=storage)
    client = app.test_client()
    r = client.get("/api/v1/me", headers={"Authorization": "Bearer whatever"})
    assert r.status_code == 500
    assert r.get_json()["message"] == "An unexpected error occurred"
    assert "JWT_SECRET" not in r.get_data(as_text=True)
