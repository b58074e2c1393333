"""
Authentication blueprint:
- POST /auth/register
- POST /auth/login
- POST /auth/refresh
- POST /auth/logout
- POST /auth/revoke-all

Access tokens are short-lived JWTs sent back as `Authorization: Bearer`.
Refresh tokens are opaque secrets, delivered as an HttpOnly cookie scoped to
/auth (or in the JSON body for clients without cookies). A rotated refresh
token goes back on the channel the old one arrived on.
"""
from __future__ import annotations

from datetime import datetime

from flask import Blueprint, current_app, g, jsonify, request
from marshmallow import ValidationError as SchemaValidationError

from models.schemas.account import AccountOutSchema, LoginSchema, RefreshTokenSchema, RegisterSchema
from utils.decorators import jwt_required
from utils.exceptions import Unauthorized
from utils.sessions import INVALID_REFRESH, SessionManager, SessionTokens
from .errors import error_response

bp = Blueprint("auth", __name__)

register_schema = RegisterSchema()
login_schema = LoginSchema()
refresh_token_schema = RefreshTokenSchema()
account_out_schema = AccountOutSchema()


def _sessions() -> SessionManager:
    return current_app.extensions["session_manager"]


def _iso(value: datetime) -> str:
    return value.isoformat().replace("+00:00", "Z")


def _token_body(tokens: SessionTokens) -> dict:
    return {
        "access_token": tokens.access_token,
        "token_type": "bearer",
        "expires_at": _iso(tokens.access_expires_at),
        "expires_in": tokens.expires_in,
    }


def _set_refresh_cookie(response, value: str, expires: datetime):
    cfg = current_app.config
    response.set_cookie(
        cfg["REFRESH_COOKIE_NAME"],
        value,
        expires=expires,
        path=cfg["REFRESH_COOKIE_PATH"],
        domain=cfg.get("COOKIE_DOMAIN"),
        secure=cfg["REFRESH_COOKIE_SECURE"],
        httponly=True,
        samesite=cfg["REFRESH_COOKIE_SAMESITE"],
    )


def _clear_refresh_cookie(response):
    cfg = current_app.config
    response.delete_cookie(
        cfg["REFRESH_COOKIE_NAME"],
        path=cfg["REFRESH_COOKIE_PATH"],
        domain=cfg.get("COOKIE_DOMAIN"),
        secure=cfg["REFRESH_COOKIE_SECURE"],
        httponly=True,
        samesite=cfg["REFRESH_COOKIE_SAMESITE"],
    )


def _presented_refresh_token() -> tuple[str | None, bool]:
    """
    Refresh secret from the cookie, else the JSON body. Second item: came from cookie.

    Raises marshmallow's ValidationError for a malformed body.
    """
    token = request.cookies.get(current_app.config["REFRESH_COOKIE_NAME"])
    if token:
        return token, True
    payload = request.get_json(silent=True) or {}
    data = refresh_token_schema.load(payload)
    return data["refresh_token"], False


@bp.post("/register")
def register():
    """
    Register a new account.
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      - in: body
        name: body
        schema:
          type: object
          required: [email, password]
          properties:
            email: { type: string }
            password: { type: string, minLength: 8 }
            name: { type: string, maxLength: 100 }
    responses:
      201:
        description: Created
      409:
        description: Email already in use
      422:
        description: Validation error
    """
    payload = request.get_json(silent=True) or {}
    data = register_schema.load(payload)
    account = _sessions().register(data["email"], data["password"], name=data.get("name"))
    return jsonify({"data": account_out_schema.dump(account)}), 201


@bp.post("/login")
def login():
    """
    Login: returns an access token and sets the refresh cookie
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           properties:
             email: { type: string }
             password: { type: string }
             refresh_in_body: { type: boolean, description: "also return the refresh token in the body" }
    responses:
      200:
        description: OK (returns access token)
      401:
        description: Invalid credentials
    """
    payload = request.get_json(silent=True) or {}
    data = login_schema.load(payload)
    tokens = _sessions().login(data["email"], data["password"])

    body = _token_body(tokens)
    if data.get("refresh_in_body"):
        body["refresh_token"] = tokens.refresh_token
    response = jsonify(body)
    _set_refresh_cookie(response, tokens.refresh_token, tokens.refresh_expires_at)
    return response, 200


@bp.post("/refresh")
def refresh():
    """
    Rotate the refresh token and obtain a new access token
    Reads the refresh cookie first, then { "refresh_token": "<token>" }.
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         required: false
         schema:
           type: object
           properties:
             refresh_token: { type: string }
    responses:
      200:
        description: OK (new access token, rotated refresh token)
      401:
        description: Invalid refresh token (a cookie sent with it is cleared)
    """
    try:
        presented, from_cookie = _presented_refresh_token()
    except SchemaValidationError:
        raise Unauthorized(INVALID_REFRESH) from None

    try:
        tokens = _sessions().refresh(presented)
    except Unauthorized as err:
        if not from_cookie:
            raise
        # the cookie is dead; stop the browser from replaying it
        response, status = error_response(err.code, err.public_message, err.status)
        _clear_refresh_cookie(response)
        return response, status

    body = _token_body(tokens)
    if not from_cookie:
        body["refresh_token"] = tokens.refresh_token
    response = jsonify(body)
    if from_cookie:
        _set_refresh_cookie(response, tokens.refresh_token, tokens.refresh_expires_at)
    return response, 200


@bp.post("/logout")
def logout():
    """
    Logout: deletes the refresh token; always succeeds
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         required: false
         schema:
           type: object
           properties:
             refresh_token: { type: string }
    responses:
      200:
        description: Logged out
    """
    try:
        presented, _ = _presented_refresh_token()
    except SchemaValidationError:
        presented = None
    _sessions().logout(presented)

    response = jsonify({"message": "logged out"})
    _clear_refresh_cookie(response)
    return response, 200


@bp.post("/revoke-all")
@jwt_required()
def revoke_all():
    """
    Revoke every refresh token of the current account (logout everywhere)
    ---
    tags:
      - Auth
    security:
      - Bearer: []
    responses:
      200:
        description: Revoked
      401:
        description: Unauthorized
    """
    revoked = _sessions().revoke_all_for_account(g.current_account_id)

    response = jsonify({"message": "all sessions revoked", "revoked": revoked})
    _clear_refresh_cookie(response)
    return response, 200
