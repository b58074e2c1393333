from __future__ import annotations

from dataclasses import dataclass, field
from functools import wraps
from typing import Any, Dict

from flask import current_app, g, request

from utils.exceptions import Unauthorized
from utils.security import TokenSigner


@dataclass(frozen=True)
class Identity:
    account_id: str
    email: str | None
    claims: Dict[str, Any] = field(default_factory=dict)


class RequestAuthenticator:
    """
    Verifies the bearer access token of a request. Stateless: it never
    touches the store, so a revoked refresh token does not end the access
    token's remaining lifetime.
    """

    def __init__(self, signer: TokenSigner):
        self.signer = signer

    def authenticate(self, authorization: str | None) -> Identity:
        if not authorization:
            raise Unauthorized("missing authorization header")
        parts = authorization.split(" ", 1)
        if len(parts) != 2 or parts[0].lower() != "bearer" or not parts[1].strip():
            raise Unauthorized("invalid authorization header")

        claims = self.signer.verify_access_token(parts[1].strip())
        return Identity(account_id=claims["sub"], email=claims.get("email"), claims=claims)


def jwt_required():
    """Reject the request unless it carries a valid access token."""
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            authenticator: RequestAuthenticator = current_app.extensions["authenticator"]
            identity = authenticator.authenticate(request.headers.get("Authorization"))
            g.identity = identity
            g.current_account_id = identity.account_id
            return fn(*args, **kwargs)

        return wrapper

    return decorator
