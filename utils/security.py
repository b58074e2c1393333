"""
security helpers:
- Argon2 password hashing via argon2-cffi (CredentialHasher)
- Access token creation/verification via PyJWT (TokenSigner)
"""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
import logging
import uuid
from typing import Any, Callable, Dict, Tuple

import jwt
from argon2 import PasswordHasher
from argon2.exceptions import HashingError, InvalidHashError, VerificationError as Argon2VerificationError, VerifyMismatchError

from utils.exceptions import ConfigError, InternalError, ValidationError, VerificationError

logger = logging.getLogger(__name__)

ISSUER = "task-manager-api"
ACCESS_TOKEN_TTL = timedelta(minutes=15)
HMAC_ALGORITHMS = ("HS256", "HS384", "HS512")

# Work factor: roughly 100ms+ per verification on commodity hardware
HASH_TIME_COST = 4
HASH_MEMORY_COST = 65536
HASH_PARALLELISM = 2


def _now() -> datetime:
    return datetime.now(timezone.utc)


def is_utf8(value: str) -> bool:
    """False for strings carrying lone surrogates, which JSON allows but UTF-8 does not."""
    try:
        value.encode("utf-8")
    except UnicodeEncodeError:
        return False
    return True


class CredentialHasher:
    """One-way password hashing. Plaintext is never logged or returned."""

    def __init__(
        self,
        time_cost: int = HASH_TIME_COST,
        memory_cost: int = HASH_MEMORY_COST,
        parallelism: int = HASH_PARALLELISM,
    ):
        self._ph = PasswordHasher(time_cost=time_cost, memory_cost=memory_cost, parallelism=parallelism)
        # burn() verifies against this
        self._dummy_hash = self._ph.hash(uuid.uuid4().hex)

    @classmethod
    def from_config(cls, config) -> "CredentialHasher":
        return cls(
            time_cost=int(config.get("PASSWORD_HASH_TIME_COST", HASH_TIME_COST)),
            memory_cost=int(config.get("PASSWORD_HASH_MEMORY_COST", HASH_MEMORY_COST)),
            parallelism=int(config.get("PASSWORD_HASH_PARALLELISM", HASH_PARALLELISM)),
        )

    def hash(self, plaintext: str) -> str:
        """Hash a plaintext password using Argon2"""
        try:
            return self._ph.hash(plaintext)
        except UnicodeEncodeError as exc:
            raise ValidationError("password must be valid UTF-8 text") from exc
        except HashingError as exc:
            logger.error("password hashing failed: %s", exc)
            raise InternalError("could not hash password") from exc

    def verify(self, hashed: str, plaintext: str) -> bool:
        """Verify a plaintext password against a stored hash. Mismatch is False."""
        try:
            return self._ph.verify(hashed, plaintext)
        except (VerifyMismatchError, UnicodeEncodeError):
            return False
        except (Argon2VerificationError, InvalidHashError) as exc:
            logger.warning("stored password hash could not be verified: %s", exc)
            return False

    def burn(self, plaintext: str) -> None:
        """
        Spend one verification on a throwaway hash, so that an unknown
        account takes as long to reject as a wrong password.
        """
        self.verify(self._dummy_hash, plaintext)


class TokenSigner:
    """Issues and verifies short-lived HMAC-signed access tokens."""

    def __init__(
        self,
        secret: str | None,
        algorithm: str = "HS256",
        issuer: str = ISSUER,
        ttl: timedelta = ACCESS_TOKEN_TTL,
        clock: Callable[[], datetime] = _now,
    ):
        if algorithm not in HMAC_ALGORITHMS:
            raise ConfigError(f"JWT_ALGORITHM must be one of {HMAC_ALGORITHMS}, got {algorithm!r}")
        self._secret = secret or None
        self.algorithm = algorithm
        self.issuer = issuer
        self.ttl = ttl
        self.clock = clock

    @classmethod
    def from_config(cls, config) -> "TokenSigner":
        return cls(
            secret=config.get("JWT_SECRET"),
            algorithm=config.get("JWT_ALGORITHM", "HS256"),
            issuer=config.get("JWT_ISSUER", ISSUER),
            ttl=config.get("ACCESS_TOKEN_EXPIRES", ACCESS_TOKEN_TTL),
        )

    def _key(self) -> str:
        if not self._secret:
            logger.error("JWT_SECRET is not configured")
            raise ConfigError("JWT_SECRET not set")
        return self._secret

    def issue_access_token(self, account_id: str, email: str) -> Tuple[str, datetime]:
        key = self._key()
        now = self.clock()
        exp = now + self.ttl
        payload = {
            "sub": str(account_id),
            "email": email,
            "iat": int(now.timestamp()),
            "exp": int(exp.timestamp()),
            "iss": self.issuer,
        }
        token = jwt.encode(payload, key, algorithm=self.algorithm)
        return token, exp

    def verify_access_token(self, token: str) -> Dict[str, Any]:
        """
        Decode and validate an access token. Raises VerificationError on bad
        signature, unexpected algorithm, expiry, wrong issuer or bad subject.
        """
        key = self._key()
        if not token or not isinstance(token, str):
            raise VerificationError("empty token")
        try:
            claims = jwt.decode(
                token,
                key,
                algorithms=[self.algorithm],
                issuer=self.issuer,
                options={"require": ["exp", "iat", "iss", "sub"]},
            )
        except jwt.InvalidTokenError as exc:
            logger.debug("access token rejected: %s", exc)
            raise VerificationError(str(exc)) from exc

        sub = claims.get("sub")
        try:
            uuid.UUID(str(sub))
        except ValueError as exc:
            logger.debug("access token rejected: malformed subject")
            raise VerificationError("malformed subject") from exc
        return claims
