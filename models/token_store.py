"""
Opaque refresh-token store.

Refresh tokens are random URL-safe strings with 256 bits of entropy. Only
their SHA-256 hex digest is persisted; the plaintext leaves this module once,
as the return value of mint(). A slow password hash buys nothing here since
the secret already has full entropy, and a deterministic digest lets us look
the record up by equality on an indexed column.
"""
from __future__ import annotations

from datetime import datetime, timedelta
import hashlib
import logging
import secrets
from typing import Callable, Tuple

from sqlalchemy.exc import SQLAlchemyError

from models.base_model import utcnow
from models.db_storage import DBStorage
from models.refresh_token import RefreshToken
from models.results import Failed, Found, LookupResult, NotFound
from utils.exceptions import InternalError

logger = logging.getLogger(__name__)

REFRESH_TOKEN_TTL = timedelta(days=7)
TOKEN_BYTES = 32


def generate_token(n_bytes: int = TOKEN_BYTES) -> str:
    return secrets.token_urlsafe(n_bytes)


def hash_token(token: str) -> str:
    # surrogatepass: JSON strings may hold lone surrogates
    return hashlib.sha256(token.encode("utf-8", "surrogatepass")).hexdigest()


class RefreshTokenStore:
    def __init__(
        self,
        storage: DBStorage,
        ttl: timedelta = REFRESH_TOKEN_TTL,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.storage = storage
        self.ttl = ttl
        self.clock = clock

    def now(self) -> datetime:
        return self.clock()

    def mint(self, account_id: str, timeout: float | None = None) -> Tuple[str, datetime]:
        """Create and persist a new refresh token; return (plaintext, expires_at)."""
        secret = generate_token()
        now = self.clock()
        expires_at = now + self.ttl
        row = RefreshToken(
            account_id=account_id,
            token_hash=hash_token(secret),
            created_at=now,
            expires_at=expires_at,
            revoked=False,
        )
        try:
            with self.storage.session_scope(timeout) as session:
                session.add(row)
        except SQLAlchemyError as exc:
            logger.error("failed to save refresh token for account=%s: %s", account_id, exc)
            raise InternalError("could not save refresh token") from exc
        return secret, expires_at

    def lookup_by_plaintext(self, secret: str, timeout: float | None = None) -> LookupResult:
        token_hash = hash_token(secret)
        try:
            with self.storage.session_scope(timeout) as session:
                row = session.query(RefreshToken).filter(RefreshToken.token_hash == token_hash).first()
                if row is None:
                    return NotFound()
                return Found(row.to_record())
        except SQLAlchemyError as exc:
            logger.error("failed to find refresh token: %s", exc)
            return Failed(str(exc))

    def delete_by_plaintext(self, secret: str, timeout: float | None = None) -> bool:
        """Delete the record matching the secret. True when a record was removed."""
        return self.delete_by_hash(hash_token(secret), timeout)

    def delete_by_hash(self, token_hash: str, timeout: float | None = None) -> bool:
        try:
            with self.storage.session_scope(timeout) as session:
                deleted = (
                    session.query(RefreshToken)
                    .filter(RefreshToken.token_hash == token_hash)
                    .delete(synchronize_session=False)
                )
        except SQLAlchemyError as exc:
            logger.error("failed to delete refresh token by hash: %s", exc)
            raise InternalError("could not delete refresh token") from exc
        return deleted > 0

    def revoke_all(self, account_id: str, timeout: float | None = None) -> int:
        """Delete every refresh token of the account."""
        try:
            with self.storage.session_scope(timeout) as session:
                deleted = (
                    session.query(RefreshToken)
                    .filter(RefreshToken.account_id == account_id)
                    .delete(synchronize_session=False)
                )
        except SQLAlchemyError as exc:
            logger.error("failed to revoke refresh tokens for account=%s: %s", account_id, exc)
            raise InternalError("could not revoke refresh tokens") from exc
        logger.info("revoked %d refresh token(s) for account=%s", deleted, account_id)
        return deleted

    def purge_expired(self, timeout: float | None = None) -> int:
        """Delete every expired record. Safe to run repeatedly."""
        now = self.clock()
        try:
            with self.storage.session_scope(timeout) as session:
                deleted = (
                    session.query(RefreshToken)
                    .filter(RefreshToken.expires_at < now)
                    .delete(synchronize_session=False)
                )
        except SQLAlchemyError as exc:
            logger.error("failed to purge expired refresh tokens: %s", exc)
            raise InternalError("could not purge expired refresh tokens") from exc
        if deleted:
            logger.info("purged %d expired refresh token(s)", deleted)
        return deleted
