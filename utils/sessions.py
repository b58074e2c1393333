"""
Session lifecycle: register, login, refresh rotation, logout, revocation.

This is the only place that writes refresh-token state. It takes plain data
in and returns plain data out; the Flask blueprint in api.auth handles
transport (cookies, JSON).

A refresh-token chain goes issued -> (refreshed)* and ends rotated, revoked,
expired or consumed at logout. Every refresh secret is accepted at most once.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
import logging

from models.account import AccountRecord
from models.account_store import AccountStore, normalize_email
from models.base_model import as_utc
from models.results import Failed, Found, NotFound
from models.token_store import RefreshTokenStore, hash_token
from utils.exceptions import (
    AppError,
    InternalError,
    InvalidCredentials,
    Unauthorized,
    ValidationError,
)
from utils.security import CredentialHasher, TokenSigner, is_utf8

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8
MAX_NAME_LENGTH = 100

INVALID_REFRESH = "invalid refresh token"


@dataclass(frozen=True)
class SessionTokens:
    account_id: str
    email: str
    access_token: str
    access_expires_at: datetime
    refresh_token: str
    refresh_expires_at: datetime

    @property
    def expires_in(self) -> int:
        return max(0, int((self.access_expires_at - datetime.now(self.access_expires_at.tzinfo)).total_seconds()))


class SessionManager:
    def __init__(
        self,
        accounts: AccountStore,
        refresh_tokens: RefreshTokenStore,
        signer: TokenSigner,
        hasher: CredentialHasher,
        timeout: float | None = None,
    ):
        self.accounts = accounts
        self.refresh_tokens = refresh_tokens
        self.signer = signer
        self.hasher = hasher
        self.timeout = timeout

    def register(self, email: str, password: str, name: str | None = None) -> AccountRecord:
        email = normalize_email(email or "")
        name = (name or "").strip() or None
        if not email or not password:
            raise ValidationError("email and password required")
        if len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(f"password must be at least {MIN_PASSWORD_LENGTH} characters")
        if name and len(name) > MAX_NAME_LENGTH:
            raise ValidationError("name too long")
        if not all(is_utf8(value) for value in (email, password, name or "")):
            raise ValidationError("fields must be valid UTF-8 text")

        pw_hash = self.hasher.hash(password)
        account = self.accounts.insert(email, pw_hash, name=name, timeout=self.timeout)
        logger.info("registered account id=%s", account.id)
        return account

    def login(self, email: str, password: str) -> SessionTokens:
        email = normalize_email(email or "")
        if not email or not password:
            raise ValidationError("email and password required")

        if not is_utf8(email):
            # no stored email can match; fail like an unknown account
            self.hasher.burn(password)
            raise InvalidCredentials()

        result = self.accounts.find_by_email(email, timeout=self.timeout)
        if isinstance(result, Failed):
            raise InternalError(f"account lookup failed: {result.detail}")
        if isinstance(result, NotFound):
            self.hasher.burn(password)
            logger.info("login rejected: no account for the given email")
            raise InvalidCredentials()

        account: AccountRecord = result.record
        if not account.password_hash:
            logger.warning("login rejected: account id=%s has an empty password hash", account.id)
            raise InvalidCredentials()
        if not self.hasher.verify(account.password_hash, password):
            logger.info("login rejected: password mismatch for account id=%s", account.id)
            raise InvalidCredentials()

        access_token, access_exp = self.signer.issue_access_token(account.id, account.email)
        refresh_token, refresh_exp = self.refresh_tokens.mint(account.id, timeout=self.timeout)
        logger.info("login succeeded for account id=%s", account.id)
        return SessionTokens(
            account_id=account.id,
            email=account.email,
            access_token=access_token,
            access_expires_at=access_exp,
            refresh_token=refresh_token,
            refresh_expires_at=as_utc(refresh_exp),
        )

    def refresh(self, presented: str | None) -> SessionTokens:
        """
        Exchange a refresh secret for a new access/refresh pair.

        The new refresh token is persisted before the old one is deleted: a
        failure in between leaves an extra valid token rather than none.
        """
        if not presented:
            raise Unauthorized(INVALID_REFRESH)

        old_hash = hash_token(presented)
        result = self.refresh_tokens.lookup_by_plaintext(presented, timeout=self.timeout)
        if isinstance(result, Failed):
            raise InternalError(f"refresh token lookup failed: {result.detail}")
        if isinstance(result, NotFound):
            logger.info("refresh rejected: unknown token")
            raise Unauthorized(INVALID_REFRESH)

        record = result.record
        if record.revoked or record.is_expired(self.refresh_tokens.now()):
            logger.info("refresh rejected: token id=%s expired or revoked", record.id)
            self._discard(old_hash)
            raise Unauthorized(INVALID_REFRESH)

        account_result = self.accounts.find_by_id(record.account_id, timeout=self.timeout)
        if isinstance(account_result, Failed):
            raise InternalError(f"account lookup failed: {account_result.detail}")
        if not isinstance(account_result, Found):
            logger.warning("refresh rejected: account id=%s no longer exists", record.account_id)
            self._discard(old_hash)
            raise Unauthorized(INVALID_REFRESH)
        account: AccountRecord = account_result.record

        access_token, access_exp = self.signer.issue_access_token(account.id, account.email)
        new_refresh, new_exp = self.refresh_tokens.mint(account.id, timeout=self.timeout)

        try:
            consumed = self.refresh_tokens.delete_by_hash(old_hash, timeout=self.timeout)
        except InternalError:
            # the new token is already saved; the old one lives until its own expiry
            logger.exception("failed to delete old refresh token id=%s after rotation", record.id)
        else:
            if not consumed:
                # a concurrent refresh got there first
                logger.warning("refresh rejected: token id=%s consumed concurrently", record.id)
                self._discard(hash_token(new_refresh))
                raise Unauthorized(INVALID_REFRESH)

        logger.info("rotated refresh token for account id=%s", account.id)
        return SessionTokens(
            account_id=account.id,
            email=account.email,
            access_token=access_token,
            access_expires_at=access_exp,
            refresh_token=new_refresh,
            refresh_expires_at=as_utc(new_exp),
        )

    def logout(self, presented: str | None) -> None:
        """Best-effort delete. Succeeds for unknown, reused or missing secrets."""
        if not presented:
            return
        try:
            self.refresh_tokens.delete_by_plaintext(presented, timeout=self.timeout)
        except (AppError, UnicodeError):
            logger.exception("failed to delete refresh token during logout")

    def revoke_all_for_account(self, account_id: str) -> int:
        return self.refresh_tokens.revoke_all(account_id, timeout=self.timeout)

    def purge_expired(self) -> int:
        return self.refresh_tokens.purge_expired(timeout=self.timeout)

    def _discard(self, token_hash: str) -> None:
        try:
            self.refresh_tokens.delete_by_hash(token_hash, timeout=self.timeout)
        except AppError:
            logger.exception("failed to delete refresh token during cleanup")

