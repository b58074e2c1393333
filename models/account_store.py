"""
Account store: the only way the auth core reads or creates accounts.
"""
from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from models.account import Account, AccountRecord
from models.db_storage import DBStorage
from models.results import Failed, Found, LookupResult, NotFound
from utils.exceptions import ConflictError, InternalError

logger = logging.getLogger(__name__)


def normalize_email(email: str) -> str:
    return email.strip().lower() if isinstance(email, str) else email


class AccountStore:
    def __init__(self, storage: DBStorage):
        self.storage = storage

    def find_by_email(self, email: str, timeout: float | None = None) -> LookupResult:
        email = normalize_email(email)
        try:
            with self.storage.session_scope(timeout) as session:
                account = session.query(Account).filter(Account.email == email).first()
                if account is None:
                    return NotFound()
                return Found(account.to_record())
        except SQLAlchemyError as exc:
            logger.error("account lookup by email failed: %s", exc)
            return Failed(str(exc))

    def find_by_id(self, account_id: str, timeout: float | None = None) -> LookupResult:
        try:
            with self.storage.session_scope(timeout) as session:
                account = session.get(Account, account_id)
                if account is None:
                    return NotFound()
                return Found(account.to_record())
        except SQLAlchemyError as exc:
            logger.error("account lookup by id=%s failed: %s", account_id, exc)
            return Failed(str(exc))

    def insert(
        self,
        email: str,
        password_hash: str,
        name: str | None = None,
        timeout: float | None = None,
    ) -> AccountRecord:
        """
        Insert a new account. The unique index on email decides duplicates,
        so two concurrent registrations cannot both succeed.
        """
        account = Account(email=normalize_email(email), password_hash=password_hash, name=name)
        try:
            with self.storage.session_scope(timeout) as session:
                session.add(account)
                session.flush()
                return account.to_record()
        except IntegrityError as exc:
            logger.info("duplicate registration for an existing email: %s", exc.orig)
            raise ConflictError("email already in use") from exc
        except SQLAlchemyError as exc:
            logger.error("account insert failed: %s", exc)
            raise InternalError(str(exc)) from exc
