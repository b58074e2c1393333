from __future__ import annotations

import pytest

from api import create_app
from models.account_store import AccountStore
from models.db_storage import DBStorage
from models.token_store import RefreshTokenStore
from utils.security import CredentialHasher, TokenSigner
from utils.sessions import SessionManager

from _helpers import SECRET


@pytest.fixture
def storage(tmp_path):
    db = DBStorage(f"sqlite:///{tmp_path / 'test.db'}", timeout=2)
    db.reload()
    yield db
    db.close()


@pytest.fixture
def hasher():
    return CredentialHasher(time_cost=1, memory_cost=8, parallelism=1)


@pytest.fixture
def signer():
    return TokenSigner(SECRET)


@pytest.fixture
def accounts(storage):
    return AccountStore(storage)


@pytest.fixture
def refresh_tokens(storage):
    return RefreshTokenStore(storage)


@pytest.fixture
def sessions(accounts, refresh_tokens, signer, hasher):
    return SessionManager(accounts, refresh_tokens, signer, hasher)


@pytest.fixture
def account(sessions):
    return sessions.register("a@example.com", "password123")


@pytest.fixture
def app(storage):
    app = create_app("testing", storage=storage)
    yield app


@pytest.fixture
def client(app):
    return app.test_client()

