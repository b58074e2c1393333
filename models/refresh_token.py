"""
RefreshToken model: one row per issued refresh token so we can rotate and revoke them
Fields:
- id (String(36)) primary key
- account_id (String(36)) - FK to accounts.id
- token_hash - SHA-256 hex of the secret; the secret itself is never stored
- revoked (bool)
- created_at, expires_at (naive UTC)
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from models.base_model import BaseModel, Base


@dataclass(frozen=True)
class RefreshTokenRecord:
    id: str
    account_id: str
    token_hash: str
    created_at: datetime
    expires_at: datetime
    revoked: bool

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at <= now


class RefreshToken(BaseModel, Base):
    __tablename__ = "refresh_tokens"

    account_id = Column(String(36), ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False, index=True)
    token_hash = Column(String(64), nullable=False, unique=True, index=True)
    expires_at = Column(DateTime, nullable=False, index=True)
    revoked = Column(Boolean, default=False, nullable=False)

    account = relationship("Account", back_populates="refresh_tokens")

    def __repr__(self):
        return f"<RefreshToken id={self.id} account={self.account_id}>"

    def to_record(self) -> RefreshTokenRecord:
        return RefreshTokenRecord(
            id=self.id,
            account_id=self.account_id,
            token_hash=self.token_hash,
            created_at=self.created_at,
            expires_at=self.expires_at,
            revoked=bool(self.revoked),
        )
