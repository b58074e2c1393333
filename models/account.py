from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import Column, String
from sqlalchemy.orm import relationship

from models.base_model import Base, BaseModel


@dataclass(frozen=True)
class AccountRecord:
    """Detached snapshot of an account row."""

    id: str
    email: str
    password_hash: str
    name: str | None
    created_at: datetime


class Account(BaseModel, Base):
    __tablename__ = "accounts"

    # normalized (trimmed, lowercased) before it gets here
    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    name = Column(String(100), nullable=True)

    refresh_tokens = relationship(
        "RefreshToken",
        back_populates="account",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    @property
    def password(self):
        raise AttributeError("Password: Write-only field")

    def to_record(self) -> AccountRecord:
        return AccountRecord(
            id=self.id,
            email=self.email,
            password_hash=self.password_hash,
            name=self.name,
            created_at=self.created_at,
        )
