from __future__ import annotations

from sqlalchemy import Column, DateTime, ForeignKey, String, Text, UniqueConstraint

from models.base_model import Base, BaseModel, utcnow


class Project(BaseModel, Base):
    """A named group of tasks. Visible to its owning account only."""

    __tablename__ = "projects"

    account_id = Column(String(36), ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("account_id", "name", name="uq_projects_account_name"),
    )

    def __repr__(self):
        return f"<Project id={self.id} account={self.account_id}>"
