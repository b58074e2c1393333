"""Persistence layer: SQLAlchemy models, storage and the stores built on it."""
from models.base_model import Base
from models.account import Account
from models.refresh_token import RefreshToken
from models.project import Project
from models.task import Task

__all__ = ["Base", "Account", "RefreshToken", "Project", "Task"]
