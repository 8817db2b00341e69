"""SQLAlchemy ORM models."""

from app.models.base import Base
from app.models.role import Role, RoleNames, UserRole
from app.models.user import User

__all__ = ["Base", "Role", "RoleNames", "User", "UserRole"]
