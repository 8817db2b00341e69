"""ORM models for roles and user-role assignments."""

import uuid

from sqlalchemy import Column, ForeignKey, String, Uuid
from sqlalchemy.orm import relationship

from app.models.base import Base


class RoleNames:
    """Roles seeded at startup."""

    ADMINISTRATOR = "Administrator"
    POWER_USER = "PowerUser"
    USER = "User"

    ALL = (ADMINISTRATOR, POWER_USER, USER)


class Role(Base):
    """Named permission group."""

    __tablename__ = "roles"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(256), nullable=False)
    normalized_name = Column(String(256), nullable=False, unique=True, index=True)

    user_roles = relationship("UserRole", back_populates="role")


class UserRole(Base):
    """Assignment of a role to a user; both references are required."""

    __tablename__ = "user_roles"

    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True, nullable=False)
    role_id = Column(Uuid, ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True, nullable=False)

    user = relationship("User", back_populates="user_roles")
    role = relationship("Role", back_populates="user_roles")
