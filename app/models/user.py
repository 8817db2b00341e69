"""ORM model for user accounts (credentials, profile, session state)."""

import uuid

from sqlalchemy import Boolean, Column, DateTime, Integer, String, Uuid, func
from sqlalchemy.orm import relationship

from app.models.base import Base


class User(Base):
    """
    Registered account.

    normalized_user_name / normalized_email hold upper-cased copies for
    case-insensitive uniqueness. security_stamp changes whenever credentials or
    roles change. refresh_token and refresh_token_expiration are written together.
    """

    __tablename__ = "users"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_name = Column(String(256), nullable=False)
    normalized_user_name = Column(String(256), nullable=False, unique=True, index=True)
    email = Column(String(256), nullable=False)
    normalized_email = Column(String(256), nullable=False, unique=True, index=True)
    email_confirmed = Column(Boolean, nullable=False, default=False)
    password_hash = Column(String(255), nullable=False)
    first_name = Column(String(256), nullable=False)
    last_name = Column(String(256), nullable=True)
    profile_image_path = Column(String(512), nullable=True)
    security_stamp = Column(String(64), nullable=False)
    access_failed_count = Column(Integer, nullable=False, default=0)
    lockout_enabled = Column(Boolean, nullable=False, default=True)
    lockout_end = Column(DateTime(timezone=True), nullable=True)
    refresh_token = Column(String(512), nullable=True)
    refresh_token_expiration = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    user_roles = relationship(
        "UserRole",
        back_populates="user",
        cascade="all, delete-orphan",
    )
