"""
Credential store: user and role persistence over a SQLAlchemy session.

Every mutation commits before returning unless the caller passes commit=False and
finishes the unit of work with commit()/rollback() itself.
"""

import logging
import uuid
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.security import (
    USERNAME_MAX_LEN,
    generate_security_stamp,
    hash_password,
    password_policy_errors,
)
from app.core.security import verify_password as _verify_password_hash
from app.models import Role, User, UserRole
from app.services.errors import InternalError, ValidationError

if TYPE_CHECKING:
    from app.core.config import Settings

logger = logging.getLogger(__name__)


def normalize_key(value: str) -> str:
    """
    Case-insensitive lookup key for user names, emails and role names.

    Full Unicode upper-casing, so "straße" and "strasse" share the key "STRASSE".
    """
    return value.upper()


def utcnow() -> datetime:
    return datetime.now(UTC)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive timestamps (SQLite drops tzinfo on the way back)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


class UserStore:
    """Repository for users, roles and role assignments."""

    def __init__(self, db: Session, settings: "Settings | None" = None) -> None:
        if settings is None:
            from app.core.config import get_settings

            settings = get_settings()
        self.db = db
        self.settings = settings

    # ------------------------------------------------------------------
    # Unit of work
    # ------------------------------------------------------------------

    def commit(self) -> None:
        self.db.commit()

    def rollback(self) -> None:
        self.db.rollback()

    def _save(self, commit: bool) -> None:
        if commit:
            self.db.commit()
        else:
            self.db.flush()

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def find_by_user_name(self, user_name: str | None) -> User | None:
        """Case-insensitive lookup by user name. Absent is not an error."""
        if not user_name:
            return None
        return (
            self.db.query(User)
            .filter(User.normalized_user_name == normalize_key(user_name))
            .first()
        )

    def find_by_email(self, email: str | None) -> User | None:
        if not email:
            return None
        return (
            self.db.query(User)
            .filter(User.normalized_email == normalize_key(email))
            .first()
        )

    def find_by_id(self, user_id: uuid.UUID | str | None) -> User | None:
        """Lookup by primary key; malformed ids are treated as absent."""
        if user_id is None:
            return None
        if not isinstance(user_id, uuid.UUID):
            try:
                user_id = uuid.UUID(str(user_id))
            except ValueError:
                return None
        return self.db.get(User, user_id)

    # ------------------------------------------------------------------
    # Credentials
    # ------------------------------------------------------------------

    def verify_password(self, user: User, plain_password: str) -> bool:
        """Check plain_password against the stored hash. Never raises on mismatch."""
        return _verify_password_hash(plain_password, user.password_hash)

    def create(self, user: User, plain_password: str, commit: bool = True) -> User:
        """
        Persist a new user with a hashed password and a fresh security stamp.

        Raises ValidationError listing every problem: duplicate user name, duplicate
        email, and each password policy violation.
        """
        errors: list[str] = []
        user_name = (user.user_name or "").strip()
        email = (user.email or "").strip()
        if not user_name or len(user_name) > USERNAME_MAX_LEN:
            errors.append(f"Username '{user_name}' is invalid.")
        elif self.find_by_user_name(user_name) is not None:
            errors.append(f"Username '{user_name}' is already taken.")
        if not email:
            errors.append("Email is required.")
        elif self.find_by_email(email) is not None:
            errors.append(f"Email '{email}' is already taken.")
        errors.extend(password_policy_errors(plain_password))
        if errors:
            raise ValidationError("Registration failed", *errors)

        user.user_name = user_name
        user.normalized_user_name = normalize_key(user_name)
        user.email = email
        user.normalized_email = normalize_key(email)
        user.password_hash = hash_password(plain_password, self.settings.PASSWORD_HASH_ROUNDS)
        user.security_stamp = generate_security_stamp()
        user.access_failed_count = 0
        if user.lockout_enabled is None:
            user.lockout_enabled = True
        if user.email_confirmed is None:
            user.email_confirmed = False
        self.db.add(user)
        try:
            self._save(commit)
        except IntegrityError as e:
            # Concurrent registration won the unique index.
            self.db.rollback()
            logger.info("Registration conflict for user_name=%s", user_name)
            raise ValidationError(
                "Registration failed", "Username or email is already taken."
            ) from e
        logger.info("User created", extra={"user_id": str(user.id), "user_name": user_name})
        return user

    def change_password(self, user: User, current_password: str, new_password: str) -> None:
        """Replace the password, bump the security stamp and drop the stored refresh token."""
        if not self.verify_password(user, current_password):
            raise ValidationError("Password change failed", "Incorrect password.")
        errors = password_policy_errors(new_password)
        if errors:
            raise ValidationError("Password change failed", *errors)
        user.password_hash = hash_password(new_password, self.settings.PASSWORD_HASH_ROUNDS)
        user.security_stamp = generate_security_stamp()
        user.refresh_token = None
        user.refresh_token_expiration = None
        self.db.commit()

    def update_security_stamp(self, user: User) -> str:
        """Regenerate and persist the stamp; outstanding tokens carrying the old one stop working."""
        user.security_stamp = generate_security_stamp()
        self.db.commit()
        return user.security_stamp

    # ------------------------------------------------------------------
    # Lockout
    # ------------------------------------------------------------------

    def is_locked_out(self, user: User) -> bool:
        if not user.lockout_enabled or user.lockout_end is None:
            return False
        return as_utc(user.lockout_end) > utcnow()

    def record_failed_access(self, user: User) -> bool:
        """
        Count a failed password attempt. Reaching LOCKOUT_MAX_FAILED_ATTEMPTS locks the
        account for LOCKOUT_MINUTES and resets the counter. Returns is_locked_out(user).
        """
        if not user.lockout_enabled:
            return False
        user.access_failed_count = (user.access_failed_count or 0) + 1
        if user.access_failed_count >= self.settings.LOCKOUT_MAX_FAILED_ATTEMPTS:
            user.lockout_end = utcnow() + timedelta(minutes=self.settings.LOCKOUT_MINUTES)
            user.access_failed_count = 0
            logger.warning("User locked out after failed attempts", extra={"user_id": str(user.id)})
        self.db.commit()
        return self.is_locked_out(user)

    def reset_access_failed(self, user: User) -> None:
        if user.access_failed_count:
            user.access_failed_count = 0
            self.db.commit()

    def set_lockout_end(self, user: User, lockout_end: datetime | None) -> None:
        user.lockout_end = lockout_end
        self.db.commit()

    # ------------------------------------------------------------------
    # Session materials and profile
    # ------------------------------------------------------------------

    def set_refresh_token(self, user: User, refresh_token: str, expires_at: datetime) -> None:
        """Store a refresh token and its expiration together, replacing any previous one."""
        user.refresh_token = refresh_token
        user.refresh_token_expiration = expires_at
        self.db.commit()

    def clear_refresh_token(self, user: User) -> None:
        user.refresh_token = None
        user.refresh_token_expiration = None
        self.db.commit()

    def refresh_token_expired(self, user: User) -> bool:
        if user.refresh_token_expiration is None:
            return True
        return as_utc(user.refresh_token_expiration) < utcnow()

    def confirm_email(self, user: User) -> None:
        user.email_confirmed = True
        self.db.commit()

    def set_profile_image(self, user: User, path: str | None) -> None:
        user.profile_image_path = path
        self.db.commit()

    # ------------------------------------------------------------------
    # Roles
    # ------------------------------------------------------------------

    def ensure_roles(self, role_names: tuple[str, ...] | list[str]) -> list[str]:
        """Create any missing roles; returns the names that were created. Idempotent."""
        created: list[str] = []
        for name in role_names:
            exists = (
                self.db.query(Role)
                .filter(Role.normalized_name == normalize_key(name))
                .first()
            )
            if exists is None:
                self.db.add(Role(name=name, normalized_name=normalize_key(name)))
                created.append(name)
        if created:
            self.db.commit()
            logger.info("Roles created: %s", ", ".join(created))
        return created

    def assign_role(self, user: User, role_name: str, commit: bool = True) -> None:
        """Add user to role_name (no-op if already a member); bumps the security stamp."""
        role = (
            self.db.query(Role)
            .filter(Role.normalized_name == normalize_key(role_name))
            .first()
        )
        if role is None:
            logger.error("Role %r does not exist; were roles seeded at startup?", role_name)
            raise InternalError()
        existing = (
            self.db.query(UserRole)
            .filter(UserRole.user_id == user.id, UserRole.role_id == role.id)
            .first()
        )
        if existing is not None:
            return
        self.db.add(UserRole(user_id=user.id, role_id=role.id))
        user.security_stamp = generate_security_stamp()
        self._save(commit)

    def roles_of(self, user: User) -> list[str]:
        """Role names of user, sorted for deterministic claim order."""
        rows = (
            self.db.query(Role.name)
            .join(UserRole, UserRole.role_id == Role.id)
            .filter(UserRole.user_id == user.id)
            .order_by(Role.name)
            .all()
        )
        return [name for (name,) in rows]
