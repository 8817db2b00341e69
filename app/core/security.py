"""Password hashing, password policy and security stamps."""

import base64
import secrets

import bcrypt

from app.core.config import settings

# Min/max lengths for username and password validation (input validation).
USERNAME_MAX_LEN = 256
PASSWORD_MIN_LEN = 8
PASSWORD_MAX_LEN = 128

SECURITY_STAMP_BYTES = 20


def hash_password(plain_password: str, rounds: int | None = None) -> str:
    """Hash a plain-text password for storage. Do not store plain passwords."""
    # bcrypt has a 72-byte limit; truncate to avoid errors (validation already limits length).
    pw_bytes = plain_password.encode("utf-8")[:72]
    cost = rounds if rounds is not None else settings.PASSWORD_HASH_ROUNDS
    return bcrypt.hashpw(pw_bytes, bcrypt.gensalt(rounds=cost)).decode("utf-8")


def verify_password(plain_password: str, hashed: str | None) -> bool:
    """Verify a plain password against a stored hash. bcrypt compares in constant time."""
    if not hashed:
        return False
    pw_bytes = plain_password.encode("utf-8")[:72]
    try:
        return bcrypt.checkpw(pw_bytes, hashed.encode("utf-8"))
    except (ValueError, TypeError):
        return False


def password_policy_errors(password: str) -> list[str]:
    """
    Return every password policy violation (empty list when the password is acceptable).

    Policy: at least 8 characters, one digit, one uppercase letter, one lowercase letter
    and one non-alphanumeric character.
    """
    errors: list[str] = []
    if len(password) < PASSWORD_MIN_LEN:
        errors.append(f"Passwords must be at least {PASSWORD_MIN_LEN} characters.")
    if len(password) > PASSWORD_MAX_LEN:
        errors.append(f"Passwords must be at most {PASSWORD_MAX_LEN} characters.")
    if not any(c.isdigit() for c in password):
        errors.append("Passwords must have at least one digit ('0'-'9').")
    if not any(c.isupper() for c in password):
        errors.append("Passwords must have at least one uppercase ('A'-'Z').")
    if not any(c.islower() for c in password):
        errors.append("Passwords must have at least one lowercase ('a'-'z').")
    if all(c.isalnum() for c in password):
        errors.append("Passwords must have at least one non alphanumeric character.")
    return errors


def generate_security_stamp() -> str:
    """New opaque security stamp (base32 of 20 random bytes)."""
    return base64.b32encode(secrets.token_bytes(SECURITY_STAMP_BYTES)).decode("ascii")


# Computed once so unknown-user logins spend the same bcrypt work as wrong passwords.
DUMMY_PASSWORD_HASH: str = hash_password("timing-equalization-dummy")
