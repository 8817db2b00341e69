"""Test environment: in-memory SQLite, fast bcrypt, no email provider, temp storage folder."""

import os
import tempfile

os.environ.setdefault("APP_ENV", "dev")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECURITY_KEY", "test-security-key-that-is-long-enough-for-hs256")
os.environ.setdefault("PASSWORD_HASH_ROUNDS", "4")
os.environ.setdefault("EMAIL_VERIFICATION_ENABLED", "true")
os.environ.setdefault("STORAGE_PROVIDER", "filesystem")
os.environ.setdefault("STORAGE_FOLDER", tempfile.mkdtemp(prefix="identity-storage-"))
os.environ.pop("BREVO_API_KEY", None)
