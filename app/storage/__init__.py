"""Pluggable blob storage (filesystem or S3) for profile images."""

from typing import TYPE_CHECKING

from app.storage.base import StorageError, StorageProvider
from app.storage.filesystem import FileSystemStorageProvider
from app.storage.s3 import S3StorageProvider

if TYPE_CHECKING:
    from app.core.config import Settings


def get_storage_provider(settings: "Settings") -> StorageProvider:
    """Build the provider selected by STORAGE_PROVIDER."""
    if settings.STORAGE_PROVIDER == "s3":
        secret = settings.S3_SECRET_ACCESS_KEY
        return S3StorageProvider(
            bucket_name=settings.S3_BUCKET_NAME or "",
            endpoint_url=settings.S3_ENDPOINT_URL,
            region_name=settings.S3_REGION_NAME,
            access_key_id=settings.S3_ACCESS_KEY_ID,
            secret_access_key=secret.get_secret_value() if secret is not None else None,
        )
    return FileSystemStorageProvider(settings.STORAGE_FOLDER, settings.SITE_ROOT_FOLDER)


__all__ = [
    "FileSystemStorageProvider",
    "S3StorageProvider",
    "StorageError",
    "StorageProvider",
    "get_storage_provider",
]
