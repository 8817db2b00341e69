"""S3-compatible object storage via boto3."""

import logging
import mimetypes
from typing import Any, BinaryIO

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from app.storage.base import StorageError, StorageProvider, rewind

logger = logging.getLogger(__name__)

_NOT_FOUND_CODES = frozenset({"404", "NoSuchKey", "NotFound"})


def _is_not_found(error: ClientError) -> bool:
    return error.response.get("Error", {}).get("Code") in _NOT_FOUND_CODES


def _storage_error(operation: str, path: str, error: Exception) -> StorageError:
    if isinstance(error, ClientError):
        code = error.response.get("Error", {}).get("Code", "Unknown")
        message = f"S3 {operation} failed for {path} [{code}]: {error}"
    else:
        message = f"S3 {operation} failed for {path}: {error}"
    logger.error(message)
    return StorageError(message)


class S3StorageProvider(StorageProvider):
    """
    Objects live in one bucket keyed by the relative path.

    Without explicit credentials boto3 falls back to the default AWS credential chain.
    Backend errors are raised as StorageError.
    """

    def __init__(
        self,
        bucket_name: str,
        client: Any | None = None,
        endpoint_url: str | None = None,
        region_name: str | None = None,
        access_key_id: str | None = None,
        secret_access_key: str | None = None,
        max_retries: int = 3,
    ) -> None:
        if not bucket_name:
            raise ValueError("S3 bucket name is required")
        self.bucket_name = bucket_name
        if client is None:
            if not access_key_id or not secret_access_key:
                logger.warning("S3 credentials not provided - will use default AWS credential chain")
            client = boto3.client(
                "s3",
                endpoint_url=endpoint_url,
                region_name=region_name,
                aws_access_key_id=access_key_id,
                aws_secret_access_key=secret_access_key,
                config=Config(retries={"max_attempts": max_retries}),
            )
        self.client = client

    def _exists(self, path: str) -> bool:
        try:
            self.client.head_object(Bucket=self.bucket_name, Key=path)
        except ClientError as e:
            if _is_not_found(e):
                return False
            raise _storage_error("head", path, e) from e
        except BotoCoreError as e:
            raise _storage_error("head", path, e) from e
        return True

    def delete(self, path: str) -> None:
        try:
            self.client.delete_object(Bucket=self.bucket_name, Key=path)
        except (ClientError, BotoCoreError) as e:
            raise _storage_error("delete", path, e) from e

    def read(self, path: str) -> BinaryIO | None:
        try:
            response = self.client.get_object(Bucket=self.bucket_name, Key=path)
        except ClientError as e:
            if _is_not_found(e):
                return None
            raise _storage_error("read", path, e) from e
        except BotoCoreError as e:
            raise _storage_error("read", path, e) from e
        return response["Body"]

    def upload(self, stream: BinaryIO, path: str, overwrite: bool = False) -> None:
        if not overwrite and self._exists(path):
            raise FileExistsError(f"The file {path} already exists")
        content_type = mimetypes.guess_type(path)[0] or "application/octet-stream"
        rewind(stream)
        try:
            self.client.upload_fileobj(
                stream,
                self.bucket_name,
                path,
                ExtraArgs={"ContentType": content_type},
            )
        except (ClientError, BotoCoreError) as e:
            raise _storage_error("upload", path, e) from e
        logger.debug("Uploaded s3://%s/%s", self.bucket_name, path)
