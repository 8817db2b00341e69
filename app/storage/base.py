"""Blob storage contract shared by the filesystem and S3 providers."""

from abc import ABC, abstractmethod
from typing import BinaryIO


class StorageError(Exception):
    """Provider-specific failure (network, permissions, backend errors)."""


class StorageProvider(ABC):
    """
    delete/read/upload by relative path.

    read returns None for a missing object; upload raises FileExistsError when the
    object exists and overwrite is False. Callers close the stream returned by read.
    """

    @abstractmethod
    def delete(self, path: str) -> None:
        """Remove the object; missing objects are ignored."""

    @abstractmethod
    def read(self, path: str) -> BinaryIO | None: ...

    @abstractmethod
    def upload(self, stream: BinaryIO, path: str, overwrite: bool = False) -> None: ...


def rewind(stream: BinaryIO) -> None:
    """Start uploads from the beginning of seekable streams."""
    if stream.seekable():
        stream.seek(0)
