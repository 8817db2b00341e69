"""Local filesystem storage rooted at STORAGE_FOLDER (relative folders resolve against SITE_ROOT_FOLDER)."""

import logging
import shutil
from pathlib import Path
from typing import BinaryIO

from app.storage.base import StorageProvider, rewind

logger = logging.getLogger(__name__)


class FileSystemStorageProvider(StorageProvider):
    def __init__(self, storage_folder: str, site_root_folder: str = ".") -> None:
        root = Path(storage_folder)
        if not root.is_absolute():
            root = Path(site_root_folder) / root
        self.root = root.resolve()

    def _full_path(self, path: str) -> Path:
        full_path = (self.root / path).resolve()
        if not full_path.is_relative_to(self.root):
            raise ValueError(f"Path {path!r} is outside the storage folder")
        return full_path

    def delete(self, path: str) -> None:
        self._full_path(path).unlink(missing_ok=True)

    def read(self, path: str) -> BinaryIO | None:
        full_path = self._full_path(path)
        if not full_path.is_file():
            return None
        return full_path.open("rb")

    def upload(self, stream: BinaryIO, path: str, overwrite: bool = False) -> None:
        full_path = self._full_path(path)
        full_path.parent.mkdir(parents=True, exist_ok=True)
        if not overwrite and full_path.exists():
            raise FileExistsError(f"The file {path} already exists")
        rewind(stream)
        with full_path.open("wb") as output:
            shutil.copyfileobj(stream, output)
        logger.debug("Stored %s", path)
