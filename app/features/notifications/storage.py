"""
File storage for tenant logos and profile images.

Services only keep the URL a store returns; the bytes live behind this
interface.
"""

import logging
import uuid
from abc import ABC, abstractmethod
from pathlib import Path

from app.config import settings
from app.core.exceptions import ValidationError

logger = logging.getLogger(__name__)

ALLOWED_IMAGE_EXTENSIONS = {".png", ".jpg", ".jpeg", ".gif", ".webp", ".svg"}


class FileStore(ABC):
    """Storage backend interface."""

    @abstractmethod
    async def upload(self, content: bytes, folder: str, filename: str) -> str:
        """
        Store a file.

        Args:
            content: File bytes
            folder: Logical folder (e.g. "logos", "profiles")
            filename: Original filename, used for its extension

        Returns:
            Public URL of the stored file
        """
        pass

    @abstractmethod
    async def delete(self, url: str) -> bool:
        """
        Delete a file previously returned by upload.

        Returns:
            True if deleted, False if not found
        """
        pass


class LocalFileStore(FileStore):
    """
    Local filesystem storage.

    uploads/
      ├── logos/{uuid}.png
      └── profiles/{uuid}.jpg
    """

    def __init__(self, base_path: str | None = None, base_url: str | None = None):
        self.base_path = Path(base_path or settings.upload_dir)
        self.base_url = (base_url or settings.upload_base_url).rstrip("/")
        self.base_path.mkdir(parents=True, exist_ok=True)

    def _relative_path(self, url: str) -> str | None:
        prefix = f"{self.base_url}/"
        if not url.startswith(prefix):
            return None
        return url[len(prefix):]

    async def upload(self, content: bytes, folder: str, filename: str) -> str:
        extension = Path(filename).suffix.lower()
        if extension not in ALLOWED_IMAGE_EXTENSIONS:
            raise ValidationError(f"Unsupported image type: {extension or 'none'}")

        relative = f"{folder}/{uuid.uuid4().hex}{extension}"
        full_path = self.base_path / relative
        full_path.parent.mkdir(parents=True, exist_ok=True)
        with open(full_path, "wb") as f:
            f.write(content)

        logger.info(f"File saved: {relative}")
        return f"{self.base_url}/{relative}"

    async def delete(self, url: str) -> bool:
        relative = self._relative_path(url)
        if relative is None:
            logger.warning(f"URL not managed by this store: {url}")
            return False

        full_path = self.base_path / relative
        if full_path.exists():
            full_path.unlink()
            logger.info(f"File deleted: {relative}")
            return True

        logger.warning(f"File not found for deletion: {relative}")
        return False


def get_file_store() -> FileStore:
    """Configured storage backend."""
    return LocalFileStore()
