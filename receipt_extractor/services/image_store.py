"""
Durable storage for uploaded receipt images.

Images are written under a managed directory as ``<uuid>_<original name>`` so
repeated uploads of the same filename never collide. The stored name doubles
as the public path segment under the uploads URL prefix.
"""
import os
import tempfile
import uuid
from dataclasses import dataclass
from pathlib import Path, PurePath

from loguru import logger

from ..core.errors import DirectoryCreateFailed, ImageWriteFailed


@dataclass(frozen=True)
class StoredImage:
    stored_name: str
    storage_path: Path


class ImageStore:
    def __init__(self, directory: Path, url_prefix: str = "/uploads"):
        self.directory = Path(directory)
        self.url_prefix = url_prefix.rstrip("/")

    def save(self, data: bytes, original_name: str) -> StoredImage:
        """
        Persist image bytes under a fresh collision-free name.

        Raises:
            DirectoryCreateFailed: the storage directory could not be created
            ImageWriteFailed: the image bytes could not be written
        """
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error(f"Failed to create uploads directory {self.directory}: {e}")
            raise DirectoryCreateFailed(e) from e

        stored_name = f"{uuid.uuid4()}_{_base_name(original_name)}"
        storage_path = self.directory / stored_name

        # Write to a sibling temp file and rename so the image appears whole or not at all
        tmp_path = None
        try:
            fd, tmp_path = tempfile.mkstemp(dir=self.directory, prefix=".upload-", suffix=".tmp")
            with os.fdopen(fd, "wb") as f:
                f.write(data)
            os.replace(tmp_path, storage_path)
        except (OSError, ValueError) as e:
            # ValueError: the filesystem rejects the name (embedded NUL)
            logger.error(f"Failed to save image {stored_name}: {e}")
            if tmp_path is not None and os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise ImageWriteFailed(e) from e

        logger.info("Saved receipt image", stored_name=stored_name, size_bytes=len(data))
        return StoredImage(stored_name=stored_name, storage_path=storage_path)

    def url_for(self, stored_name: str) -> str:
        return f"{self.url_prefix}/{stored_name}"


def _base_name(original_name: str) -> str:
    # Keep the client's filename verbatim, minus any directory components
    return PurePath(original_name.replace("\\", "/")).name
