"""Object storage for raw uploads.

The pipeline only needs two operations, ``download`` and ``upload``. The
local implementation keeps objects as files under ``<root>/<bucket>/``.
"""

import logging
from pathlib import Path
from typing import Protocol

from glossary_extractor.core.config import StorageConfig
from glossary_extractor.core.errors import StorageError

logger = logging.getLogger(__name__)


class ObjectStorage(Protocol):
    """What the background processor and upload intake need from a store."""

    async def download(self, path: str) -> bytes: ...

    async def upload(self, path: str, data: bytes, content_type: str = "") -> None: ...


class LocalObjectStorage:
    """Filesystem-backed object store.

    Args:
        root: Directory holding the buckets.
        bucket: Bucket (sub-directory) name.
    """

    def __init__(self, root: str | Path = StorageConfig.ROOT, bucket: str = StorageConfig.BUCKET):
        self.bucket = bucket
        self.base_dir = Path(root) / bucket

    def _resolve(self, path: str) -> Path:
        target = (self.base_dir / path).resolve()
        if not target.is_relative_to(self.base_dir.resolve()):
            raise StorageError(f"Path escapes bucket '{self.bucket}': {path}")
        return target

    async def download(self, path: str) -> bytes:
        """Read an object.

        Raises:
            StorageError: If the object is missing or unreadable.
        """
        target = self._resolve(path)
        logger.debug("Downloading %s from bucket %s", path, self.bucket)
        try:
            data = target.read_bytes()
        except OSError as e:
            raise StorageError(f"Failed to download file: {e}") from e
        logger.debug("Downloaded %s (%d bytes)", path, len(data))
        return data

    async def upload(self, path: str, data: bytes, content_type: str = "") -> None:
        """Write an object, replacing any existing one at ``path``.

        ``content_type`` is accepted for interface parity; the filesystem
        does not keep it.

        Raises:
            StorageError: If the object cannot be written.
        """
        target = self._resolve(path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as e:
            raise StorageError(f"Failed to upload file: {e}") from e
        logger.debug("Uploaded %s (%d bytes, %s)", path, len(data), content_type or "unknown type")
