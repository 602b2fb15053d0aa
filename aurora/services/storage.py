"""
Blob storage for attachment bytes.

BlobStorage is the seam the attachment service depends on; LocalBlobStorage
keeps blobs on the filesystem under a configured root, one directory per
tenant and owner.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from starlette.concurrency import run_in_threadpool

from aurora.core.settings import get_app_settings

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Blob could not be written, read or removed."""


class BlobStorage:
    """Interface for blob storage backends."""

    async def put(self, key: str, data: bytes, content_type: str) -> None:  # pragma: no cover - interface
        raise NotImplementedError

    async def get(self, key: str) -> bytes:  # pragma: no cover - interface
        raise NotImplementedError

    async def delete(self, key: str) -> None:  # pragma: no cover - interface
        raise NotImplementedError


class LocalBlobStorage(BlobStorage):
    """Filesystem-backed storage; keys are relative POSIX paths."""

    def __init__(self, root: Path | str) -> None:
        self.root = Path(root).resolve()

    def _path(self, key: str) -> Path:
        path = (self.root / key).resolve()
        if self.root not in path.parents:
            raise StorageError(f"Invalid storage key: {key}")
        return path

    def _write(self, key: str, data: bytes) -> None:
        path = self._path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        # Never replace a stored blob; keys are unique per upload.
        with open(path, "xb") as fh:
            fh.write(data)

    # PUBLIC_INTERFACE
    async def put(self, key: str, data: bytes, content_type: str) -> None:
        """Store bytes under a new key; an existing blob is never overwritten."""
        try:
            await run_in_threadpool(self._write, key, data)
        except OSError as exc:
            raise StorageError(str(exc)) from exc
        logger.info("Stored blob %s (%d bytes, %s)", key, len(data), content_type)

    # PUBLIC_INTERFACE
    async def get(self, key: str) -> bytes:
        """Return the bytes stored under key."""
        try:
            return await run_in_threadpool(self._path(key).read_bytes)
        except OSError as exc:
            raise StorageError(str(exc)) from exc

    # PUBLIC_INTERFACE
    async def delete(self, key: str) -> None:
        """Remove the blob; a missing blob is not an error."""
        try:
            await run_in_threadpool(self._path(key).unlink, True)
        except OSError as exc:
            raise StorageError(str(exc)) from exc


_STORAGE: Optional[BlobStorage] = None


# PUBLIC_INTERFACE
def get_blob_storage() -> BlobStorage:
    """FastAPI dependency returning the process-wide storage backend."""
    global _STORAGE
    if _STORAGE is None:
        _STORAGE = LocalBlobStorage(get_app_settings().STORAGE_DIR)
    return _STORAGE
