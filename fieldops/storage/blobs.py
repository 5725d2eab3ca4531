"""
Durable blob storage for generated artifacts.

The store is write-once: a key can be written a single time and is addressed
afterwards by the public location returned from ``write``. The local
implementation keeps blobs under ``UPLOADS_DIR`` and they are served by the
``/uploads`` static mount.
"""
from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Optional, Protocol

from fieldops.core.settings import get_app_settings

logger = logging.getLogger(__name__)


class BlobExistsError(FileExistsError):
    """A blob with the requested key was already written."""


class BlobStorage(Protocol):
    async def write(self, key: str, data: bytes) -> str:
        """Persist ``data`` under ``key`` and return its public location."""
        ...

    async def delete(self, key: str) -> None:
        ...

    async def exists(self, key: str) -> bool:
        ...


class LocalBlobStorage:
    """Filesystem-backed blob store. File I/O runs in worker threads."""

    def __init__(self, root: str | Path, url_prefix: str = "/uploads") -> None:
        self.root = Path(root)
        self.url_prefix = url_prefix.rstrip("/")

    def _path(self, key: str) -> Path:
        path = (self.root / key).resolve()
        if self.root.resolve() not in path.parents:
            raise ValueError(f"Blob key escapes storage root: {key!r}")
        return path

    def location(self, key: str) -> str:
        return f"{self.url_prefix}/{key}"

    def _write_sync(self, key: str, data: bytes) -> None:
        path = self._path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        try:
            # "xb" refuses to overwrite, which keeps blobs write-once.
            with open(path, "xb") as fh:
                fh.write(data)
        except FileExistsError as exc:
            raise BlobExistsError(key) from exc

    # PUBLIC_INTERFACE
    async def write(self, key: str, data: bytes) -> str:
        """Write a new blob and return its public location."""
        await asyncio.to_thread(self._write_sync, key, data)
        logger.debug("Stored blob key=%s bytes=%d", key, len(data))
        return self.location(key)

    # PUBLIC_INTERFACE
    async def delete(self, key: str) -> None:
        """Remove a blob if present."""
        await asyncio.to_thread(self._path(key).unlink, missing_ok=True)

    # PUBLIC_INTERFACE
    async def exists(self, key: str) -> bool:
        return await asyncio.to_thread(self._path(key).is_file)


_STORAGE: Optional[LocalBlobStorage] = None


# PUBLIC_INTERFACE
def get_blob_storage() -> BlobStorage:
    """Return the process-wide blob store configured from settings."""
    global _STORAGE
    if _STORAGE is None:
        settings = get_app_settings()
        _STORAGE = LocalBlobStorage(settings.UPLOADS_DIR, settings.UPLOADS_URL_PREFIX)
    return _STORAGE
