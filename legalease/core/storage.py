"""
Object storage for uploaded document files.

`ObjectStorage` is the collaborator the ingestion pipeline depends on;
`LocalObjectStorage` keeps objects as files under a root directory.
"""

import logging
from pathlib import Path
from typing import Protocol

import anyio

from legalease.core.errors import DownloadError

logger = logging.getLogger(__name__)


class ObjectStorage(Protocol):
    async def upload(self, key: str, data: bytes) -> str: ...

    async def download(self, path: str) -> bytes: ...

    async def remove(self, paths: list[str]) -> None: ...


class LocalObjectStorage:
    """Filesystem-backed object storage. Keys are relative POSIX paths."""

    def __init__(self, root: str | Path):
        self.root = Path(root).resolve()

    def _resolve(self, key: str) -> Path:
        if not key or key.startswith("/"):
            raise ValueError(f"Invalid storage key: {key!r}")
        target = (self.root / key).resolve()
        if not target.is_relative_to(self.root):
            raise ValueError(f"Storage key escapes the storage root: {key!r}")
        return target

    async def upload(self, key: str, data: bytes) -> str:
        """
        Store `data` under `key`.

        Returns:
            The storage path to persist on the document record
        """
        target = self._resolve(key)

        def _write() -> None:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)

        await anyio.to_thread.run_sync(_write)
        logger.info(f"Stored {len(data)} bytes at {key}")
        return key

    async def download(self, path: str) -> bytes:
        try:
            target = self._resolve(path)
            return await anyio.to_thread.run_sync(target.read_bytes)
        except (OSError, ValueError) as e:
            raise DownloadError(f"Failed to download {path}: {e}") from e

    async def remove(self, paths: list[str]) -> None:
        """Delete the given objects. Missing objects are ignored."""

        def _unlink() -> None:
            for path in paths:
                self._resolve(path).unlink(missing_ok=True)

        await anyio.to_thread.run_sync(_unlink)
        logger.info(f"Removed {len(paths)} object(s) from storage")
