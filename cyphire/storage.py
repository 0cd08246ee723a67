"""Blob store adapter for workroom attachments."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from cyphire.config import settings
from cyphire.ids import blob_id

logger = logging.getLogger("cyphire.storage")


class BlobStoreError(Exception):
    """Raised when the blob store cannot accept a file."""


@dataclass
class IncomingFile:
    name: str
    content_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass
class StoredBlob:
    url: str
    id: str
    content_type: str
    size: int
    name: str
    key: str = ""


class BlobStore(Protocol):
    async def upload(self, file: IncomingFile, folder: str) -> StoredBlob: ...

    async def delete(self, blob: StoredBlob) -> None: ...


class LocalBlobStore:
    """Writes blobs below a directory and serves them from ``base_url``."""

    def __init__(self, root: str | Path, base_url: str) -> None:
        self.root = Path(root)
        self.base_url = base_url.rstrip("/")

    async def upload(self, file: IncomingFile, folder: str) -> StoredBlob:
        bid = blob_id()
        suffix = Path(file.name).suffix
        relative = Path(folder) / f"{bid}{suffix}"
        target = self.root / relative

        def _write() -> None:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(file.data)

        try:
            await asyncio.to_thread(_write)
        except OSError as e:
            logger.warning("Blob upload failed for %s: %s", file.name, e)
            raise BlobStoreError(str(e)) from e

        return StoredBlob(
            url=f"{self.base_url}/{relative.as_posix()}",
            id=bid,
            content_type=file.content_type,
            size=file.size,
            name=file.name,
            key=relative.as_posix(),
        )

    async def delete(self, blob: StoredBlob) -> None:
        target = self.root / blob.key
        try:
            await asyncio.to_thread(target.unlink, missing_ok=True)
        except OSError as e:
            raise BlobStoreError(str(e)) from e


_blob_store = LocalBlobStore(settings.blob_dir, settings.blob_base_url)


def get_blob_store() -> BlobStore:
    return _blob_store
