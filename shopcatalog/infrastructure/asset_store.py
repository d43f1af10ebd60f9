"""Image asset storage.

Blobs are written under a root directory, keyed by variant. File I/O
runs in a worker thread so callers stay async.
"""

import asyncio
from pathlib import Path, PurePosixPath
from typing import Protocol
from uuid import uuid4

import structlog

from shopcatalog.domain.exceptions import StorageError

logger = structlog.get_logger()


class AssetStore(Protocol):
    """Backing store for binary assets."""

    async def save(self, key: str, data: bytes) -> str: ...

    async def load(self, key: str) -> bytes: ...

    async def delete(self, key: str) -> None: ...


def build_asset_key(variant_id: str, filename: str) -> str:
    """Build a storage key for an uploaded file.

    Args:
        variant_id: Owning variant.
        filename: Original filename; only its suffix is kept.

    Returns:
        Key of the form "<variant_id>/<random hex><suffix>".
    """
    suffix = PurePosixPath(filename.replace("\\", "/")).suffix.lower()
    return f"{variant_id}/{uuid4().hex}{suffix}"


class LocalAssetStore:
    """Asset store backed by the local filesystem."""

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)

    def _path_for(self, key: str) -> Path:
        path = (self.root / key).resolve()
        if not path.is_relative_to(self.root.resolve()):
            raise StorageError(f"Asset key escapes store root: {key}", backend="assets")
        return path

    async def save(self, key: str, data: bytes) -> str:
        """Write data under key.

        Raises:
            StorageError: If the store cannot be written.
        """
        path = self._path_for(key)

        def write() -> None:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)

        try:
            await asyncio.to_thread(write)
        except OSError as exc:
            logger.error("Asset write failed", key=key, error=str(exc))
            raise StorageError(
                f"Asset store unreachable: {exc}",
                backend="assets",
                details={"key": key},
            ) from exc
        logger.debug("Asset stored", key=key, size=len(data))
        return key

    async def load(self, key: str) -> bytes:
        """Read the data stored under key.

        Raises:
            StorageError: If the asset cannot be read.
        """
        path = self._path_for(key)
        try:
            return await asyncio.to_thread(path.read_bytes)
        except OSError as exc:
            raise StorageError(
                f"Asset {key} could not be read: {exc}",
                backend="assets",
                details={"key": key},
            ) from exc

    async def delete(self, key: str) -> None:
        path = self._path_for(key)
        try:
            await asyncio.to_thread(path.unlink, True)
        except OSError as exc:
            raise StorageError(
                f"Asset {key} could not be deleted: {exc}",
                backend="assets",
                details={"key": key},
            ) from exc
