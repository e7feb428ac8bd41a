import re
import time
import uuid
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List

import aiofiles
import aiofiles.os
import structlog

from achievement_portal.exceptions import StorageError

logger = structlog.get_logger()

CONTENT_TYPE_EXTENSIONS = {
    "application/pdf": ".pdf",
    "image/png": ".png",
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
}

_KEY_RE = re.compile(r"^[0-9a-f]{32}\.(pdf|png|jpg)$")


class BlobStore(ABC):
    """Content storage for uploaded certificates, addressed by a generated key."""

    @abstractmethod
    async def put(self, content: bytes, content_type: str) -> str:
        """Stores ``content`` and returns its key."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Removes the blob. Deleting a missing key is not an error."""

    @abstractmethod
    async def exists(self, key: str) -> bool:
        ...

    @abstractmethod
    async def list_keys(self, min_age_seconds: float = 0.0) -> List[str]:
        """Keys of blobs stored at least ``min_age_seconds`` ago."""

    @abstractmethod
    def url_for(self, key: str) -> str:
        ...


class LocalBlobStore(BlobStore):
    def __init__(self, root: str, url_prefix: str = "/uploads"):
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)
        self.url_prefix = url_prefix.rstrip("/")

    def _path(self, key: str) -> Path:
        if not _KEY_RE.match(key):
            raise StorageError(f"Malformed blob key: {key!r}")
        return self.root / key

    async def put(self, content: bytes, content_type: str) -> str:
        extension = CONTENT_TYPE_EXTENSIONS.get(content_type, ".pdf")
        key = f"{uuid.uuid4().hex}{extension}"
        path = self.root / key

        try:
            async with aiofiles.open(path, "wb") as f:
                await f.write(content)
        except OSError as e:
            logger.error("Blob write failed", key=key, error=str(e))
            raise StorageError("Could not store file") from e

        logger.info("Blob stored", key=key, size=len(content))
        return key

    async def delete(self, key: str) -> None:
        path = self._path(key)
        try:
            await aiofiles.os.remove(path)
        except FileNotFoundError:
            logger.warning("Blob already missing", key=key)
            return
        except OSError as e:
            raise StorageError("Could not delete file") from e

        logger.info("Blob deleted", key=key)

    async def exists(self, key: str) -> bool:
        try:
            return await aiofiles.os.path.isfile(self._path(key))
        except StorageError:
            return False

    async def list_keys(self, min_age_seconds: float = 0.0) -> List[str]:
        cutoff = time.time() - min_age_seconds
        keys = []
        for name in await aiofiles.os.listdir(self.root):
            if not _KEY_RE.match(name):
                continue
            stat = await aiofiles.os.stat(self.root / name)
            if stat.st_mtime <= cutoff:
                keys.append(name)
        return sorted(keys)

    def url_for(self, key: str) -> str:
        return f"{self.url_prefix}/{key}"
