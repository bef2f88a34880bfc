"""Local filesystem blob store for uploaded filings."""
import logging
import uuid
from pathlib import Path
from typing import NamedTuple
import aiofiles

from filing_qa.core.config import settings


logger = logging.getLogger(__name__)


class StoredBlob(NamedTuple):
    key: str
    url: str
    size: int


class LocalBlobStore:
    """Stores raw upload bytes under ``<root>/<user_id>/<uuid><ext>``."""

    def __init__(self, root: str):
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)

    def path_for(self, key: str) -> Path:
        path = (self.root / key).resolve()
        if self.root.resolve() not in path.parents:
            raise ValueError(f"Invalid storage key: {key}")
        return path

    async def save(self, user_id: uuid.UUID, filename: str, data: bytes) -> StoredBlob:
        """Write bytes to a fresh key and return its key, file URL and size."""
        extension = Path(filename or "").suffix.lower()
        key = f"{user_id}/{uuid.uuid4().hex}{extension}"
        path = self.path_for(key)
        path.parent.mkdir(parents=True, exist_ok=True)

        async with aiofiles.open(path, "wb") as buffer:
            await buffer.write(data)

        logger.info("Stored upload %s (%d bytes) as %s", filename, len(data), key)
        return StoredBlob(key=key, url=path.as_uri(), size=len(data))

    def read(self, key: str) -> bytes:
        return self.path_for(key).read_bytes()

    def exists(self, key: str) -> bool:
        try:
            return self.path_for(key).exists()
        except ValueError:
            return False

    def delete(self, key: str) -> None:
        path = self.path_for(key)
        if path.exists():
            path.unlink()


def get_blob_store() -> LocalBlobStore:
    """FastAPI dependency returning the configured blob store."""
    return LocalBlobStore(settings.UPLOAD_DIR)
