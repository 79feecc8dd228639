import time
import secrets
import logging
import aiofiles
import aiofiles.os
from pathlib import Path
from typing import Iterable, Optional
from fastapi import UploadFile
from catalog.storage.base import BlobStore, StoredBlob

logger = logging.getLogger(__name__)


class LocalBlobStore(BlobStore):
    """Writes images under a directory that the app serves as static files."""

    def __init__(
        self,
        directory: str,
        url_prefix: str,
        allowed_extensions: Iterable[str],
        max_bytes: int
    ):
        super().__init__(allowed_extensions, max_bytes)
        self.directory = Path(directory)
        self.url_prefix = url_prefix.rstrip("/")

    def _new_filename(self, extension: str) -> str:
        return f"{int(time.time() * 1000)}-{secrets.token_hex(6)}.{extension}"

    async def _save(self, upload: UploadFile, extension: str) -> StoredBlob:
        await aiofiles.os.makedirs(self.directory, exist_ok=True)
        filename = self._new_filename(extension)
        file_path = self.directory / filename

        completed = False
        try:
            async with aiofiles.open(file_path, "wb") as f:
                async for chunk in self.iter_chunks(upload):
                    await f.write(chunk)
            completed = True
        finally:
            # Covers validation failures and cancellation by the upload timeout
            if not completed and await aiofiles.os.path.exists(file_path):
                await aiofiles.os.remove(file_path)

        logger.info("Stored image %s (%s)", filename, upload.filename)
        return StoredBlob(url=f"{self.url_prefix}/{filename}", key=filename)

    async def delete(self, key: str) -> None:
        # Keys are bare filenames; never follow a path out of the directory
        file_path = self.directory / Path(key).name
        try:
            await aiofiles.os.remove(file_path)
            logger.info("Deleted image %s", file_path.name)
        except FileNotFoundError:
            logger.debug("Image %s already absent", file_path.name)

    def key_for_url(self, url: str) -> Optional[str]:
        if not url or not url.startswith(self.url_prefix + "/"):
            return None
        return url[len(self.url_prefix) + 1:].split("?", 1)[0] or None
