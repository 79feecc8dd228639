import io
import asyncio
import logging
import cloudinary.exceptions
import cloudinary.uploader
from typing import Iterable, Optional
from urllib.parse import urlparse
from fastapi import UploadFile
from catalog.errors import DependencyError
from catalog.storage.base import BlobStore, StoredBlob

logger = logging.getLogger(__name__)


class CloudinaryBlobStore(BlobStore):
    """Uploads images to Cloudinary under a folder with the official SDK.

    The SDK is blocking, so every call runs in a worker thread.
    """

    def __init__(
        self,
        cloud_name: str,
        api_key: str,
        api_secret: str,
        folder: str,
        allowed_extensions: Iterable[str],
        max_bytes: int,
        timeout: float = 30.0
    ):
        super().__init__(allowed_extensions, max_bytes)
        self.cloud_name = cloud_name
        self.api_key = api_key
        self.api_secret = api_secret
        self.folder = folder.strip("/")
        self.timeout = timeout

    def _options(self, **extra) -> dict:
        # Per-call credentials so several stores never share global SDK config
        return {
            "cloud_name": self.cloud_name,
            "api_key": self.api_key,
            "api_secret": self.api_secret,
            "timeout": self.timeout,
            **extra,
        }

    async def _save(self, upload: UploadFile, extension: str) -> StoredBlob:
        # Size is enforced while reading, so at most max_bytes is held in memory
        content = b"".join([chunk async for chunk in self.iter_chunks(upload)])

        try:
            result = await asyncio.to_thread(
                cloudinary.uploader.upload,
                io.BytesIO(content),
                **self._options(folder=self.folder, resource_type="image")
            )
            url = result["secure_url"]
        except (cloudinary.exceptions.Error, KeyError) as e:
            logger.exception("Cloudinary upload failed for %s: %s", upload.filename, str(e))
            raise DependencyError("Failed to upload image") from e

        logger.info("Uploaded image %s to Cloudinary folder %s", upload.filename, self.folder)
        return StoredBlob(url=url, key=result.get("public_id") or self.key_for_url(url))

    async def delete(self, key: str) -> None:
        try:
            result = await asyncio.to_thread(
                cloudinary.uploader.destroy,
                key,
                **self._options(resource_type="image")
            )
        except cloudinary.exceptions.Error as e:
            raise DependencyError(f"Failed to delete image {key}") from e

        # "not found" means it is already gone
        logger.info("Cloudinary destroy %s: %s", key, result.get("result"))

    def key_for_url(self, url: str) -> Optional[str]:
        if not url:
            return None
        filename = urlparse(url).path.rsplit("/", 1)[-1]
        public_id = filename.rsplit(".", 1)[0]
        if not public_id:
            return None
        return f"{self.folder}/{public_id}"
