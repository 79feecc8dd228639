from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import AsyncIterator, Iterable, Optional
from fastapi import UploadFile
from catalog.errors import ValidationError

GENERIC_CONTENT_TYPES = {"application/octet-stream", "binary/octet-stream"}


def _human_size(num_bytes: int) -> str:
    if num_bytes >= 1024 * 1024:
        return f"{num_bytes / (1024 * 1024):g} MB"
    return f"{num_bytes} bytes"


@dataclass
class StoredBlob:
    url: str
    key: str


class BlobStore(ABC):
    """Storage for product images.

    Subclasses write the bytes somewhere and hand back a public URL plus
    the key needed to delete them later. Type and size checks live here so
    every backend rejects the same uploads.
    """

    chunk_size = 64 * 1024

    def __init__(self, allowed_extensions: Iterable[str], max_bytes: int):
        self.allowed_extensions = {ext.lower().lstrip(".") for ext in allowed_extensions}
        self.max_bytes = max_bytes

    async def store(self, upload: UploadFile) -> StoredBlob:
        extension = self.check_type(upload)
        return await self._save(upload, extension)

    def check_type(self, upload: UploadFile) -> str:
        """Return the lower-cased extension of an acceptable upload."""
        extension = PurePosixPath(upload.filename or "").suffix.lower().lstrip(".")
        if extension not in self.allowed_extensions:
            allowed = ", ".join(sorted(self.allowed_extensions))
            raise ValidationError(f"Image must be one of: {allowed}")

        content_type = (upload.content_type or "").lower()
        if content_type and content_type not in GENERIC_CONTENT_TYPES and not content_type.startswith("image/"):
            raise ValidationError(f"Unsupported content type '{content_type}'")
        return extension

    async def iter_chunks(self, upload: UploadFile) -> AsyncIterator[bytes]:
        """Yield the upload in chunks, failing once it grows past max_bytes."""
        total = 0
        while True:
            chunk = await upload.read(self.chunk_size)
            if not chunk:
                break
            total += len(chunk)
            if total > self.max_bytes:
                raise ValidationError(f"Image exceeds the maximum size of {_human_size(self.max_bytes)}")
            yield chunk
        if total == 0:
            raise ValidationError("Image file is empty")

    @abstractmethod
    async def _save(self, upload: UploadFile, extension: str) -> StoredBlob:
        pass

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove a blob. Deleting a missing blob is not an error."""

    @abstractmethod
    def key_for_url(self, url: str) -> Optional[str]:
        """Derive the delete key from a URL this store returned, or None."""
