"""Shared test fixtures and utilities."""

import asyncio
import os
import shutil
import tempfile
from datetime import datetime, timezone
from pathlib import Path

# Point the app at throwaway storage before it is imported
_TMP_DIR = Path(tempfile.mkdtemp(prefix="catalog-tests-"))
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TMP_DIR / 'test.db'}"
os.environ["UPLOAD_DIR"] = str(_TMP_DIR / "uploads")
os.environ["BLOB_BACKEND"] = "local"
os.environ["AUTO_CREATE_TABLES"] = "true"
os.environ.pop("ADMIN_PASSWORD", None)
os.environ.pop("WHATSAPP_NUMBER", None)

import pytest
from fastapi.testclient import TestClient

from catalog.api.dependencies import get_blob_store
from catalog.config import settings
from catalog.database import drop_tables
from catalog.main import app
from catalog.storage.local import LocalBlobStore

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 256


class RecordingBlobStore(LocalBlobStore):
    """Local store that remembers every store/delete call."""

    def __init__(self, directory: str):
        super().__init__(
            directory=directory,
            url_prefix=settings.uploads_url_path,
            allowed_extensions=settings.allowed_image_extensions,
            max_bytes=settings.max_upload_bytes,
        )
        self.stored = []
        self.deleted = []
        self.fail_delete = False

    async def store(self, upload):
        blob = await super().store(upload)
        self.stored.append(blob)
        return blob

    async def delete(self, key):
        self.deleted.append(key)
        if self.fail_delete:
            raise OSError("storage offline")
        await super().delete(key)


@pytest.fixture
def blob_store():
    return RecordingBlobStore(settings.upload_dir)


@pytest.fixture
def client(blob_store):
    """Test client with a fresh database and upload directory."""
    app.dependency_overrides[get_blob_store] = lambda: blob_store
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
    asyncio.run(drop_tables())
    shutil.rmtree(settings.upload_dir, ignore_errors=True)


def create_product(client, image=None, **fields):
    """POST a product; fields set to None are left out of the form."""
    data = {
        "name": "Phone X",
        "price": "150000",
        "description": "Good phone",
        "category": "smartphone",
    }
    data.update(fields)
    data = {key: value for key, value in data.items() if value is not None}
    files = {"image": image} if image else None
    return client.post("/api/products", data=data, files=files)


def png_upload(filename="photo.png"):
    return (filename, PNG_BYTES, "image/png")


def parse_timestamp(value: str) -> datetime:
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def stored_files():
    upload_dir = Path(settings.upload_dir)
    if not upload_dir.exists():
        return []
    return sorted(p.name for p in upload_dir.iterdir())
