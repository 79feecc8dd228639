from catalog.config import Settings
from catalog.storage.base import BlobStore, StoredBlob
from catalog.storage.local import LocalBlobStore
from catalog.storage.cloudinary import CloudinaryBlobStore

__all__ = [
    "BlobStore",
    "StoredBlob",
    "LocalBlobStore",
    "CloudinaryBlobStore",
    "build_blob_store",
]


def build_blob_store(settings: Settings) -> BlobStore:
    """Create the blob store selected by settings.blob_backend."""
    backend = settings.blob_backend.lower()

    if backend == "local":
        return LocalBlobStore(
            directory=settings.upload_dir,
            url_prefix=settings.public_base_url.rstrip("/") + settings.uploads_url_path,
            allowed_extensions=settings.allowed_image_extensions,
            max_bytes=settings.max_upload_bytes,
        )

    if backend == "cloudinary":
        missing = [
            name for name in ("cloudinary_cloud_name", "cloudinary_api_key", "cloudinary_api_secret")
            if not getattr(settings, name)
        ]
        if missing:
            raise ValueError(f"Cloudinary backend requires: {', '.join(missing)}")
        return CloudinaryBlobStore(
            cloud_name=settings.cloudinary_cloud_name,
            api_key=settings.cloudinary_api_key,
            api_secret=settings.cloudinary_api_secret,
            folder=settings.cloudinary_folder,
            allowed_extensions=settings.allowed_image_extensions,
            max_bytes=settings.max_upload_bytes,
            timeout=settings.blob_timeout_seconds,
        )

    raise ValueError(f"Unknown blob backend '{settings.blob_backend}'")
