import asyncio
import logging
import re
from typing import Optional, List
from urllib.parse import quote
from fastapi import UploadFile
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from catalog.config import settings
from catalog.errors import (
    CatalogError,
    ValidationError,
    NotFound,
    DependencyError,
    DependencyTimeout,
)
from catalog.models.product import Product
from catalog.repositories.product_repository import ProductRepository
from catalog.schemas.product import ProductCreate, ProductUpdate
from catalog.storage.base import BlobStore, StoredBlob

logger = logging.getLogger(__name__)

REQUIRED_FIELDS_MESSAGE = "Name, price, and description are required"
PRODUCT_NOT_FOUND = "Product not found"


def _is_blank(value: Optional[str]) -> bool:
    return value is None or not str(value).strip()


def _validation_message(error: PydanticValidationError) -> str:
    """Turn the first pydantic error into a sentence for the client."""
    first = error.errors()[0]
    field = str(first["loc"][0]) if first.get("loc") else "input"
    if field == "price":
        return "Price must be a non-negative number"
    if field in ("name", "description"):
        return f"{field.capitalize()} must not be empty"
    return f"Invalid {field}: {first['msg']}"


def format_price(price: float) -> str:
    """Thousands-separated price without trailing zero decimals, e.g. 150,000 or 1,499.5."""
    return f"{price:,.2f}".rstrip("0").rstrip(".")


async def _store_image(blob_store: BlobStore, image: UploadFile) -> StoredBlob:
    try:
        return await asyncio.wait_for(
            blob_store.store(image),
            timeout=settings.blob_timeout_seconds
        )
    except asyncio.TimeoutError as e:
        logger.error(
            "Image upload %s exceeded %.1fs", image.filename, settings.blob_timeout_seconds
        )
        raise DependencyTimeout("Image upload timed out") from e
    except CatalogError:
        raise
    except Exception as e:
        logger.exception("Failed to store image %s: %s", image.filename, str(e))
        raise DependencyError("Failed to store image") from e


async def _discard_image(blob_store: BlobStore, url: str) -> None:
    """Best-effort blob removal; failures are logged and never raised."""
    key = blob_store.key_for_url(url)
    if not key:
        logger.warning("No storage key for image %s, leaving it in place", url)
        return
    try:
        await blob_store.delete(key)
    except Exception as e:
        logger.warning("Failed to delete image %s: %s", key, str(e))


class ProductService:
    """Product operations exposed by the API."""

    @staticmethod
    def validate_create(
        name: Optional[str],
        price: Optional[str],
        description: Optional[str],
        category: Optional[str] = None
    ) -> ProductCreate:
        if _is_blank(name) or _is_blank(price) or _is_blank(description):
            raise ValidationError(REQUIRED_FIELDS_MESSAGE)
        try:
            return ProductCreate(
                name=name,
                price=str(price).strip(),
                description=description,
                category=category,
            )
        except PydanticValidationError as e:
            raise ValidationError(_validation_message(e)) from e

    @staticmethod
    def validate_update(
        name: Optional[str] = None,
        price: Optional[str] = None,
        description: Optional[str] = None,
        category: Optional[str] = None
    ) -> dict:
        """Validate the provided subset of fields; omitted ones stay unset."""
        provided = {
            key: value
            for key, value in (
                ("name", name),
                ("price", price.strip() if isinstance(price, str) else price),
                ("description", description),
                ("category", category),
            )
            if value is not None
        }
        try:
            return ProductUpdate(**provided).model_dump(exclude_unset=True)
        except PydanticValidationError as e:
            raise ValidationError(_validation_message(e)) from e

    @staticmethod
    async def list_products(session: AsyncSession) -> List[Product]:
        try:
            return await ProductRepository.list_all(session)
        except SQLAlchemyError as e:
            logger.exception("Failed to fetch products: %s", str(e))
            raise DependencyError("Failed to fetch products") from e

    @staticmethod
    async def get_product(session: AsyncSession, product_id: str) -> Product:
        try:
            product = await ProductRepository.get_by_id(session, product_id)
        except SQLAlchemyError as e:
            logger.exception("Failed to fetch product %s: %s", product_id, str(e))
            raise DependencyError("Failed to fetch product") from e
        if not product:
            raise NotFound(PRODUCT_NOT_FOUND)
        return product

    @staticmethod
    async def create_product(
        session: AsyncSession,
        blob_store: BlobStore,
        product_data: ProductCreate,
        image: Optional[UploadFile] = None
    ) -> Product:
        """Store the image (if any), then persist the product."""
        fields = product_data.model_dump()
        stored = None
        if image is not None:
            stored = await _store_image(blob_store, image)
        fields["image"] = stored.url if stored else None

        try:
            product = await ProductRepository.create(session, fields)
        except SQLAlchemyError as e:
            logger.exception("Failed to add product %r: %s", fields["name"], str(e))
            if stored:
                await _discard_image(blob_store, stored.url)
            raise DependencyError("Failed to add product") from e

        logger.info("Created product id=%s name=%r image=%s", product.id, product.name, product.image)
        return product

    @staticmethod
    async def update_product(
        session: AsyncSession,
        blob_store: BlobStore,
        product_id: str,
        update_data: dict,
        image: Optional[UploadFile] = None
    ) -> Product:
        """Merge fields into a product; a new image replaces and removes the old one."""
        existing = await ProductService.get_product(session, product_id)
        previous_image = existing.image

        stored = None
        if image is not None:
            stored = await _store_image(blob_store, image)
            update_data = {**update_data, "image": stored.url}

        try:
            product = await ProductRepository.update_by_id(session, product_id, update_data)
        except SQLAlchemyError as e:
            logger.exception("Failed to update product %s: %s", product_id, str(e))
            if stored:
                await _discard_image(blob_store, stored.url)
            raise DependencyError("Failed to update product") from e

        if not product:
            if stored:
                await _discard_image(blob_store, stored.url)
            raise NotFound(PRODUCT_NOT_FOUND)

        if stored and previous_image and previous_image != stored.url:
            await _discard_image(blob_store, previous_image)

        logger.info("Updated product id=%s fields=%s", product_id, sorted(update_data))
        return product

    @staticmethod
    async def delete_product(
        session: AsyncSession,
        blob_store: BlobStore,
        product_id: str
    ) -> dict:
        try:
            product = await ProductRepository.delete_by_id(session, product_id)
        except SQLAlchemyError as e:
            logger.exception("Failed to delete product %s: %s", product_id, str(e))
            raise DependencyError("Failed to delete product") from e
        if not product:
            raise NotFound(PRODUCT_NOT_FOUND)

        # The record is already gone; a leftover blob is logged, not reported
        if product.image:
            await _discard_image(blob_store, product.image)

        logger.info("Deleted product id=%s", product_id)
        return {"message": "Product deleted successfully"}

    @staticmethod
    async def purchase_link(session: AsyncSession, product_id: str) -> dict:
        """WhatsApp link the storefront uses to start a purchase."""
        if not settings.whatsapp_number:
            raise ValidationError("Purchase link is not configured")
        product = await ProductService.get_product(session, product_id)

        number = re.sub(r"\D", "", settings.whatsapp_number)
        message = (
            f"Hi! I'm interested in the {product.name} for "
            f"{settings.currency_symbol}{format_price(product.price)}. Is it available?"
        )
        return {
            "url": f"https://wa.me/{number}?text={quote(message, safe='')}",
            "message": message,
        }
