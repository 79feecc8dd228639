from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional
from catalog.api.dependencies import get_blob_store, require_admin
from catalog.database import get_db
from catalog.schemas.product import (
    ProductResponse,
    PurchaseLinkResponse,
    MessageResponse,
    ErrorResponse,
)
from catalog.services.product_service import ProductService
from catalog.storage.base import BlobStore

router = APIRouter(
    prefix="/api/products",
    tags=["products"],
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
    },
)


def _uploaded(image: Optional[UploadFile]) -> Optional[UploadFile]:
    # Browsers submit an empty file part when no image was picked
    if image is None or not image.filename:
        return None
    return image


def _submitted(form, key: str, value: Optional[str]) -> Optional[str]:
    # FastAPI maps an empty form value to the None default; keep "" when the field was sent
    if value is None and isinstance(form.get(key), str):
        return form.get(key)
    return value


@router.get("",response_model=List[ProductResponse])
async def list_products(db: AsyncSession = Depends(get_db)):
    """List every product."""
    products = await ProductService.list_products(db)
    return [ProductResponse.model_validate(p) for p in products]


@router.get("/{product_id}", response_model=ProductResponse)
async def get_product(
    product_id: str,
    db: AsyncSession = Depends(get_db)
):
    """Get a single product by ID."""
    product = await ProductService.get_product(db, product_id)
    return ProductResponse.model_validate(product)


@router.get("/{product_id}/purchase-link", response_model=PurchaseLinkResponse)
async def get_purchase_link(
    product_id: str,
    db: AsyncSession = Depends(get_db)
):
    """Messaging link a buyer follows to ask for the product."""
    return await ProductService.purchase_link(db, product_id)


@router.post("", response_model=ProductResponse, status_code=201)
async def create_product(
    name: Optional[str] = Form(None),
    price: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    category: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
    db: AsyncSession = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
    admin: Optional[str] = Depends(require_admin)
):
    """Create a product from a multipart form with an optional image."""
    product_data = ProductService.validate_create(name, price, description, category)
    product = await ProductService.create_product(
        db, blob_store, product_data, _uploaded(image)
    )
    return ProductResponse.model_validate(product)


@router.put("/{product_id}", response_model=ProductResponse)
async def update_product(
    request: Request,
    product_id: str,
    name: Optional[str] = Form(None),
    price: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    category: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
    db: AsyncSession = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
    admin: Optional[str] = Depends(require_admin)
):
    """Update any subset of fields, optionally replacing the image."""
    form = await request.form()
    update_data = ProductService.validate_update(
        _submitted(form, "name", name),
        _submitted(form, "price", price),
        _submitted(form, "description", description),
        _submitted(form, "category", category),
    )
    product = await ProductService.update_product(
        db, blob_store, product_id, update_data, _uploaded(image)
    )
    return ProductResponse.model_validate(product)


@router.delete("/{product_id}", response_model=MessageResponse)
async def delete_product(
    product_id: str,
    db: AsyncSession = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
    admin: Optional[str] = Depends(require_admin)
):
    """Delete a product and its image."""
    return await ProductService.delete_product(db, blob_store, product_id)
