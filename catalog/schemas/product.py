from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional
from datetime import datetime, timezone
from catalog.models.product import DEFAULT_CATEGORY


class ProductBase(BaseModel):
    name: str = Field(..., min_length=1, description="Product name")
    price: float = Field(..., ge=0, allow_inf_nan=False, description="Price, currency-agnostic")
    description: str = Field(..., min_length=1, description="Product description")
    category: str = Field(DEFAULT_CATEGORY, description="Free-text category")


class ProductCreate(ProductBase):
    model_config = ConfigDict(str_strip_whitespace=True)

    @field_validator("category", mode="before")
    @classmethod
    def default_category(cls, value):
        if value is None or not str(value).strip():
            return DEFAULT_CATEGORY
        return value


class ProductUpdate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: Optional[str] = Field(None, min_length=1)
    price: Optional[float] = Field(None, ge=0, allow_inf_nan=False)
    description: Optional[str] = Field(None, min_length=1)
    category: Optional[str] = None

    @field_validator("category", mode="before")
    @classmethod
    def blank_category(cls, value):
        if value is not None and not str(value).strip():
            return DEFAULT_CATEGORY
        return value


class ProductResponse(BaseModel):
    id: str
    name: str
    price: float
    description: str
    category: str
    image: Optional[str] = None
    created_at: datetime = Field(..., serialization_alias="createdAt")

    @field_validator("created_at")
    @classmethod
    def assume_utc(cls, value: datetime) -> datetime:
        # SQLite drops the offset on timestamps written in UTC
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    model_config = {"from_attributes": True}


class PurchaseLinkResponse(BaseModel):
    url: str
    message: str


class MessageResponse(BaseModel):
    message: str


class HealthResponse(BaseModel):
    status: str
    timestamp: datetime


class ErrorResponse(BaseModel):
    error: str
