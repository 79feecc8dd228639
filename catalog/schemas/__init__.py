from catalog.schemas.product import (
    ProductCreate,
    ProductUpdate,
    ProductResponse,
    PurchaseLinkResponse,
    MessageResponse,
    HealthResponse,
    ErrorResponse,
)
from catalog.schemas.auth import LoginRequest, TokenResponse, VerifyResponse

__all__ = [
    "ProductCreate",
    "ProductUpdate",
    "ProductResponse",
    "PurchaseLinkResponse",
    "MessageResponse",
    "HealthResponse",
    "ErrorResponse",
    "LoginRequest",
    "TokenResponse",
    "VerifyResponse",
]
