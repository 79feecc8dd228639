from typing import Optional
from fastapi import Header, Request
from catalog.services.auth_service import AuthService
from catalog.storage.base import BlobStore


def get_blob_store(request: Request) -> BlobStore:
    """The blob store built at startup."""
    return request.app.state.blob_store


def bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer":
        return None
    return token.strip() or None


async def require_admin(authorization: Optional[str] = Header(None)) -> Optional[str]:
    """Gate mutating routes once an admin password is configured."""
    if not AuthService.login_enabled():
        return None
    return AuthService.verify_token(bearer_token(authorization))
