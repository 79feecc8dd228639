from typing import Optional
from fastapi import APIRouter, Header
from catalog.api.dependencies import bearer_token
from catalog.schemas.auth import LoginRequest, TokenResponse, VerifyResponse
from catalog.services.auth_service import AuthService

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/login", response_model=TokenResponse)
async def login(credentials: LoginRequest):
    """Exchange the admin credential for a session token."""
    token, expires_at = AuthService.login(credentials.username, credentials.password)
    return TokenResponse(token=token, expires_at=expires_at)


@router.get("/verify", response_model=VerifyResponse)
async def verify(authorization: Optional[str] = Header(None)):
    """Check a bearer token issued by /login."""
    username = AuthService.verify_token(bearer_token(authorization))
    return VerifyResponse(valid=True, username=username)
