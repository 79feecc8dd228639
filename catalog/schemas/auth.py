from pydantic import BaseModel, Field
from datetime import datetime


class LoginRequest(BaseModel):
    username: str = Field(..., description="Admin username")
    password: str = Field(..., description="Admin password")


class TokenResponse(BaseModel):
    token: str
    expires_at: datetime = Field(..., serialization_alias="expiresAt")


class VerifyResponse(BaseModel):
    valid: bool
    username: str
