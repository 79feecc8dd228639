from datetime import datetime, timezone
from fastapi import APIRouter
from catalog.schemas.product import HealthResponse

router = APIRouter(prefix="/api", tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health():
    """Liveness check."""
    return HealthResponse(status="OK", timestamp=datetime.now(timezone.utc))
