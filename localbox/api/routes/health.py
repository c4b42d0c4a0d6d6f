"""
Health check route.
"""
from datetime import datetime, timezone

from fastapi import APIRouter

from localbox.api.dependencies import get_runtime
from localbox.api.exceptions import handle_route_exceptions
from localbox.api.models.schemas import HealthResponse

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
@handle_route_exceptions
async def health():
    return HealthResponse(
        status="ok",
        timestamp=datetime.now(timezone.utc).isoformat(),
        runtime=get_runtime().health(),
    )
