"""Core routes for the Reelsmith API (root and health check)."""

from fastapi import APIRouter

from api.dependencies import get_studio
from api.schemas import HealthResponse, RootResponse

router = APIRouter(tags=["Core"])


@router.get(
    "/",
    response_model=RootResponse,
    summary="API root",
    description="Returns API name and version.",
)
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {"message": "Reelsmith API", "version": "1.0.0"}


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    description="Returns server health and whether the media engine is loaded.",
)
async def health() -> dict:
    """Health check endpoint."""
    return {"status": "healthy", "engine_loaded": get_studio().engine_loaded}
