"""Liveness check."""

from fastapi import APIRouter

router = APIRouter()


@router.get("/health", operation_id="healthCheck")
async def health_check() -> dict[str, str]:
    """Report that the API process is up. Dependencies are not checked."""
    return {"status": "healthy", "service": "cpq-backend"}
