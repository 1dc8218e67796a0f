"""
Health check endpoint
"""
from fastapi import APIRouter

from teamreg.models import utcnow


router = APIRouter(prefix="/api", tags=["health"])


@router.get("/health")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "ok",
        "timestamp": utcnow().isoformat(),
    }
