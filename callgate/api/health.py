"""Health endpoint."""

from fastapi import APIRouter

from callgate.utils.timestamps import utcnow

router = APIRouter()


@router.get("/health")
async def health():
    """Liveness probe."""
    return {"ok": True, "timestamp": utcnow().isoformat()}
