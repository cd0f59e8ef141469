"""Health check endpoint — verifies backend + graph store and event bus connections."""

from fastapi import APIRouter

from backend.core import graph_client, redis_client

router = APIRouter()


@router.get("/health")
async def health_check():
    """Check backend status and connectivity to NebulaGraph and Redis."""
    nebula_ok = graph_client.check_connection()
    redis_ok = redis_client.check_connection()

    return {
        "status": "ok" if nebula_ok and redis_ok else "degraded",
        "services": {
            "nebula": "ok" if nebula_ok else "error",
            "redis": "ok" if redis_ok else "error",
        }
    }
