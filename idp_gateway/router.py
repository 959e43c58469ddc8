"""
Routes owned by the front end itself; everything else belongs to the engine.
"""

from fastapi import APIRouter, HTTPException, Request, status
from idp_gateway.exceptions import BackendUnavailable

router = APIRouter()


@router.get("/healthz")
async def health_check(request: Request):
    """
    Liveness plus redis reachability.
    """
    try:
        await request.app.state.redis.ping()
    except BackendUnavailable as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"status": "unhealthy", "error": str(exc)},
        )
    return {"status": "healthy"}
