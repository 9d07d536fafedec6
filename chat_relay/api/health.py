from datetime import datetime, timezone

from fastapi import APIRouter, HTTPException, Request

router = APIRouter()


@router.get("/health")
async def health_check(request: Request):
    """Application health check endpoint"""
    manager = request.app.state.manager
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc),
        "connections": manager.connection_count,
        "rooms": manager.directory.room_count,
        "service": request.app.state.settings.app_name,
    }


@router.get("/health/ready")
async def readiness_check(request: Request):
    """Kubernetes readiness probe endpoint"""
    manager = request.app.state.manager
    if manager.connection_count >= manager.settings.max_connections:
        raise HTTPException(
            status_code=503,
            detail="Service not ready - connection limit reached"
        )

    return {"status": "ready"}


@router.get("/health/live")
async def liveness_check():
    """Kubernetes liveness probe endpoint"""
    return {"status": "alive", "timestamp": datetime.now(timezone.utc)}
