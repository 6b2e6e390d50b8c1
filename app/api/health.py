"""
Health check and status API endpoints
"""

import platform
from fastapi import APIRouter, Response

from ..core.config import settings
from ..core.logging_config import get_logger
from ..services.blob_store import blob_store
from ..services.event_service import event_service
from ..services.redis_service import redis_service

logger = get_logger("health_api")

router = APIRouter(prefix="", tags=["health"])


@router.get("/health")
async def health_check():
    """Health check with document store status"""
    try:
        redis_ok = redis_service.is_connected()
        return {
            "status": "healthy",
            "version": settings.app_version,
            "redis": "up" if redis_ok else "down"
        }
    except Exception as e:
        logger.error(f"Health check failed: {e}")
        return {
            "status": "degraded",
            "version": settings.app_version,
            "redis": "down",
            "error": str(e)
        }


@router.options("/health", include_in_schema=False)
async def health_options() -> Response:
    """Handle OPTIONS requests for health checks"""
    return Response(status_code=200)


@router.get("/")
async def root():
    """Root endpoint with basic service information"""
    return {
        "status": "ok",
        "service": settings.app_name.lower().replace(" ", "-"),
        "version": settings.app_version,
        "message": "FastAPI service is running",
        "endpoints": ["/health", "/status", "/reports", "/analytics", "/barangays", "/events"],
    }


@router.get("/status")
async def get_detailed_status():
    """Status of every backing service and the submission configuration"""
    return {
        "status": "healthy",
        "services": {
            "redis": redis_service.get_health_status(),
            "blob_store": blob_store.get_health_status(),
            "events": event_service.get_stats(),
        },
        "environment": {
            "platform": platform.system(),
            "python_version": platform.python_version(),
            "deployment_env": settings.environment,
        },
        "configuration": {
            "max_files": settings.max_files,
            "upload_mode": settings.upload_mode,
            "image_max_width": settings.image_max_width,
            "image_target_kb": [settings.image_target_min_kb, settings.image_target_max_kb],
        },
    }
