"""
Main FastAPI application for the Pollution Report API
"""

import time
import uuid
from contextlib import asynccontextmanager
from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware

from .core.config import settings
from .core.logging_config import get_logger
from .core.exceptions import (
    PollutionReportException,
    http_exception_handler,
    pollution_report_exception_handler,
    general_exception_handler,
)
from .services.blob_store import blob_store
from .services.redis_service import redis_service
from .api import analytics, barangays, events, health, notifications, reports, users

logger = get_logger("main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager - handles startup and shutdown"""
    # Startup
    logger.info(f"🚀 Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"🌍 Environment: {settings.environment}")
    logger.info(
        f"🔧 Configuration: {settings.upload_mode} uploads, max {settings.max_files} images, "
        f"{settings.image_target_min_kb}-{settings.image_target_max_kb}KB target"
    )

    if not redis_service.is_connected():
        logger.warning("⚠️ Redis unavailable - report endpoints will fail until it is reachable")
    if blob_store.get_health_status().get("status") == "not_configured":
        logger.warning("⚠️ Blob storage not configured - submissions will fail")

    yield

    # Shutdown
    logger.info("🛑 Shutting down application...")
    logger.info("✅ Shutdown complete")


# Create FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Municipal pollution reports: photo submission, admin review and analytics",
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=settings.cors_methods,
    allow_headers=settings.cors_headers,
)

# Add exception handlers
app.add_exception_handler(Exception, general_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(PollutionReportException, pollution_report_exception_handler)

# Include API routers
app.include_router(health.router)
app.include_router(reports.router)
app.include_router(analytics.router)
app.include_router(barangays.router)
app.include_router(users.router)
app.include_router(notifications.router)
app.include_router(events.router)


# Add structured request logging middleware
@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log incoming requests with structured logging"""
    start_time = time.time()

    # Generate request ID for correlation
    request_id = str(uuid.uuid4())[:8]
    request.state.request_id = request_id

    response = await call_next(request)

    process_time = time.time() - start_time
    success = 200 <= response.status_code < 400

    logger.info(
        "REQUEST_COMPLETED",
        extra={
            "request_id": request_id,
            "method": request.method,
            "path": request.url.path,
            "status_code": response.status_code,
            "duration_ms": round(process_time * 1000, 2),
            "success": success,
            "user_agent": request.headers.get("user-agent", "unknown"),
            "client_ip": request.client.host if request.client else "unknown"
        }
    )

    # Add request ID to response headers for debugging
    response.headers["X-Request-ID"] = request_id

    return response


if __name__ == "__main__":
    import uvicorn

    logger.info(f"🚀 Starting server on {settings.host}:{settings.port}")

    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
        access_log=True,
        reload=settings.debug,
    )
