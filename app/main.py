"""Main FastAPI application for Roadmap Progress Service."""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
import structlog
from prometheus_fastapi_instrumentator import Instrumentator

from app.core.config import settings
from app.core.logging import setup_logging
from app.core.database import init_db, get_db
from app.core.dependencies import get_redis_cache
from app.core.exceptions import ProgressServiceError
from app.routers import roadmaps, progress, gamification, analytics

# Setup structured logging
setup_logging()
logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle manager."""
    # Startup
    logger.info("Starting Roadmap Progress Service", version=settings.APP_VERSION)

    # Initialize database
    await init_db()

    # Store cache in app state
    app.state.redis_cache = await get_redis_cache()

    logger.info("Progress service initialized successfully")

    yield

    # Shutdown
    logger.info("Shutting down Roadmap Progress Service")


# Create FastAPI app
app = FastAPI(
    title="Roadmap Progress Service",
    description="Learning roadmaps, per-user progress tracking, achievements and analytics",
    version=settings.APP_VERSION,
    lifespan=lifespan,
    docs_url="/docs" if not settings.is_production() else None,
    redoc_url="/redoc" if not settings.is_production() else None,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Prometheus metrics
if settings.ENABLE_METRICS:
    Instrumentator().instrument(app).expose(app, endpoint="/metrics")


@app.exception_handler(ProgressServiceError)
async def progress_service_error_handler(request: Request, exc: ProgressServiceError):
    logger.warning(
        "Request rejected",
        path=request.url.path,
        error=exc.__class__.__name__,
        detail=exc.detail
    )
    return JSONResponse(content={"detail": exc.detail}, status_code=exc.status_code)


# Include routers
app.include_router(roadmaps.router, prefix="/api/roadmaps", tags=["roadmaps"])
app.include_router(analytics.router, prefix="/api/roadmaps", tags=["analytics"])
app.include_router(progress.router, prefix="/api/progress", tags=["progress"])
app.include_router(gamification.router, prefix="/api/gamification", tags=["gamification"])


@app.get("/", tags=["root"])
async def root():
    """Root endpoint."""
    return {
        "service": "Roadmap Progress Service",
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "status": "operational"
    }


@app.get("/health", tags=["health"])
async def health_check(request: Request):
    """Health check endpoint."""
    health_status = {
        "status": "healthy",
        "service": settings.SERVICE_NAME,
        "version": settings.APP_VERSION,
        "checks": {}
    }

    # Check database
    try:
        async for db in get_db():
            await db.execute(text("SELECT 1"))
            health_status["checks"]["database"] = "healthy"
    except Exception as e:
        health_status["checks"]["database"] = f"unhealthy: {str(e)}"
        health_status["status"] = "degraded"

    # Check cache
    try:
        if hasattr(request.app.state, "redis_cache"):
            await request.app.state.redis_cache.exists("health_check")
            health_status["checks"]["redis"] = "healthy"
    except Exception as e:
        health_status["checks"]["redis"] = f"unhealthy: {str(e)}"
        health_status["status"] = "degraded"

    status_code = 200 if health_status["status"] == "healthy" else 503
    return JSONResponse(content=health_status, status_code=status_code)


@app.get("/config", tags=["debug"])
async def get_config():
    """Get current configuration (development only)."""
    if settings.is_production():
        return JSONResponse(
            content={"error": "Not available in production"},
            status_code=403
        )

    return {
        "environment": settings.ENVIRONMENT,
        "progress": {
            "enforce_level_order": settings.ENFORCE_LEVEL_ORDER
        },
        "achievements": {
            "milestone_hunter_count": settings.MILESTONE_HUNTER_COUNT,
            "speed_demon_daily_challenges": settings.SPEED_DEMON_DAILY_CHALLENGES,
            "overachiever_challenges": settings.OVERACHIEVER_CHALLENGES
        },
        "analytics": {
            "recent_days": settings.ANALYTICS_RECENT_DAYS
        },
        "cache_ttl": settings.CACHE_TTL
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=settings.SERVICE_PORT,
        reload=settings.ENVIRONMENT == "development",
        log_config=None  # Use structlog instead
    )
