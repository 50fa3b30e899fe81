"""
FastAPI Application Entry Point.
Initializes the FastAPI app with middleware, CORS, routes and the
Socket.IO gateway.
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy import text

from app.config import settings
from app.core.cache import cache
from app.core.database import AsyncSessionLocal, engine
from app.core.exceptions import register_exception_handlers
from app.core.logging_config import setup_logging
from app.core.rate_limit import limiter
from app.core.websocket import connection_manager

setup_logging(settings.log_level, settings.log_format)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.
    Handles startup and shutdown events.
    """
    # Startup
    await cache.connect()
    await connection_manager.start()
    logger.info("Messaging server started (environment: %s)", settings.environment)
    yield
    # Shutdown
    await connection_manager.stop()
    await cache.disconnect()
    await engine.dispose()
    logger.info("Messaging server stopped")


# Initialize FastAPI application
app = FastAPI(
    title="Direct Messaging Server",
    description="FastAPI backend for one-to-one realtime messaging",
    version="1.0.0",
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
    lifespan=lifespan,
)

# Add rate limiter state and error handler
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

register_exception_handlers(app)


# CORS Middleware
# Note: For WebSocket connections, CORS is handled by Socket.IO itself (via cors_allowed_origins)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_allowed_origins_list(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Health Check Endpoints
@app.get("/health", tags=["Health"])
async def health_check():
    """Basic health check endpoint."""
    return JSONResponse(
        status_code=200,
        content={
            "status": "healthy",
            "environment": settings.environment,
            "active_sessions": len(connection_manager.registry),
        }
    )


@app.get("/health/ready", tags=["Health"])
async def readiness_check():
    """
    Readiness check endpoint.
    Verifies database and cache connectivity.
    """
    checks = {
        "database": False,
        "redis": "not_configured" if not settings.redis_url else False,
    }

    try:
        async with AsyncSessionLocal() as session:
            await session.execute(text("SELECT 1"))
            checks["database"] = True
    except Exception:
        logger.warning("Readiness check: database unavailable", exc_info=True)

    if settings.redis_url and cache.redis is not None:
        try:
            checks["redis"] = bool(await cache.redis.ping())
        except Exception:
            logger.warning("Readiness check: redis unavailable", exc_info=True)

    redis_ok = checks["redis"] == "not_configured" or checks["redis"] is True
    all_healthy = checks["database"] and redis_ok

    return JSONResponse(
        status_code=200 if all_healthy else 503,
        content={
            "status": "ready" if all_healthy else "not ready",
            "checks": checks,
        }
    )


# Include API routers
from app.api.v1 import messages  # noqa: E402

app.include_router(
    messages.router,
    prefix="/api/v1/messages",
    tags=["Messages"]
)

# Save reference to FastAPI app (for testing)
fastapi_app = app

# Wrap FastAPI inside Socket.IO ASGIApp - this becomes the final ASGI app
# Clients connect to: ws://host/socket.io/?EIO=4&transport=websocket
app = connection_manager.get_asgi_app(fastapi_app)
