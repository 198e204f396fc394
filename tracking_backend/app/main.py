"""
FastAPI Application Entry Point.

This is the main application file for the Shipment Tracking Backend.
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI, HTTPException, Query
from fastapi.exceptions import RequestValidationError
from tracking_backend.app.core.config import settings
from tracking_backend.app.api.v1.router import router as api_v1_router
from tracking_backend.app.core.jwt import create_access_token
from tracking_backend.app.core.observability import ObservabilityMiddleware, configure_logging
from tracking_backend.app.core.redis_client import ping_redis
from tracking_backend.app.db.session import engine, Base
from tracking_backend.app.core.exceptions import (
    AppException,
    app_exception_handler,
    http_exception_handler,
    validation_exception_handler,
    generic_exception_handler
)
from tracking_backend.app.models.enums import ActorRole

# Import models to ensure they are registered with Base
from tracking_backend.app.models.order import Order
from tracking_backend.app.models.package import Package
from tracking_backend.app.models.tracking_event import TrackingEvent


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for application startup/shutdown.

    1. Configures logging.
    2. Creates database tables on startup.
    3. Disposes the engine on shutdown.
    """
    configure_logging(settings.log_level)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    await engine.dispose()

# Initialize FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.api_version,
    debug=settings.debug,
    description="Package status workflow for a three-region shipment pipeline",
    lifespan=lifespan,
)

app.add_middleware(ObservabilityMiddleware)

# Register global exception handlers
app.add_exception_handler(AppException, app_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)


@app.get("/health", tags=["Health"])
async def health_check():
    """
    Health check endpoint.

    Returns:
        dict: Status, application information and cache reachability
    """
    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "version": settings.api_version,
        "cache": "up" if await ping_redis() else "down",
    }


# Include API v1 router
app.include_router(api_v1_router, prefix=f"/{settings.api_version}")


@app.get("/", tags=["Root"])
async def root():
    """
    Root endpoint.

    Returns:
        dict: Welcome message and API documentation links
    """
    return {
        "message": "Welcome to the Shipment Tracking Backend API",
        "docs": "/docs",
        "health": "/health",
    }


@app.post("/auth/test-token", tags=["Authentication"])
async def generate_test_token(
    user_id: str = Query("agent-1"),
    username: str = Query("test_agent"),
    role: ActorRole = Query(ActorRole.ORIGIN_AGENT),
):
    """
    Generate a token asserting an actor identity.

    Only available with debug enabled; real tokens come from the identity provider.
    """
    if not settings.debug:
        raise HTTPException(status_code=404, detail="Not Found")

    token = create_access_token(data={"sub": username, "user_id": user_id, "role": role.value})
    return {
        "access_token": token,
        "token_type": "bearer",
        "user_id": user_id,
        "role": role.value,
    }
