"""
FastAPI Application Entry Point.

This is the main application file for the Parcel Delivery Backend.
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from backend.app.core.config import settings
from backend.app.core.context import AppContext
from backend.app.core.observability import ObservabilityMiddleware, configure_logging
from backend.app.core.redis_client import ping_redis
from backend.app.api.v1.router import router as api_v1_router
from backend.app.core.exceptions import (
    AppException,
    app_exception_handler,
    http_exception_handler,
    validation_exception_handler,
    generic_exception_handler
)

# Import models to ensure they are registered with Base
from backend.app.models.user import User
from backend.app.models.parcel import Parcel
from backend.app.models.delivery_agent_application import DeliveryAgentApplication
from backend.app.models.audit_log import AuditLog


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for application startup/shutdown.

    1. Builds the application context (creates tables, opens clients).
    2. Drains pending notifications and closes every resource on shutdown.
    """
    configure_logging(settings.log_level)
    app.state.context = await AppContext.start(settings)
    yield
    await app.state.context.close()


# Initialize FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.api_version,
    debug=settings.debug,
    description="Parcel booking, assignment and delivery tracking API",
    lifespan=lifespan,
)

app.add_middleware(ObservabilityMiddleware)

# Register global exception handlers
app.add_exception_handler(AppException, app_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)


@app.get("/health", tags=["Health"])
async def health_check(request: Request):
    """
    Health check endpoint.

    Returns:
        dict: Status, live viewer count and Redis reachability
    """
    context = request.app.state.context
    redis_ok = None
    if context.redis is not None:
        redis_ok = await ping_redis(context.redis)

    return {
        "status": "healthy" if redis_ok is not False else "degraded",
        "app_name": settings.app_name,
        "version": settings.api_version,
        "live_viewers": context.hub.connection_count,
        "redis": redis_ok,
    }


@app.get("/", tags=["Root"])
async def root():
    """
    Root endpoint.

    Returns:
        dict: Welcome message and API documentation links
    """
    return {
        "message": "Welcome to Parcel Delivery Backend API",
        "docs": "/docs",
        "health": "/health",
    }


# Include API router
app.include_router(api_v1_router, prefix=settings.api_prefix)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("backend.app.main:app", host=settings.host, port=settings.port)
