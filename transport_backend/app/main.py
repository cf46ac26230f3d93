"""
FastAPI Application Entry Point.

This is the main application file for the Transport Manager Backend.
"""

import logging
from contextlib import asynccontextmanager
from fastapi import Depends, FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from transport_backend.app.core.config import settings
from transport_backend.app.api.v1.router import router as api_v1_router
from transport_backend.app.api.external import router as external_router
from transport_backend.app.api.pages import router as pages_router
from transport_backend.app.core.gate import AccessGateMiddleware
from transport_backend.app.core.observability import ObservabilityMiddleware, configure_logging
from transport_backend.app.core.redis_client import close_redis, get_redis, ping_redis
from transport_backend.app.db.session import create_tables, engine
from transport_backend.app.core.exceptions import (
    AppException,
    app_exception_handler,
    http_exception_handler,
    validation_exception_handler,
    generic_exception_handler
)

# Import models to ensure they are registered with Base
from transport_backend.app.models.user import User
from transport_backend.app.models.profiles import DriverProfile, ClientProfile
from transport_backend.app.models.vehicle import Vehicle
from transport_backend.app.models.trip import Trip
from transport_backend.app.models.shipment import Shipment
from transport_backend.app.models.expense import Expense
from transport_backend.app.models.issue import Issue
from transport_backend.app.models.notification import Notification

logger = logging.getLogger("transport")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for application startup/shutdown.

    1. Configures logging.
    2. Creates database tables on startup.
    3. Closes the Redis and database pools on shutdown.
    """
    configure_logging()
    await create_tables()
    logger.info("%s %s started", settings.app_name, settings.api_version)
    yield
    await close_redis()
    await engine.dispose()


# Initialize FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.api_version,
    debug=settings.debug,
    description="Transport management backend: trips, shipments, fleet and role dashboards",
    lifespan=lifespan,
)

# Last added runs first; redirects from the gate are still logged
app.add_middleware(AccessGateMiddleware)
app.add_middleware(ObservabilityMiddleware)

# Register global exception handlers
app.add_exception_handler(AppException, app_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)


@app.get("/health", tags=["Health"])
async def health_check(redis=Depends(get_redis)):
    """
    Health check endpoint.

    Returns:
        dict: Status and application information
    """
    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "version": settings.api_version,
        "redis": await ping_redis(redis),
    }


# Include API v1 router
app.include_router(api_v1_router, prefix=f"/{settings.api_version}")
app.include_router(external_router)
app.include_router(pages_router)
