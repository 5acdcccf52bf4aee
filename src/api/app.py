"""
FastAPI application factory.

* Registers routes for cabs, trips, reference records, insights and admin.
* Creates missing record-store tables on startup via the lifespan hook.
* Applies rate-limiting middleware.
* Swagger / OpenAPI UI available at ``/docs``.
"""

from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from src.api.middleware import limiter
from src.api.routes import admin, cabs, insights, reference, trips
from src.config import settings
from src.infrastructure.database import init_models

logging.basicConfig(level=settings.log_level)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Make sure the record store exists before serving requests."""
    await init_models()
    yield


def create_app() -> FastAPI:
    app = FastAPI(
        title="Cab Dispatch API",
        description=(
            "Manages a fleet of cabs, assigns the longest-idle cab at the "
            "pickup location to each trip request, and tracks trip "
            "completion."
        ),
        version="1.0.0",
        lifespan=lifespan,
    )

    # Rate limiter
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    # Routers
    app.include_router(cabs.router, prefix="/api/v1")
    app.include_router(trips.router, prefix="/api/v1")
    app.include_router(reference.cars, prefix="/api/v1")
    app.include_router(reference.drivers, prefix="/api/v1")
    app.include_router(reference.locations, prefix="/api/v1")
    app.include_router(insights.router, prefix="/api/v1")
    app.include_router(admin.router, prefix="/api/v1")

    return app
