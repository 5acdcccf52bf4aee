"""
Admin / observability endpoints
===============================

GET /api/v1/admin/active-trips -- trips currently being served, with their cab
GET /api/v1/admin/health       -- simple health check
"""

from fastapi import APIRouter, Depends, Request

from src.api.dependencies import get_fleet
from src.api.middleware import RATE_LIMIT, limiter
from src.api.schemas import BookingResponse, CabResponse, HealthResponse, TripResponse
from src.infrastructure.repositories import FleetRepository

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get(
    "/active-trips",
    response_model=list[BookingResponse],
    summary="List in-progress trips with their assigned cabs",
)
@limiter.limit(RATE_LIMIT)
async def get_active_trips(
    request: Request,
    fleet: FleetRepository = Depends(get_fleet),
):
    cabs = {c.id: c for c in await fleet.cabs.get_all()}
    result: list[BookingResponse] = []
    for trip in await fleet.trips.get_all():
        if not trip.is_open or trip.assigned_cab_id not in cabs:
            continue
        result.append(
            BookingResponse(
                trip=TripResponse.model_validate(trip),
                cab=CabResponse.model_validate(cabs[trip.assigned_cab_id]),
            )
        )
    return result


@router.get("/health", response_model=HealthResponse, summary="Health check")
async def health():
    return HealthResponse()
