"""
Trip endpoints
==============

GET    /api/v1/trips                      -- list trips
POST   /api/v1/trips                      -- create an unassigned trip
POST   /api/v1/trips/book                 -- create a trip and book a cab
GET    /api/v1/trips/{trip_id}            -- one trip
DELETE /api/v1/trips/{trip_id}            -- remove (not while being served)
POST   /api/v1/trips/{trip_id}/book       -- book a cab for an existing trip
POST   /api/v1/trips/{trip_id}/complete   -- finish a trip, release its cab
"""

from fastapi import APIRouter, Depends, HTTPException, Request, Response

from src.api.dependencies import get_dispatch, get_fleet, get_fleet_service
from src.api.errors import ERROR_RESPONSES, raise_for
from src.api.middleware import RATE_LIMIT, limiter
from src.api.schemas import BookingResponse, CabResponse, TripRequest, TripResponse
from src.infrastructure.repositories import FleetRepository
from src.services.dispatch import DispatchEngine
from src.services.fleet import FleetError, FleetService

router = APIRouter(prefix="/trips", tags=["trips"])


def _booking(trip, cab) -> BookingResponse:
    return BookingResponse(
        trip=TripResponse.model_validate(trip), cab=CabResponse.model_validate(cab)
    )


@router.get("", response_model=list[TripResponse], summary="List all trips")
@limiter.limit(RATE_LIMIT)
async def list_trips(request: Request, fleet: FleetRepository = Depends(get_fleet)):
    return [TripResponse.model_validate(t) for t in await fleet.trips.get_all()]


@router.post(
    "",
    status_code=201,
    response_model=TripResponse,
    summary="Create a trip request",
    description="The trip starts IN_PROGRESS with no cab assigned.",
)
@limiter.limit(RATE_LIMIT)
async def create_trip(
    request: Request,
    body: TripRequest,
    service: FleetService = Depends(get_fleet_service),
):
    try:
        trip = await service.create_trip(body.from_location_id, body.to_location_id)
    except FleetError as exc:
        raise_for(exc, not_found_status=422)
    return TripResponse.model_validate(trip)


@router.post(
    "/book",
    status_code=201,
    response_model=BookingResponse,
    summary="Book a cab for a new trip",
    description=(
        "Creates the trip, then assigns the longest-idle cab at the pickup "
        "location.  If no cab can be booked the trip is discarded and 409 "
        "is returned."
    ),
)
@limiter.limit(RATE_LIMIT)
async def book_trip(
    request: Request,
    body: TripRequest,
    service: FleetService = Depends(get_fleet_service),
):
    try:
        trip, cab = await service.book_trip(body.from_location_id, body.to_location_id)
    except FleetError as exc:
        raise_for(exc, not_found_status=422)
    return _booking(trip, cab)


@router.get("/{trip_id}", response_model=TripResponse, summary="Get a trip")
@limiter.limit(RATE_LIMIT)
async def get_trip(
    request: Request, trip_id: int, fleet: FleetRepository = Depends(get_fleet)
):
    trip = await fleet.trips.get_by_id(trip_id)
    if trip is None:
        raise HTTPException(status_code=404, detail="Trip not found")
    return TripResponse.model_validate(trip)


@router.delete(
    "/{trip_id}",
    status_code=204,
    summary="Remove a trip",
    responses=ERROR_RESPONSES,
)
@limiter.limit(RATE_LIMIT)
async def delete_trip(
    request: Request,
    trip_id: int,
    service: FleetService = Depends(get_fleet_service),
):
    try:
        await service.remove_trip(trip_id)
    except FleetError as exc:
        raise_for(exc)
    return Response(status_code=204)


@router.post(
    "/{trip_id}/book",
    response_model=BookingResponse,
    summary="Book a cab for an existing trip",
    responses=ERROR_RESPONSES,
)
@limiter.limit(RATE_LIMIT)
async def book_existing_trip(
    request: Request,
    trip_id: int,
    service: FleetService = Depends(get_fleet_service),
):
    try:
        trip, cab = await service.book_existing_trip(trip_id)
    except FleetError as exc:
        raise_for(exc)
    return _booking(trip, cab)


@router.post(
    "/{trip_id}/complete",
    response_model=TripResponse,
    summary="Complete a trip",
    description="Marks the trip COMPLETED and returns its cab to IDLE.",
)
@limiter.limit(RATE_LIMIT)
async def complete_trip(
    request: Request,
    trip_id: int,
    fleet: FleetRepository = Depends(get_fleet),
    dispatch: DispatchEngine = Depends(get_dispatch),
):
    if await fleet.trips.get_by_id(trip_id) is None:
        raise HTTPException(status_code=404, detail="Trip not found")
    if not await dispatch.complete_trip(trip_id):
        raise HTTPException(
            status_code=409, detail=f"Trip {trip_id} cannot be completed"
        )
    return TripResponse.model_validate(await fleet.trips.get_by_id(trip_id))
