"""
Cab endpoints
=============

GET    /api/v1/cabs                         -- list the fleet
POST   /api/v1/cabs                         -- register a cab (IDLE)
GET    /api/v1/cabs/available?location_id=  -- IDLE cabs at a location
GET    /api/v1/cabs/{cab_id}                -- one cab
PUT    /api/v1/cabs/{cab_id}                -- change car / driver
DELETE /api/v1/cabs/{cab_id}                -- remove (not while on a trip)
PATCH  /api/v1/cabs/{cab_id}/location       -- move a cab
PATCH  /api/v1/cabs/{cab_id}/state          -- ground / release a cab
"""

from fastapi import APIRouter, Depends, HTTPException, Request, Response

from src.api.dependencies import get_dispatch, get_fleet, get_fleet_service
from src.api.errors import ERROR_RESPONSES, raise_for
from src.api.middleware import RATE_LIMIT, limiter
from src.api.schemas import (
    CabLocationRequest,
    CabRegisterRequest,
    CabResponse,
    CabStateRequest,
    CabUpdateRequest,
)
from src.infrastructure.repositories import FleetRepository
from src.services.dispatch import DispatchEngine
from src.services.fleet import FleetError, FleetService

router = APIRouter(prefix="/cabs", tags=["cabs"])


@router.get("", response_model=list[CabResponse], summary="List all cabs")
@limiter.limit(RATE_LIMIT)
async def list_cabs(request: Request, fleet: FleetRepository = Depends(get_fleet)):
    return [CabResponse.model_validate(c) for c in await fleet.cabs.get_all()]


@router.post(
    "",
    status_code=201,
    response_model=CabResponse,
    summary="Register a cab",
    description="Car, driver and location must already exist. New cabs start IDLE.",
)
@limiter.limit(RATE_LIMIT)
async def register_cab(
    request: Request,
    body: CabRegisterRequest,
    service: FleetService = Depends(get_fleet_service),
):
    try:
        cab = await service.register_cab(body.car_id, body.driver_id, body.location_id)
    except FleetError as exc:
        raise_for(exc, not_found_status=422)
    return CabResponse.model_validate(cab)


@router.get(
    "/available",
    response_model=list[CabResponse],
    summary="IDLE cabs at a location",
)
@limiter.limit(RATE_LIMIT)
async def available_cabs(
    request: Request,
    location_id: int,
    dispatch: DispatchEngine = Depends(get_dispatch),
):
    cabs = await dispatch.get_available_cabs_at_location(location_id)
    return [CabResponse.model_validate(c) for c in cabs]


@router.get("/{cab_id}", response_model=CabResponse, summary="Get a cab")
@limiter.limit(RATE_LIMIT)
async def get_cab(
    request: Request, cab_id: int, fleet: FleetRepository = Depends(get_fleet)
):
    cab = await fleet.cabs.get_by_id(cab_id)
    if cab is None:
        raise HTTPException(status_code=404, detail="Cab not found")
    return CabResponse.model_validate(cab)


@router.put(
    "/{cab_id}",
    response_model=CabResponse,
    summary="Change car / driver",
    responses=ERROR_RESPONSES,
)
@limiter.limit(RATE_LIMIT)
async def update_cab(
    request: Request,
    cab_id: int,
    body: CabUpdateRequest,
    service: FleetService = Depends(get_fleet_service),
):
    try:
        cab = await service.reassign_cab(cab_id, body.car_id, body.driver_id)
    except FleetError as exc:
        raise_for(exc)
    return CabResponse.model_validate(cab)


@router.delete(
    "/{cab_id}",
    status_code=204,
    summary="Remove a cab",
    responses=ERROR_RESPONSES,
)
@limiter.limit(RATE_LIMIT)
async def delete_cab(
    request: Request,
    cab_id: int,
    service: FleetService = Depends(get_fleet_service),
):
    try:
        await service.remove_cab(cab_id)
    except FleetError as exc:
        raise_for(exc)
    return Response(status_code=204)


@router.patch(
    "/{cab_id}/location", response_model=CabResponse, summary="Move a cab"
)
@limiter.limit(RATE_LIMIT)
async def change_location(
    request: Request,
    cab_id: int,
    body: CabLocationRequest,
    fleet: FleetRepository = Depends(get_fleet),
    dispatch: DispatchEngine = Depends(get_dispatch),
):
    if not await dispatch.change_cab_location(cab_id, body.location_id):
        raise HTTPException(status_code=404, detail="Cab or location not found")
    return CabResponse.model_validate(await fleet.cabs.get_by_id(cab_id))


@router.patch(
    "/{cab_id}/state",
    response_model=CabResponse,
    summary="Ground or release a cab",
    description=(
        "Administrative transitions only: IDLE <-> GROUNDED and "
        "ON_TRIP -> GROUNDED.  Returns 409 for any other transition."
    ),
)
@limiter.limit(RATE_LIMIT)
async def change_state(
    request: Request,
    cab_id: int,
    body: CabStateRequest,
    fleet: FleetRepository = Depends(get_fleet),
    dispatch: DispatchEngine = Depends(get_dispatch),
):
    if await fleet.cabs.get_by_id(cab_id) is None:
        raise HTTPException(status_code=404, detail="Cab not found")
    if not await dispatch.change_cab_state(cab_id, body.work_state):
        raise HTTPException(
            status_code=409,
            detail=f"Cab {cab_id} cannot change to {body.work_state.value}",
        )
    return CabResponse.model_validate(await fleet.cabs.get_by_id(cab_id))
