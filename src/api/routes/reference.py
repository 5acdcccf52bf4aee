"""
Reference record endpoints (cars, drivers, locations)
=====================================================

Each collection gets the same five routes:

GET    /api/v1/{collection}         -- list
POST   /api/v1/{collection}         -- create (id assigned by repository)
GET    /api/v1/{collection}/{id}    -- one record
PUT    /api/v1/{collection}/{id}    -- replace fields
DELETE /api/v1/{collection}/{id}    -- remove
"""

from typing import Callable

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from pydantic import BaseModel

from src.api.dependencies import get_fleet
from src.api.middleware import RATE_LIMIT, limiter
from src.api.schemas import (
    CarRequest,
    CarResponse,
    DriverRequest,
    DriverResponse,
    LocationRequest,
    LocationResponse,
)
from src.domain.entities import Car, Driver, Location
from src.infrastructure.repositories import EntityRepository, FleetRepository


def _add_route(
    router: APIRouter, method: str, path: str, endpoint: Callable, name: str, **kwargs
) -> None:
    # slowapi keys its counters (and FastAPI its operation ids) on the name
    endpoint.__name__ = endpoint.__qualname__ = name
    router.add_api_route(
        path, limiter.limit(RATE_LIMIT)(endpoint), methods=[method], name=name, **kwargs
    )


def build_reference_router(
    collection: str,
    entity_type: type,
    request_schema: type[BaseModel],
    response_schema: type[BaseModel],
) -> APIRouter:
    label = entity_type.__name__
    router = APIRouter(prefix=f"/{collection}", tags=[collection])

    def repository(fleet: FleetRepository) -> EntityRepository:
        return getattr(fleet, collection)

    async def list_records(request: Request, fleet: FleetRepository = Depends(get_fleet)):
        return [response_schema.model_validate(r) for r in await repository(fleet).get_all()]

    async def create_record(
        request: Request,
        body: request_schema,
        fleet: FleetRepository = Depends(get_fleet),
    ):
        record = entity_type(**body.model_dump())
        if not await repository(fleet).add(record):
            raise HTTPException(status_code=500, detail=f"Failed to add {label}")
        return response_schema.model_validate(record)

    async def get_record(
        request: Request, record_id: int, fleet: FleetRepository = Depends(get_fleet)
    ):
        record = await repository(fleet).get_by_id(record_id)
        if record is None:
            raise HTTPException(status_code=404, detail=f"{label} not found")
        return response_schema.model_validate(record)

    async def update_record(
        request: Request,
        record_id: int,
        body: request_schema,
        fleet: FleetRepository = Depends(get_fleet),
    ):
        record = entity_type(id=record_id, **body.model_dump())
        if not await repository(fleet).update(record):
            raise HTTPException(status_code=404, detail=f"{label} not found")
        return response_schema.model_validate(record)

    async def delete_record(
        request: Request, record_id: int, fleet: FleetRepository = Depends(get_fleet)
    ):
        if not await repository(fleet).remove(record_id):
            raise HTTPException(status_code=404, detail=f"{label} not found")
        return Response(status_code=204)

    _add_route(router, "GET", "", list_records, f"list_{collection}",
               response_model=list[response_schema], summary=f"List {collection}")
    _add_route(router, "POST", "", create_record, f"create_{collection}",
               status_code=201, response_model=response_schema, summary=f"Add a {label}")
    _add_route(router, "GET", "/{record_id}", get_record, f"get_{collection}",
               response_model=response_schema, summary=f"Get a {label}")
    _add_route(router, "PUT", "/{record_id}", update_record, f"update_{collection}",
               response_model=response_schema, summary=f"Update a {label}")
    _add_route(router, "DELETE", "/{record_id}", delete_record, f"delete_{collection}",
               status_code=204, summary=f"Remove a {label}")
    return router


cars = build_reference_router("cars", Car, CarRequest, CarResponse)
drivers = build_reference_router("drivers", Driver, DriverRequest, DriverResponse)
locations = build_reference_router("locations", Location, LocationRequest, LocationResponse)
