"""
Insight endpoints
=================

GET /api/v1/insights/idle-time?start=&end=              -- idle time per cab
GET /api/v1/insights/cabs/{cab_id}/location-history     -- a cab's trips
GET /api/v1/insights/demand                             -- demand by city / time
"""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Request

from src.api.dependencies import get_fleet
from src.api.middleware import RATE_LIMIT, limiter
from src.api.schemas import (
    CabIdleRowResponse,
    CityDemandResponse,
    DemandReportResponse,
    IdleReportResponse,
    LocationHistoryResponse,
    LocationVisitResponse,
    TripResponse,
)
from src.domain.insights import cab_idle_report, cab_location_history, demand_analysis
from src.infrastructure.repositories import FleetRepository

router = APIRouter(prefix="/insights", tags=["insights"])


def _aware(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


@router.get(
    "/idle-time",
    response_model=IdleReportResponse,
    summary="Cab idle time over a period",
)
@limiter.limit(RATE_LIMIT)
async def idle_time(
    request: Request,
    start: datetime,
    end: datetime,
    fleet: FleetRepository = Depends(get_fleet),
):
    start, end = _aware(start), _aware(end)
    if start >= end:
        raise HTTPException(status_code=422, detail="start must be before end")

    report = cab_idle_report(
        await fleet.cabs.get_all(), await fleet.trips.get_all(), start, end
    )
    return IdleReportResponse(
        start=report.start,
        end=report.end,
        completed_trips=report.completed_trips,
        total_idle_seconds=report.total_idle.total_seconds(),
        average_idle_seconds=report.average_idle.total_seconds(),
        total_trips=report.total_trips,
        average_trips_per_cab=round(report.average_trips_per_cab, 1),
        cabs=[
            CabIdleRowResponse(
                cab_id=r.cab_id,
                idle_seconds=r.idle_time.total_seconds(),
                trip_count=r.trip_count,
                idle_percent=r.idle_percent,
            )
            for r in report.rows
        ],
    )


@router.get(
    "/cabs/{cab_id}/location-history",
    response_model=LocationHistoryResponse,
    summary="A cab's completed trips and most visited locations",
)
@limiter.limit(RATE_LIMIT)
async def location_history(
    request: Request, cab_id: int, fleet: FleetRepository = Depends(get_fleet)
):
    if await fleet.cabs.get_by_id(cab_id) is None:
        raise HTTPException(status_code=404, detail="Cab not found")

    history = cab_location_history(cab_id, await fleet.trips.get_all())
    return LocationHistoryResponse(
        cab_id=cab_id,
        trips=[TripResponse.model_validate(t) for t in history.trips],
        most_visited=[
            LocationVisitResponse(location_id=loc, count=n)
            for loc, n in history.arrivals.most_common(5)
        ],
        most_departed=[
            LocationVisitResponse(location_id=loc, count=n)
            for loc, n in history.departures.most_common(5)
        ],
        unique_from_locations=history.unique_from_locations,
        unique_to_locations=history.unique_to_locations,
    )


@router.get(
    "/demand",
    response_model=DemandReportResponse,
    summary="Demand by city, hour, weekday and month",
)
@limiter.limit(RATE_LIMIT)
async def demand(request: Request, fleet: FleetRepository = Depends(get_fleet)):
    report = demand_analysis(
        await fleet.trips.get_all(), await fleet.locations.get_all()
    )
    return DemandReportResponse(
        total_trips=report.total_trips,
        top_cities=[
            CityDemandResponse(
                city=c.city, departures=c.departures, arrivals=c.arrivals, total=c.total
            )
            for c in report.top_cities
        ],
        by_hour=dict(report.by_hour),
        by_weekday=dict(report.by_weekday),
        by_month=dict(report.by_month),
        peak_hour=report.peak_hour[0] if report.peak_hour else None,
        peak_weekday=report.peak_weekday[0] if report.peak_weekday else None,
        peak_month=report.peak_month[0] if report.peak_month else None,
        peak_hour_intensity=report.peak_hour_intensity,
    )
