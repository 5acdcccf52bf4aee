"""Pydantic request / response schemas for the REST API."""

from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field

from src.domain.enums import TripStatus, WorkState


# ── Requests ──────────────────────────────────────────────────────────


class LocationRequest(BaseModel):
    city: str = Field(..., min_length=1, max_length=120)
    country: str = Field(..., min_length=1, max_length=120)
    latitude: float = Field(0.0, ge=-90, le=90)
    longitude: float = Field(0.0, ge=-180, le=180)


class CarRequest(BaseModel):
    manufacturer: str = Field(..., min_length=1, max_length=120)
    model: str = Field(..., min_length=1, max_length=120)
    description: str = ""
    manufacture_year: int = Field(..., ge=1900, le=2100)
    km_driven: int = Field(0, ge=0)


class DriverRequest(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=120)
    last_name: str = Field("", max_length=120)
    contact_number: str = Field("", max_length=32)
    address: str = ""
    date_of_birth: Optional[date] = None
    date_of_joining: Optional[date] = None


class CabRegisterRequest(BaseModel):
    car_id: int
    driver_id: int
    location_id: int


class CabUpdateRequest(BaseModel):
    car_id: int
    driver_id: int


class CabLocationRequest(BaseModel):
    location_id: int


class CabStateRequest(BaseModel):
    work_state: WorkState = Field(
        ...,
        description="IDLE or GROUNDED; ON_TRIP is only entered by booking.",
    )


class TripRequest(BaseModel):
    from_location_id: int
    to_location_id: int


# ── Responses ─────────────────────────────────────────────────────────


class LocationResponse(BaseModel):
    id: int
    city: str
    country: str
    latitude: float
    longitude: float

    model_config = {"from_attributes": True}


class CarResponse(BaseModel):
    id: int
    manufacturer: str
    model: str
    description: str
    manufacture_year: int
    km_driven: int

    model_config = {"from_attributes": True}


class DriverResponse(BaseModel):
    id: int
    first_name: str
    last_name: str
    contact_number: str
    address: str
    date_of_birth: Optional[date] = None
    date_of_joining: Optional[date] = None

    model_config = {"from_attributes": True}


class CabResponse(BaseModel):
    id: int
    car_id: int
    driver_id: int
    work_state: WorkState
    current_location_id: int
    current_trip_id: Optional[int] = None
    last_idle_time: datetime
    completed_trips: list[int] = []
    total_trips_count: int

    model_config = {"from_attributes": True}


class TripResponse(BaseModel):
    id: int
    from_location: LocationResponse
    to_location: LocationResponse
    trip_status: TripStatus
    assigned_cab_id: Optional[int] = None
    booking_time: datetime
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None

    model_config = {"from_attributes": True}


class BookingResponse(BaseModel):
    trip: TripResponse
    cab: CabResponse


class CabIdleRowResponse(BaseModel):
    cab_id: int
    idle_seconds: float
    trip_count: int
    idle_percent: float


class IdleReportResponse(BaseModel):
    start: datetime
    end: datetime
    completed_trips: int
    total_idle_seconds: float
    average_idle_seconds: float
    total_trips: int
    average_trips_per_cab: float
    cabs: list[CabIdleRowResponse] = []


class LocationVisitResponse(BaseModel):
    location_id: int
    count: int


class LocationHistoryResponse(BaseModel):
    cab_id: int
    trips: list[TripResponse] = []
    most_visited: list[LocationVisitResponse] = []
    most_departed: list[LocationVisitResponse] = []
    unique_from_locations: int
    unique_to_locations: int


class CityDemandResponse(BaseModel):
    city: str
    departures: int
    arrivals: int
    total: int


class DemandReportResponse(BaseModel):
    total_trips: int
    top_cities: list[CityDemandResponse] = []
    by_hour: dict[int, int] = {}
    by_weekday: dict[str, int] = {}
    by_month: dict[str, int] = {}
    peak_hour: Optional[int] = None
    peak_weekday: Optional[str] = None
    peak_month: Optional[str] = None
    peak_hour_intensity: float = 0.0


class HealthResponse(BaseModel):
    status: str = "ok"


class ErrorResponse(BaseModel):
    detail: str
