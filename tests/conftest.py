"""
Shared test fixtures.

Each test gets its own SQLite file database (via aiosqlite) under
``tmp_path`` so tests run without Docker / PostgreSQL / Redis.  A file is
used instead of ``:memory:`` because every session opens its own
connection.

Time is driven by ``FakeClock`` and tie-breaks by a seeded
``random.Random`` so dispatch decisions are reproducible.
"""

import random
from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator

import pytest
import pytest_asyncio

from src.domain.entities import Cab, Car, Driver, Location, Trip
from src.domain.enums import WorkState
from src.infrastructure.database import build_engine, build_session_factory, init_models
from src.infrastructure.record_store import RecordStore
from src.infrastructure.repositories import FleetRepository
from src.services.dispatch import DispatchEngine
from src.services.fleet import FleetService

T0 = datetime(2025, 3, 3, 8, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, now: datetime = T0):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


# ── Storage ───────────────────────────────────────────────────────────


@pytest_asyncio.fixture
async def store(tmp_path) -> AsyncGenerator[RecordStore, None]:
    """Create tables in a fresh database, yield a store, then dispose."""
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'records.db'}")
    await init_models(engine)

    yield RecordStore(build_session_factory(engine))

    await engine.dispose()


@pytest.fixture
def fleet(store) -> FleetRepository:
    return FleetRepository(store)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def dispatch(fleet, clock) -> DispatchEngine:
    return DispatchEngine(fleet, clock=clock, rng=random.Random(7))


@pytest.fixture
def service(fleet, dispatch) -> FleetService:
    return FleetService(fleet, dispatch)


# ── Sample records ────────────────────────────────────────────────────


@pytest_asyncio.fixture
async def locations(fleet) -> list[Location]:
    """Mumbai (1), Pune (2), Delhi (3)."""
    records = [
        Location(city="Mumbai", country="India", latitude=19.08, longitude=72.87),
        Location(city="Pune", country="India", latitude=18.52, longitude=73.85),
        Location(city="Delhi", country="India", latitude=28.70, longitude=77.10),
    ]
    for record in records:
        assert await fleet.locations.add(record)
    return records


@pytest_asyncio.fixture
async def car(fleet) -> Car:
    record = Car(manufacturer="Toyota", model="Etios", manufacture_year=2021)
    assert await fleet.cars.add(record)
    return record


@pytest_asyncio.fixture
async def driver(fleet) -> Driver:
    record = Driver(first_name="Asha", last_name="Rao", contact_number="555-0101")
    assert await fleet.drivers.add(record)
    return record


@pytest.fixture
def add_cab(fleet, clock, car, driver):
    """Factory: persist a cab at *location_id* idle for *idle_minutes*."""

    async def _add(
        location_id: int,
        idle_minutes: int = 0,
        state: WorkState = WorkState.IDLE,
    ) -> Cab:
        cab = Cab(
            car_id=car.id,
            driver_id=driver.id,
            work_state=state,
            current_location_id=location_id,
            last_idle_time=clock.now - timedelta(minutes=idle_minutes),
        )
        assert await fleet.cabs.add(cab)
        return cab

    return _add


@pytest.fixture
def add_trip(fleet, clock, locations):
    """Factory: persist an unassigned IN_PROGRESS trip between two locations."""

    async def _add(from_index: int = 0, to_index: int = 1) -> Trip:
        trip = Trip(
            from_location=locations[from_index],
            to_location=locations[to_index],
            booking_time=clock.now,
        )
        assert await fleet.trips.add(trip)
        return trip

    return _add
