"""
Fleet administration shared by the REST API and the console menu.

Checks references before associating them (a cab's car, driver and
location must exist; a trip's locations must exist and differ) and
refuses removals that would leave a dangling assignment.  Failures are
raised as ``RecordNotFound`` / ``OperationRejected`` so each caller can
render its own message.
"""

from __future__ import annotations

import logging

from src.domain.entities import Cab, Trip
from src.domain.enums import WorkState
from src.infrastructure.repositories import FleetRepository
from .dispatch import DispatchEngine

logger = logging.getLogger(__name__)


class FleetError(Exception):
    """Base class for rejected fleet administration requests."""


class RecordNotFound(FleetError):
    pass


class OperationRejected(FleetError):
    pass


class PersistenceFailed(FleetError):
    pass


class FleetService:
    def __init__(self, fleet: FleetRepository, dispatch: DispatchEngine):
        self.fleet = fleet
        self.dispatch = dispatch

    # ── Cabs ──────────────────────────────────────────────────────────

    async def register_cab(self, car_id: int, driver_id: int, location_id: int) -> Cab:
        await self._require_car_and_driver(car_id, driver_id)
        if await self.fleet.locations.get_by_id(location_id) is None:
            raise RecordNotFound(f"Location {location_id} not found")

        cab = Cab(car_id=car_id, driver_id=driver_id, current_location_id=location_id)
        if not await self.fleet.cabs.add(cab):
            raise PersistenceFailed("Failed to register cab")
        logger.info("Registered cab %d at location %d", cab.id, location_id)
        return cab

    async def reassign_cab(self, cab_id: int, car_id: int, driver_id: int) -> Cab:
        cab = await self.fleet.cabs.get_by_id(cab_id)
        if cab is None:
            raise RecordNotFound(f"Cab {cab_id} not found")
        await self._require_car_and_driver(car_id, driver_id)

        cab.car_id = car_id
        cab.driver_id = driver_id
        if not await self.fleet.cabs.update(cab):
            raise PersistenceFailed(f"Failed to update cab {cab_id}")
        return cab

    async def remove_cab(self, cab_id: int) -> None:
        cab = await self.fleet.cabs.get_by_id(cab_id)
        if cab is None:
            raise RecordNotFound(f"Cab {cab_id} not found")
        if cab.work_state == WorkState.ON_TRIP:
            raise OperationRejected(
                f"Cab {cab_id} is serving trip {cab.current_trip_id}"
            )
        # a cab grounded mid-trip is still the assigned cab of that trip
        for trip in await self.fleet.trips.get_all():
            if trip.is_open and trip.assigned_cab_id == cab_id:
                raise OperationRejected(
                    f"Cab {cab_id} is assigned to open trip {trip.id}"
                )
        if not await self.fleet.cabs.remove(cab_id):
            raise PersistenceFailed(f"Failed to remove cab {cab_id}")

    async def _require_car_and_driver(self, car_id: int, driver_id: int) -> None:
        if await self.fleet.cars.get_by_id(car_id) is None:
            raise RecordNotFound(f"Car {car_id} not found")
        if await self.fleet.drivers.get_by_id(driver_id) is None:
            raise RecordNotFound(f"Driver {driver_id} not found")

    # ── Trips ─────────────────────────────────────────────────────────

    async def create_trip(self, from_location_id: int, to_location_id: int) -> Trip:
        if from_location_id == to_location_id:
            raise OperationRejected("From and to locations cannot be the same")
        origin = await self.fleet.locations.get_by_id(from_location_id)
        if origin is None:
            raise RecordNotFound(f"Location {from_location_id} not found")
        destination = await self.fleet.locations.get_by_id(to_location_id)
        if destination is None:
            raise RecordNotFound(f"Location {to_location_id} not found")

        trip = Trip(from_location=origin, to_location=destination)
        if not await self.fleet.trips.add(trip):
            raise PersistenceFailed("Failed to create trip")
        return trip

    async def remove_trip(self, trip_id: int) -> None:
        trip = await self.fleet.trips.get_by_id(trip_id)
        if trip is None:
            raise RecordNotFound(f"Trip {trip_id} not found")
        if trip.is_open and trip.assigned_cab_id is not None:
            raise OperationRejected(
                f"Trip {trip_id} is being served by cab {trip.assigned_cab_id}"
            )
        if not await self.fleet.trips.remove(trip_id):
            raise PersistenceFailed(f"Failed to remove trip {trip_id}")

    async def book_existing_trip(self, trip_id: int) -> tuple[Trip, Cab]:
        trip = await self.fleet.trips.get_by_id(trip_id)
        if trip is None:
            raise RecordNotFound(f"Trip {trip_id} not found")
        cab = await self.dispatch.book_cab_for_trip(trip_id, trip.from_location.id)
        if cab is None:
            raise OperationRejected(
                f"No cab could be booked for trip {trip_id} "
                f"at {trip.from_location.city or trip.from_location.id}"
            )
        return await self._booked_trip(trip_id), cab

    async def book_trip(self, from_location_id: int, to_location_id: int) -> tuple[Trip, Cab]:
        """Create a trip and book a cab for it; drop the trip if booking fails."""
        trip = await self.create_trip(from_location_id, to_location_id)
        cab = await self.dispatch.book_cab_for_trip(trip.id, from_location_id)
        if cab is None:
            if not await self.fleet.trips.remove(trip.id):
                logger.error("Could not remove unbooked trip %d", trip.id)
            raise OperationRejected(
                f"No available cab at {trip.from_location.city or from_location_id}"
            )
        return await self._booked_trip(trip.id), cab

    async def _booked_trip(self, trip_id: int) -> Trip:
        trip = await self.fleet.trips.get_by_id(trip_id)
        if trip is None:
            raise PersistenceFailed(f"Trip {trip_id} was booked but could not be read back")
        return trip
