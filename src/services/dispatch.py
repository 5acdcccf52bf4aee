"""
Dispatch Engine
===============

The only component with dispatch decisions: cab location and state
changes, availability queries, booking and trip completion.

Each operation loads fresh records through ``FleetRepository``, decides,
and writes the changed records back.  Nothing is cached between calls.

Concurrency safety
------------------
* A lock per trip id, then per cab id (always in that order), serializes
  booking and completion.
* The chosen cab is re-read under its lock; if another caller took it in
  the meantime the next-longest-idle candidate is tried.
* Cab and trip are persisted together with ``save_together``, so a
  failed write leaves both records as they were.

Error policy
------------
No exception escapes a public method.  Failures are logged and reported
as ``False`` / ``None`` / ``[]``.
"""

from __future__ import annotations

import logging
import random
from datetime import datetime
from typing import Callable, Optional

from src.domain.entities import Cab, Trip, utcnow
from src.domain.enums import ADMIN_CAB_TRANSITIONS, WorkState
from src.domain.selection import available_at, is_available_at, select_longest_idle
from src.infrastructure.locks import LocalLockManager, LockManager, cab_key, trip_key
from src.infrastructure.repositories import FleetRepository

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


class DispatchEngine:
    def __init__(
        self,
        fleet: FleetRepository,
        locks: Optional[LockManager] = None,
        clock: Clock = utcnow,
        rng: Optional[random.Random] = None,
    ):
        self.fleet = fleet
        self.locks = locks or LocalLockManager()
        self.clock = clock
        self.rng = rng or random.Random()

    # ── Cab management ────────────────────────────────────────────────

    async def change_cab_location(self, cab_id: int, new_location_id: int) -> bool:
        try:
            async with self.locks.hold(cab_key(cab_id)):
                cab = await self.fleet.cabs.get_by_id(cab_id)
                if cab is None:
                    logger.warning("change_cab_location: cab %d not found", cab_id)
                    return False
                if await self.fleet.locations.get_by_id(new_location_id) is None:
                    logger.warning(
                        "change_cab_location: location %d not found", new_location_id
                    )
                    return False

                cab.current_location_id = new_location_id
                return await self._persist_cab(cab, "change_cab_location")
        except Exception:
            logger.exception("change_cab_location failed for cab %d", cab_id)
            return False

    async def change_cab_state(self, cab_id: int, new_state: WorkState) -> bool:
        """Administrative state change (grounding / releasing a cab)."""
        try:
            async with self.locks.hold(cab_key(cab_id)):
                cab = await self.fleet.cabs.get_by_id(cab_id)
                if cab is None:
                    logger.warning("change_cab_state: cab %d not found", cab_id)
                    return False
                if cab.work_state == new_state:
                    return True

                if new_state not in ADMIN_CAB_TRANSITIONS[cab.work_state]:
                    logger.warning(
                        "change_cab_state: %s -> %s is not an administrative "
                        "transition (cab %d)",
                        cab.work_state.value,
                        new_state.value,
                        cab_id,
                    )
                    return False

                cab.transition_to(new_state)
                if new_state == WorkState.IDLE:
                    cab.mark_idle(self.clock())
                elif new_state == WorkState.GROUNDED:
                    if cab.current_trip_id is not None:
                        logger.warning(
                            "cab %d grounded while serving trip %d",
                            cab_id,
                            cab.current_trip_id,
                        )
                    cab.current_trip_id = None
                return await self._persist_cab(cab, "change_cab_state")
        except Exception:
            logger.exception("change_cab_state failed for cab %d", cab_id)
            return False

    async def get_available_cabs_at_location(self, location_id: int) -> list[Cab]:
        try:
            return available_at(await self.fleet.cabs.get_all(), location_id)
        except Exception:
            logger.exception(
                "get_available_cabs_at_location failed for location %d", location_id
            )
            return []

    # ── Trip lifecycle ────────────────────────────────────────────────

    async def book_cab_for_trip(self, trip_id: int, from_location_id: int) -> Optional[Cab]:
        """Assign the longest-idle cab at *from_location_id* to the trip."""
        try:
            async with self.locks.hold(trip_key(trip_id)):
                trip = await self.fleet.trips.get_by_id(trip_id)
                if trip is None:
                    logger.warning("book_cab_for_trip: trip %d not found", trip_id)
                    return None
                if not trip.is_bookable:
                    logger.warning(
                        "book_cab_for_trip: trip %d is %s with cab %s",
                        trip_id,
                        trip.trip_status.value,
                        trip.assigned_cab_id,
                    )
                    return None

                candidates = await self.get_available_cabs_at_location(from_location_id)
                while candidates:
                    now = self.clock()
                    chosen = select_longest_idle(candidates, now, self.rng)
                    async with self.locks.hold(cab_key(chosen.id)):
                        cab = await self.fleet.cabs.get_by_id(chosen.id)
                        if cab is not None and is_available_at(cab, from_location_id):
                            return await self._assign(cab, trip, now)
                    logger.info(
                        "cab %d was taken before it could be locked; reselecting",
                        chosen.id,
                    )
                    candidates = [c for c in candidates if c.id != chosen.id]

                logger.info(
                    "No idle cab at location %d for trip %d", from_location_id, trip_id
                )
                return None
        except Exception:
            logger.exception("book_cab_for_trip failed for trip %d", trip_id)
            return None

    async def complete_trip(self, trip_id: int) -> bool:
        try:
            async with self.locks.hold(trip_key(trip_id)):
                trip = await self.fleet.trips.get_by_id(trip_id)
                if trip is None or trip.assigned_cab_id is None:
                    logger.warning(
                        "complete_trip: trip %d not found or has no cab", trip_id
                    )
                    return False
                if not trip.is_open:
                    logger.warning(
                        "complete_trip: trip %d is already %s",
                        trip_id,
                        trip.trip_status.value,
                    )
                    return False

                async with self.locks.hold(cab_key(trip.assigned_cab_id)):
                    cab = await self.fleet.cabs.get_by_id(trip.assigned_cab_id)
                    if cab is None:
                        logger.warning(
                            "complete_trip: cab %d of trip %d not found",
                            trip.assigned_cab_id,
                            trip_id,
                        )
                        return False
                    return await self._release(cab, trip, self.clock())
        except Exception:
            logger.exception("complete_trip failed for trip %d", trip_id)
            return False

    # ── Internals ─────────────────────────────────────────────────────

    async def _assign(self, cab: Cab, trip: Trip, now: datetime) -> Optional[Cab]:
        cab.assign_trip(trip.id)
        trip.assign(cab.id, now)
        if not await self.fleet.save_together(cab, trip):
            logger.error(
                "Assignment of cab %d to trip %d not persisted; "
                "both records left unchanged",
                cab.id,
                trip.id,
            )
            return None
        logger.info("Cab %d booked for trip %d", cab.id, trip.id)
        return cab

    async def _release(self, cab: Cab, trip: Trip, now: datetime) -> bool:
        trip.complete(now)
        if cab.work_state == WorkState.ON_TRIP and cab.current_trip_id != trip.id:
            # Cab was grounded off this trip and has since been rebooked.
            logger.warning(
                "complete_trip: cab %d is serving trip %d; recording trip %d only",
                cab.id,
                cab.current_trip_id,
                trip.id,
            )
            cab.completed_trips.append(trip.id)
        else:
            cab.finish_trip(trip.id, now)

        if not await self.fleet.save_together(trip, cab):
            logger.error(
                "Completion of trip %d (cab %d) not persisted; "
                "both records left unchanged",
                trip.id,
                cab.id,
            )
            return False
        logger.info("Trip %d completed by cab %d", trip.id, cab.id)
        return True

    async def _persist_cab(self, cab: Cab, operation: str) -> bool:
        if not await self.fleet.cabs.update(cab):
            logger.warning("%s: could not persist cab %d", operation, cab.id)
            return False
        return True
