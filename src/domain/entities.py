"""
Domain entities with business logic.

Patterns used
-------------
- **State Pattern** on ``Cab``: enforces valid work-state transitions
  (IDLE -> ON_TRIP -> IDLE, IDLE <-> GROUNDED, ON_TRIP -> GROUNDED).
- ``Cab.total_trips_count`` is derived from ``completed_trips`` and has no
  setter, so it can never drift from the list.
- ``Trip.assign`` / ``Trip.complete`` guard the trip lifecycle invariants.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Optional

from .enums import CAB_TRANSITIONS, TripStatus, WorkState


class InvalidStateTransition(Exception):
    """Raised when a cab or trip change violates its state machine."""


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ── Reference records ─────────────────────────────────────────────────


@dataclass
class Location:
    id: int = 0
    city: str = ""
    country: str = ""
    latitude: float = 0.0
    longitude: float = 0.0


@dataclass
class Car:
    id: int = 0
    manufacturer: str = ""
    model: str = ""
    description: str = ""
    manufacture_year: int = 0
    km_driven: int = 0


@dataclass
class Driver:
    id: int = 0
    first_name: str = ""
    last_name: str = ""
    contact_number: str = ""
    address: str = ""
    date_of_birth: Optional[date] = None
    date_of_joining: Optional[date] = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


# ── Entities ──────────────────────────────────────────────────────────


@dataclass
class Cab:
    id: int = 0
    car_id: int = 0
    driver_id: int = 0
    work_state: WorkState = WorkState.IDLE
    current_location_id: int = 0
    current_trip_id: Optional[int] = None
    last_idle_time: datetime = field(default_factory=utcnow)
    completed_trips: list[int] = field(default_factory=list)

    @property
    def total_trips_count(self) -> int:
        return len(self.completed_trips)

    def idle_duration(self, now: datetime) -> timedelta:
        """Time spent idle since ``last_idle_time``; zero unless IDLE."""
        if self.work_state != WorkState.IDLE:
            return timedelta(0)
        return now - self.last_idle_time

    def transition_to(self, new_state: WorkState) -> None:
        """Move to *new_state* if the transition is legal, else raise."""
        allowed = CAB_TRANSITIONS.get(self.work_state, set())
        if new_state not in allowed:
            raise InvalidStateTransition(
                f"Cannot transition cab {self.id} from {self.work_state.value} "
                f"to {new_state.value}"
            )
        self.work_state = new_state

    def assign_trip(self, trip_id: int) -> None:
        self.transition_to(WorkState.ON_TRIP)
        self.current_trip_id = trip_id

    def finish_trip(self, trip_id: int, now: datetime) -> None:
        """Return to IDLE after serving *trip_id*.

        A cab grounded mid-trip is released to IDLE as well; the trip is
        recorded either way.
        """
        if self.work_state != WorkState.IDLE:
            self.transition_to(WorkState.IDLE)
        self.mark_idle(now)
        self.completed_trips.append(trip_id)

    def mark_idle(self, now: datetime) -> None:
        self.last_idle_time = now
        self.current_trip_id = None


@dataclass
class Trip:
    id: int = 0
    from_location: Location = field(default_factory=Location)
    to_location: Location = field(default_factory=Location)
    trip_status: TripStatus = TripStatus.IN_PROGRESS
    assigned_cab_id: Optional[int] = None
    booking_time: datetime = field(default_factory=utcnow)
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None

    @property
    def is_open(self) -> bool:
        return self.trip_status == TripStatus.IN_PROGRESS

    @property
    def is_bookable(self) -> bool:
        return self.is_open and self.assigned_cab_id is None

    def assign(self, cab_id: int, now: datetime) -> None:
        if not self.is_bookable:
            raise InvalidStateTransition(
                f"Trip {self.id} is not open for booking "
                f"(status={self.trip_status.value}, cab={self.assigned_cab_id})"
            )
        self.assigned_cab_id = cab_id
        self.start_time = now

    def complete(self, now: datetime) -> None:
        if self.trip_status != TripStatus.IN_PROGRESS or self.assigned_cab_id is None:
            raise InvalidStateTransition(
                f"Trip {self.id} cannot be completed "
                f"(status={self.trip_status.value}, cab={self.assigned_cab_id})"
            )
        self.trip_status = TripStatus.COMPLETED
        self.end_time = now
