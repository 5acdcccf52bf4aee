"""Domain enumerations and state-transition rules."""

import enum


class WorkState(str, enum.Enum):
    IDLE = "IDLE"
    ON_TRIP = "ON_TRIP"
    GROUNDED = "GROUNDED"


class TripStatus(str, enum.Enum):
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


# State machine: maps current work state -> set of valid next states
CAB_TRANSITIONS: dict[WorkState, set[WorkState]] = {
    WorkState.IDLE: {WorkState.ON_TRIP, WorkState.GROUNDED},
    WorkState.ON_TRIP: {WorkState.IDLE, WorkState.GROUNDED},
    WorkState.GROUNDED: {WorkState.IDLE},
}

# Subset reachable through an administrative state change.  ON_TRIP is only
# entered by booking and left by trip completion (or a forced grounding).
ADMIN_CAB_TRANSITIONS: dict[WorkState, set[WorkState]] = {
    WorkState.IDLE: {WorkState.GROUNDED},
    WorkState.ON_TRIP: {WorkState.GROUNDED},
    WorkState.GROUNDED: {WorkState.IDLE},
}


class Collection(str, enum.Enum):
    """Logical record-store collection names."""

    CABS = "cabs"
    TRIPS = "trips"
    CARS = "cars"
    DRIVERS = "drivers"
    LOCATIONS = "locations"
