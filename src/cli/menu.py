"""
Interactive console
===================

A thin text front end over the same repository / engine / service the
REST API uses.  Menus are looked up in the static ``MENUS`` table; each
entry carries its key, title, description and handler.  Handlers return
``MenuSignal.STOP`` to leave the menu they were chosen from.

Input and output are plain callables (``input`` / ``print`` by default)
so a session can be scripted.  End of input ends the session.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Awaitable, Callable, Optional

from src.domain.entities import Car, Driver, Location
from src.domain.enums import WorkState
from src.domain.insights import cab_idle_report, cab_location_history, demand_analysis
from src.infrastructure.repositories import EntityRepository, FleetRepository
from src.services.dispatch import DispatchEngine
from src.services.fleet import FleetError, FleetService

logger = logging.getLogger(__name__)

Reader = Callable[[str], str]
Writer = Callable[[str], None]


class MenuId(str, enum.Enum):
    MAIN = "main"
    CABS = "cabs"
    CARS = "cars"
    DRIVERS = "drivers"
    TRIPS = "trips"
    LOCATIONS = "locations"
    INSIGHTS = "insights"


class MenuSignal(enum.Enum):
    CONTINUE = "continue"
    STOP = "stop"


Handler = Callable[["Console"], Awaitable[MenuSignal]]


@dataclass(frozen=True)
class MenuAction:
    key: str
    title: str
    description: str
    handler: Handler


class Console:
    def __init__(
        self,
        fleet: FleetRepository,
        dispatch: DispatchEngine,
        read: Reader = input,
        write: Writer = print,
    ):
        self.fleet = fleet
        self.dispatch = dispatch
        self.service = FleetService(fleet, dispatch)
        self.read = read
        self.write = write

    async def run(self) -> None:
        """Show the main menu until the user exits or input runs out."""
        try:
            await self.run_menu(MenuId.MAIN)
        except EOFError:
            self.write("")
        logger.info("Console session ended")

    async def run_menu(self, menu_id: MenuId) -> None:
        actions = MENUS[menu_id]
        while True:
            self.write("")
            self.write(f"=== {menu_id.value.title()} Menu ===")
            for action in actions:
                self.write(f"  [{action.key}] {action.title} - {action.description}")

            choice = self.read("Select an option: ").strip().upper()
            action = next((a for a in actions if a.key == choice), None)
            if action is None:
                self.write(f"Invalid choice: {choice or '(empty)'}")
                continue
            if await action.handler(self) == MenuSignal.STOP:
                return

    # ── Prompts ───────────────────────────────────────────────────────

    def ask(self, prompt: str, default: str = "") -> str:
        value = self.read(f"{prompt}: ").strip()
        return value or default

    def ask_int(self, prompt: str, default: Optional[int] = None) -> int:
        while True:
            raw = self.read(f"{prompt}: ").strip()
            if not raw and default is not None:
                return default
            try:
                return int(raw)
            except ValueError:
                self.write("Please enter a whole number.")

    def ask_float(self, prompt: str, default: float = 0.0) -> float:
        while True:
            raw = self.read(f"{prompt}: ").strip()
            if not raw:
                return default
            try:
                return float(raw)
            except ValueError:
                self.write("Please enter a number.")

    def ask_date(self, prompt: str) -> Optional[date]:
        while True:
            raw = self.read(f"{prompt} (YYYY-MM-DD, blank to skip): ").strip()
            if not raw:
                return None
            try:
                return date.fromisoformat(raw)
            except ValueError:
                self.write("Please enter a date as YYYY-MM-DD.")

    def ask_datetime(self, prompt: str) -> datetime:
        while True:
            raw = self.read(f"{prompt} (YYYY-MM-DD[THH:MM]): ").strip()
            try:
                value = datetime.fromisoformat(raw)
            except ValueError:
                self.write("Please enter a date as YYYY-MM-DD or YYYY-MM-DDTHH:MM.")
                continue
            return value if value.tzinfo else value.replace(tzinfo=timezone.utc)

    def confirm(self, prompt: str) -> bool:
        answer = self.read(f"{prompt} (y/n): ").strip().lower()
        if answer in ("y", "yes"):
            return True
        self.write("Removal cancelled.")
        return False


# ── Navigation ────────────────────────────────────────────────────────


def _open(menu_id: MenuId) -> Handler:
    async def handler(console: Console) -> MenuSignal:
        await console.run_menu(menu_id)
        return MenuSignal.CONTINUE

    return handler


async def _back(console: Console) -> MenuSignal:
    return MenuSignal.STOP


async def _exit(console: Console) -> MenuSignal:
    console.write("Goodbye.")
    return MenuSignal.STOP


# ── Cabs ──────────────────────────────────────────────────────────────


async def _view_cabs(console: Console) -> MenuSignal:
    cabs = await console.fleet.cabs.get_all()
    if not cabs:
        console.write("No cabs registered.")
    for cab in cabs:
        trip = f", trip {cab.current_trip_id}" if cab.current_trip_id is not None else ""
        console.write(
            f"Cab {cab.id}: car {cab.car_id}, driver {cab.driver_id}, "
            f"{cab.work_state.value} at location {cab.current_location_id}{trip}, "
            f"{cab.total_trips_count} trips completed"
        )
    return MenuSignal.CONTINUE


async def _register_cab(console: Console) -> MenuSignal:
    car_id = console.ask_int("Car ID")
    driver_id = console.ask_int("Driver ID")
    location_id = console.ask_int("Location ID")
    try:
        cab = await console.service.register_cab(car_id, driver_id, location_id)
    except FleetError as exc:
        console.write(str(exc))
    else:
        console.write(f"Cab {cab.id} registered.")
    return MenuSignal.CONTINUE


async def _update_cab(console: Console) -> MenuSignal:
    cab_id = console.ask_int("Cab ID")
    car_id = console.ask_int("New car ID")
    driver_id = console.ask_int("New driver ID")
    try:
        await console.service.reassign_cab(cab_id, car_id, driver_id)
    except FleetError as exc:
        console.write(str(exc))
    else:
        console.write(f"Cab {cab_id} updated.")
    return MenuSignal.CONTINUE


async def _remove_cab(console: Console) -> MenuSignal:
    cab_id = console.ask_int("Cab ID")
    if not console.confirm(f"Remove cab {cab_id}?"):
        return MenuSignal.CONTINUE
    try:
        await console.service.remove_cab(cab_id)
    except FleetError as exc:
        console.write(str(exc))
    else:
        console.write(f"Cab {cab_id} removed.")
    return MenuSignal.CONTINUE


async def _change_cab_location(console: Console) -> MenuSignal:
    cab_id = console.ask_int("Cab ID")
    location_id = console.ask_int("New location ID")
    if await console.dispatch.change_cab_location(cab_id, location_id):
        console.write(f"Cab {cab_id} moved to location {location_id}.")
    else:
        console.write("Failed to change cab location.")
    return MenuSignal.CONTINUE


async def _change_cab_state(console: Console) -> MenuSignal:
    cab_id = console.ask_int("Cab ID")
    raw = console.ask("New state (IDLE / GROUNDED)").upper()
    try:
        state = WorkState(raw)
    except ValueError:
        console.write(f"Unknown state: {raw}")
        return MenuSignal.CONTINUE
    if await console.dispatch.change_cab_state(cab_id, state):
        console.write(f"Cab {cab_id} is now {state.value}.")
    else:
        console.write("Failed to change cab state.")
    return MenuSignal.CONTINUE


async def _book_cab(console: Console) -> MenuSignal:
    locations = await console.fleet.locations.get_all()
    if not locations:
        console.write("No locations found. Add locations first.")
        return MenuSignal.CONTINUE
    for loc in locations:
        console.write(f"Location {loc.id}: {loc.city}, {loc.country}")

    from_id = console.ask_int("From location ID")
    to_id = console.ask_int("To location ID")
    try:
        trip, cab = await console.service.book_trip(from_id, to_id)
    except FleetError as exc:
        console.write(str(exc))
        return MenuSignal.CONTINUE

    console.write(f"Trip {trip.id} booked with cab {cab.id}.")
    console.write(f"From: {trip.from_location.city}  To: {trip.to_location.city}")
    console.write(f"Start time: {trip.start_time:%Y-%m-%d %H:%M:%S}")
    return MenuSignal.CONTINUE


async def _complete_trip(console: Console) -> MenuSignal:
    trip_id = console.ask_int("Trip ID")
    if await console.dispatch.complete_trip(trip_id):
        console.write(f"Trip {trip_id} completed.")
    else:
        console.write(f"Trip {trip_id} could not be completed.")
    return MenuSignal.CONTINUE


# ── Trips ─────────────────────────────────────────────────────────────


async def _view_trips(console: Console) -> MenuSignal:
    trips = await console.fleet.trips.get_all()
    if not trips:
        console.write("No trips recorded.")
    for trip in trips:
        cab = f"cab {trip.assigned_cab_id}" if trip.assigned_cab_id else "no cab"
        console.write(
            f"Trip {trip.id}: {trip.from_location.city} -> {trip.to_location.city}, "
            f"{trip.trip_status.value}, {cab}"
        )
    return MenuSignal.CONTINUE


async def _add_trip(console: Console) -> MenuSignal:
    from_id = console.ask_int("From location ID")
    to_id = console.ask_int("To location ID")
    try:
        trip = await console.service.create_trip(from_id, to_id)
    except FleetError as exc:
        console.write(str(exc))
    else:
        console.write(f"Trip {trip.id} created.")
    return MenuSignal.CONTINUE


async def _book_existing_trip(console: Console) -> MenuSignal:
    trip_id = console.ask_int("Trip ID")
    try:
        trip, cab = await console.service.book_existing_trip(trip_id)
    except FleetError as exc:
        console.write(str(exc))
    else:
        console.write(f"Trip {trip.id} booked with cab {cab.id}.")
    return MenuSignal.CONTINUE


async def _remove_trip(console: Console) -> MenuSignal:
    trip_id = console.ask_int("Trip ID")
    if not console.confirm(f"Remove trip {trip_id}?"):
        return MenuSignal.CONTINUE
    try:
        await console.service.remove_trip(trip_id)
    except FleetError as exc:
        console.write(str(exc))
    else:
        console.write(f"Trip {trip_id} removed.")
    return MenuSignal.CONTINUE


# ── Reference records ─────────────────────────────────────────────────


def _ask_car(console: Console, record_id: int = 0) -> Car:
    return Car(
        id=record_id,
        manufacturer=console.ask("Manufacturer"),
        model=console.ask("Model"),
        description=console.ask("Description"),
        manufacture_year=console.ask_int("Manufacture year"),
        km_driven=console.ask_int("Km driven", default=0),
    )


def _ask_driver(console: Console, record_id: int = 0) -> Driver:
    return Driver(
        id=record_id,
        first_name=console.ask("First name"),
        last_name=console.ask("Last name"),
        contact_number=console.ask("Contact number"),
        address=console.ask("Address"),
        date_of_birth=console.ask_date("Date of birth"),
        date_of_joining=console.ask_date("Date of joining"),
    )


def _ask_location(console: Console, record_id: int = 0) -> Location:
    return Location(
        id=record_id,
        city=console.ask("City"),
        country=console.ask("Country"),
        latitude=console.ask_float("Latitude"),
        longitude=console.ask_float("Longitude"),
    )


def _describe(entity) -> str:
    if isinstance(entity, Car):
        return f"Car {entity.id}: {entity.manufacturer} {entity.model} ({entity.manufacture_year})"
    if isinstance(entity, Driver):
        return f"Driver {entity.id}: {entity.full_name} {entity.contact_number}".rstrip()
    return f"Location {entity.id}: {entity.city}, {entity.country}"


def _reference_actions(
    collection: str, label: str, ask: Callable[..., object]
) -> list[MenuAction]:
    def repository(console: Console) -> EntityRepository:
        return getattr(console.fleet, collection)

    async def view(console: Console) -> MenuSignal:
        records = await repository(console).get_all()
        if not records:
            console.write(f"No {collection} found.")
        for record in records:
            console.write(_describe(record))
        return MenuSignal.CONTINUE

    async def add(console: Console) -> MenuSignal:
        record = ask(console)
        if await repository(console).add(record):
            console.write(f"{label} {record.id} added.")
        else:
            console.write(f"Failed to add {label.lower()}.")
        return MenuSignal.CONTINUE

    async def update(console: Console) -> MenuSignal:
        record_id = console.ask_int(f"{label} ID")
        if await repository(console).get_by_id(record_id) is None:
            console.write(f"{label} {record_id} not found.")
            return MenuSignal.CONTINUE
        if await repository(console).update(ask(console, record_id)):
            console.write(f"{label} {record_id} updated.")
        else:
            console.write(f"Failed to update {label.lower()} {record_id}.")
        return MenuSignal.CONTINUE

    async def remove(console: Console) -> MenuSignal:
        record_id = console.ask_int(f"{label} ID")
        if not console.confirm(f"Remove {label.lower()} {record_id}?"):
            return MenuSignal.CONTINUE
        if await repository(console).remove(record_id):
            console.write(f"{label} {record_id} removed.")
        else:
            console.write(f"{label} {record_id} not found.")
        return MenuSignal.CONTINUE

    return [
        MenuAction("V", f"View {collection}", f"List all {collection}", view),
        MenuAction("A", f"Add {label.lower()}", f"Add a new {label.lower()}", add),
        MenuAction("U", f"Update {label.lower()}", f"Edit an existing {label.lower()}", update),
        MenuAction("R", f"Remove {label.lower()}", f"Delete a {label.lower()}", remove),
        MenuAction("B", "Back", "Return to the main menu", _back),
    ]


# ── Insights ──────────────────────────────────────────────────────────


async def _idle_time(console: Console) -> MenuSignal:
    start = console.ask_datetime("Period start")
    end = console.ask_datetime("Period end")
    if start >= end:
        console.write("Start must be before end.")
        return MenuSignal.CONTINUE

    report = cab_idle_report(
        await console.fleet.cabs.get_all(), await console.fleet.trips.get_all(), start, end
    )
    console.write(f"Completed trips in period: {report.completed_trips}")
    for row in report.rows:
        console.write(
            f"Cab {row.cab_id}: idle {row.idle_time}, {row.trip_count} trips, "
            f"{row.idle_percent}% idle"
        )
    console.write(f"Total idle time: {report.total_idle}")
    console.write(f"Average idle time per cab: {report.average_idle}")
    console.write(f"Average trips per cab: {report.average_trips_per_cab:.1f}")
    return MenuSignal.CONTINUE


async def _location_history(console: Console) -> MenuSignal:
    cab_id = console.ask_int("Cab ID")
    if await console.fleet.cabs.get_by_id(cab_id) is None:
        console.write(f"Cab {cab_id} not found.")
        return MenuSignal.CONTINUE

    history = cab_location_history(cab_id, await console.fleet.trips.get_all())
    if not history.trips:
        console.write(f"Cab {cab_id} has no completed trips.")
        return MenuSignal.CONTINUE
    for trip in history.trips:
        console.write(
            f"{trip.start_time:%Y-%m-%d %H:%M} {trip.from_location.city} -> "
            f"{trip.to_location.city}"
        )
    for location_id, count in history.arrivals.most_common(5):
        console.write(f"Visited location {location_id}: {count} times")
    console.write(
        f"Unique pickup locations: {history.unique_from_locations}, "
        f"unique destinations: {history.unique_to_locations}"
    )
    return MenuSignal.CONTINUE


async def _demand(console: Console) -> MenuSignal:
    report = demand_analysis(
        await console.fleet.trips.get_all(), await console.fleet.locations.get_all()
    )
    if not report.total_trips:
        console.write("No completed trips to analyse.")
        return MenuSignal.CONTINUE

    console.write(f"Completed trips: {report.total_trips}")
    for city in report.top_cities:
        console.write(
            f"{city.city}: {city.total} ({city.departures} departures, "
            f"{city.arrivals} arrivals)"
        )
    hour, count = report.peak_hour
    console.write(
        f"Peak hour: {hour:02d}:00 with {count} trips "
        f"({report.peak_hour_intensity}x the hourly average)"
    )
    console.write(f"Busiest weekday: {report.peak_weekday[0]}")
    console.write(f"Busiest month: {report.peak_month[0]}")
    return MenuSignal.CONTINUE


MENUS: dict[MenuId, list[MenuAction]] = {
    MenuId.MAIN: [
        MenuAction("C", "Cabs", "Manage cabs, bookings and trips", _open(MenuId.CABS)),
        MenuAction("R", "Cars", "Manage cars", _open(MenuId.CARS)),
        MenuAction("D", "Drivers", "Manage drivers", _open(MenuId.DRIVERS)),
        MenuAction("T", "Trips", "Manage trips", _open(MenuId.TRIPS)),
        MenuAction("L", "Locations", "Manage locations", _open(MenuId.LOCATIONS)),
        MenuAction("I", "Insights", "Idle time, location history, demand", _open(MenuId.INSIGHTS)),
        MenuAction("X", "Exit", "Leave the application", _exit),
    ],
    MenuId.CABS: [
        MenuAction("V", "View cabs", "List all cabs", _view_cabs),
        MenuAction("A", "Add cab", "Register a cab", _register_cab),
        MenuAction("U", "Update cab", "Change a cab's car and driver", _update_cab),
        MenuAction("R", "Remove cab", "Delete a cab", _remove_cab),
        MenuAction("L", "Change location", "Move a cab", _change_cab_location),
        MenuAction("S", "Change state", "Ground or release a cab", _change_cab_state),
        MenuAction("K", "Book cab", "Book a cab for a new trip", _book_cab),
        MenuAction("C", "Complete trip", "Finish a trip and free its cab", _complete_trip),
        MenuAction("B", "Back", "Return to the main menu", _back),
    ],
    MenuId.TRIPS: [
        MenuAction("V", "View trips", "List all trips", _view_trips),
        MenuAction("A", "Add trip", "Create an unassigned trip", _add_trip),
        MenuAction("K", "Book trip", "Book a cab for an existing trip", _book_existing_trip),
        MenuAction("C", "Complete trip", "Finish a trip and free its cab", _complete_trip),
        MenuAction("R", "Remove trip", "Delete a trip", _remove_trip),
        MenuAction("B", "Back", "Return to the main menu", _back),
    ],
    MenuId.CARS: _reference_actions("cars", "Car", _ask_car),
    MenuId.DRIVERS: _reference_actions("drivers", "Driver", _ask_driver),
    MenuId.LOCATIONS: _reference_actions("locations", "Location", _ask_location),
    MenuId.INSIGHTS: [
        MenuAction("I", "Idle time", "Cab idle time over a period", _idle_time),
        MenuAction("H", "Location history", "A cab's completed trips", _location_history),
        MenuAction("D", "Demand", "Demand by city and time", _demand),
        MenuAction("B", "Back", "Return to the main menu", _back),
    ],
}
