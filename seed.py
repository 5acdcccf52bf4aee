"""
Seed script -- populates the record store with sample data for reviewers.

Run with:
    python seed.py

Creates:
  - 6 locations (Indian metros)
  - 8 cars and 8 drivers
  - 8 idle cabs spread over the locations
  - 3 trips booked through the dispatch engine, 2 of them completed
"""

import asyncio
from datetime import date

from src.domain.entities import Car, Driver, Location
from src.infrastructure.database import async_session_factory, init_models
from src.infrastructure.record_store import RecordStore
from src.infrastructure.repositories import FleetRepository
from src.services.dispatch import DispatchEngine
from src.services.fleet import FleetService


LOCATIONS = [
    {"city": "Mumbai", "country": "India", "latitude": 19.0896, "longitude": 72.8656},
    {"city": "Pune", "country": "India", "latitude": 18.5204, "longitude": 73.8567},
    {"city": "Bengaluru", "country": "India", "latitude": 12.9716, "longitude": 77.5946},
    {"city": "Hyderabad", "country": "India", "latitude": 17.3850, "longitude": 78.4867},
    {"city": "Chennai", "country": "India", "latitude": 13.0827, "longitude": 80.2707},
    {"city": "Delhi", "country": "India", "latitude": 28.7041, "longitude": 77.1025},
]

CARS = [
    {"manufacturer": "Maruti Suzuki", "model": "Dzire", "manufacture_year": 2021, "km_driven": 48000},
    {"manufacturer": "Hyundai", "model": "Aura", "manufacture_year": 2022, "km_driven": 31000},
    {"manufacturer": "Toyota", "model": "Innova Crysta", "manufacture_year": 2020, "km_driven": 92000},
    {"manufacturer": "Honda", "model": "Amaze", "manufacture_year": 2023, "km_driven": 12000},
    {"manufacturer": "Tata", "model": "Tigor EV", "manufacture_year": 2023, "km_driven": 9000},
    {"manufacturer": "Maruti Suzuki", "model": "Ertiga", "manufacture_year": 2019, "km_driven": 110000},
    {"manufacturer": "Kia", "model": "Carens", "manufacture_year": 2022, "km_driven": 27000},
    {"manufacturer": "Hyundai", "model": "Verna", "manufacture_year": 2021, "km_driven": 56000},
]

DRIVERS = [
    {"first_name": "Aarav", "last_name": "Sharma", "contact_number": "+91 98200 00001"},
    {"first_name": "Priya", "last_name": "Patel", "contact_number": "+91 98200 00002"},
    {"first_name": "Rohan", "last_name": "Mehta", "contact_number": "+91 98200 00003"},
    {"first_name": "Sneha", "last_name": "Gupta", "contact_number": "+91 98200 00004"},
    {"first_name": "Vikram", "last_name": "Singh", "contact_number": "+91 98200 00005"},
    {"first_name": "Ananya", "last_name": "Reddy", "contact_number": "+91 98200 00006"},
    {"first_name": "Karan", "last_name": "Joshi", "contact_number": "+91 98200 00007"},
    {"first_name": "Meera", "last_name": "Nair", "contact_number": "+91 98200 00008"},
]

# (car index, driver index, location index)
CABS = [(0, 0, 0), (1, 1, 0), (2, 2, 1), (3, 3, 2), (4, 4, 2), (5, 5, 3), (6, 6, 4), (7, 7, 5)]

# (from index, to index, complete?)
TRIPS = [(0, 1, True), (2, 4, True), (0, 5, False)]


async def seed():
    await init_models()
    fleet = FleetRepository(RecordStore(async_session_factory))
    service = FleetService(fleet, DispatchEngine(fleet))

    if await fleet.cabs.get_all():
        print("Record store already seeded. Skipping.")
        return

    # ── Reference records ─────────────────────────────────────────────
    locations = []
    for loc in LOCATIONS:
        record = Location(**loc)
        await fleet.locations.add(record)
        locations.append(record)
    print(f"  Created {len(locations)} locations")

    cars = []
    for c in CARS:
        record = Car(description=f"{c['manufacturer']} {c['model']}", **c)
        await fleet.cars.add(record)
        cars.append(record)
    print(f"  Created {len(cars)} cars")

    drivers = []
    for d in DRIVERS:
        record = Driver(date_of_joining=date(2024, 1, 15), **d)
        await fleet.drivers.add(record)
        drivers.append(record)
    print(f"  Created {len(drivers)} drivers")

    # ── Cabs ──────────────────────────────────────────────────────────
    for car_idx, driver_idx, loc_idx in CABS:
        await service.register_cab(
            cars[car_idx].id, drivers[driver_idx].id, locations[loc_idx].id
        )
    print(f"  Created {len(CABS)} cabs")

    # ── Trips ─────────────────────────────────────────────────────────
    for from_idx, to_idx, complete in TRIPS:
        trip, cab = await service.book_trip(locations[from_idx].id, locations[to_idx].id)
        if complete:
            await service.dispatch.complete_trip(trip.id)
    print(f"  Created {len(TRIPS)} trips")

    print("\n✅ Seed complete!")


if __name__ == "__main__":
    asyncio.run(seed())
