"""
Fleet insights -- read-only analytics over completed trips.

* **Idle time**: per cab, the time inside an analysis window not spent on
  completed trips (gap before the first trip, gaps between trips, gap
  after the last trip).
* **Location history**: a cab's completed trips in start order with
  arrival / departure counts per location.
* **Demand**: departures + arrivals per city, trips per hour, weekday
  and month, and how sharply the peak hour stands out.

All functions are pure: they take snapshots loaded by the caller.
"""

from __future__ import annotations

import calendar
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Iterable, Optional

from .entities import Cab, Location, Trip
from .enums import TripStatus


def _completed(trips: Iterable[Trip]) -> list[Trip]:
    return [
        t
        for t in trips
        if t.trip_status == TripStatus.COMPLETED
        and t.start_time is not None
        and t.end_time is not None
    ]


# ── Idle time ─────────────────────────────────────────────────────────


@dataclass
class CabIdleRow:
    cab_id: int
    idle_time: timedelta
    trip_count: int
    idle_percent: float


@dataclass
class IdleReport:
    start: datetime
    end: datetime
    completed_trips: int
    rows: list[CabIdleRow] = field(default_factory=list)

    @property
    def total_idle(self) -> timedelta:
        return sum((r.idle_time for r in self.rows), timedelta(0))

    @property
    def average_idle(self) -> timedelta:
        return self.total_idle / len(self.rows) if self.rows else timedelta(0)

    @property
    def total_trips(self) -> int:
        return sum(r.trip_count for r in self.rows)

    @property
    def average_trips_per_cab(self) -> float:
        return self.total_trips / len(self.rows) if self.rows else 0.0


def _idle_within(trips: list[Trip], start: datetime, end: datetime) -> timedelta:
    """Sum of positive gaps around and between *trips* (sorted by start)."""
    idle = timedelta(0)
    edges = [start]
    for t in trips:
        edges.extend((t.start_time, t.end_time))
    edges.append(end)
    # pairs: (start, first.start), (t.end, next.start) ..., (last.end, end)
    for gap_start, gap_end in zip(edges[0::2], edges[1::2]):
        if gap_end > gap_start:
            idle += gap_end - gap_start
    return idle


def cab_idle_report(
    cabs: Iterable[Cab], trips: Iterable[Trip], start: datetime, end: datetime
) -> IdleReport:
    if start >= end:
        raise ValueError("start must be before end")

    in_window = [t for t in _completed(trips) if t.start_time >= start and t.end_time <= end]
    period = end - start
    report = IdleReport(start=start, end=end, completed_trips=len(in_window))

    for cab in cabs:
        cab_trips = sorted(
            (t for t in in_window if t.assigned_cab_id == cab.id),
            key=lambda t: t.start_time,
        )
        idle = _idle_within(cab_trips, start, end)
        report.rows.append(
            CabIdleRow(
                cab_id=cab.id,
                idle_time=idle,
                trip_count=len(cab_trips),
                idle_percent=round(idle / period * 100, 1),
            )
        )

    report.rows.sort(key=lambda r: r.idle_time, reverse=True)
    return report


# ── Location history ──────────────────────────────────────────────────


@dataclass
class LocationHistory:
    cab_id: int
    trips: list[Trip]
    arrivals: Counter
    departures: Counter

    @property
    def unique_from_locations(self) -> int:
        return len(self.departures)

    @property
    def unique_to_locations(self) -> int:
        return len(self.arrivals)


def cab_location_history(cab_id: int, trips: Iterable[Trip]) -> LocationHistory:
    cab_trips = sorted(
        (t for t in _completed(trips) if t.assigned_cab_id == cab_id),
        key=lambda t: t.start_time,
    )
    return LocationHistory(
        cab_id=cab_id,
        trips=cab_trips,
        arrivals=Counter(t.to_location.id for t in cab_trips),
        departures=Counter(t.from_location.id for t in cab_trips),
    )


# ── Demand ────────────────────────────────────────────────────────────


@dataclass
class CityDemand:
    city: str
    departures: int = 0
    arrivals: int = 0

    @property
    def total(self) -> int:
        return self.departures + self.arrivals


@dataclass
class DemandReport:
    total_trips: int
    top_cities: list[CityDemand]
    by_hour: Counter
    by_weekday: Counter
    by_month: Counter

    @property
    def peak_hour(self) -> Optional[tuple[int, int]]:
        return _peak(self.by_hour)

    @property
    def peak_weekday(self) -> Optional[tuple[str, int]]:
        return _peak(self.by_weekday)

    @property
    def peak_month(self) -> Optional[tuple[str, int]]:
        return _peak(self.by_month)

    @property
    def peak_hour_intensity(self) -> float:
        """Peak-hour trips relative to the average over active hours."""
        if not self.by_hour:
            return 0.0
        average = sum(self.by_hour.values()) / len(self.by_hour)
        return round(self.peak_hour[1] / average, 1)


def _peak(counter: Counter):
    top = counter.most_common(1)
    return top[0] if top else None


def demand_analysis(
    trips: Iterable[Trip], locations: Iterable[Location], top_n: int = 10
) -> DemandReport:
    cities = {loc.id: loc.city for loc in locations}
    completed = _completed(trips)

    demand: dict[str, CityDemand] = {}
    for t in completed:
        origin = cities.get(t.from_location.id, t.from_location.city)
        destination = cities.get(t.to_location.id, t.to_location.city)
        demand.setdefault(origin, CityDemand(origin)).departures += 1
        demand.setdefault(destination, CityDemand(destination)).arrivals += 1

    top_cities = sorted(demand.values(), key=lambda d: d.total, reverse=True)[:top_n]
    return DemandReport(
        total_trips=len(completed),
        top_cities=top_cities,
        by_hour=Counter(t.start_time.hour for t in completed),
        by_weekday=Counter(calendar.day_name[t.start_time.weekday()] for t in completed),
        by_month=Counter(calendar.month_name[t.start_time.month] for t in completed),
    )
