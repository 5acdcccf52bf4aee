"""Unit tests for idle-time, location-history and demand analytics."""

from datetime import datetime, timedelta, timezone

import pytest

from src.domain.entities import Cab, Location, Trip
from src.domain.enums import TripStatus
from src.domain.insights import cab_idle_report, cab_location_history, demand_analysis

MUMBAI = Location(id=1, city="Mumbai", country="India")
PUNE = Location(id=2, city="Pune", country="India")
DELHI = Location(id=3, city="Delhi", country="India")

# Monday 3 March 2025
DAY = datetime(2025, 3, 3, tzinfo=timezone.utc)


def _done(trip_id, cab_id, start_hour, hours=1, origin=MUMBAI, destination=PUNE) -> Trip:
    start = DAY + timedelta(hours=start_hour)
    return Trip(
        id=trip_id,
        from_location=origin,
        to_location=destination,
        trip_status=TripStatus.COMPLETED,
        assigned_cab_id=cab_id,
        booking_time=start,
        start_time=start,
        end_time=start + timedelta(hours=hours),
    )


class TestIdleReport:
    def test_gaps_around_and_between_trips(self):
        cabs = [Cab(id=1), Cab(id=2)]
        trips = [_done(1, 1, 2), _done(2, 1, 6, hours=2)]

        report = cab_idle_report(cabs, trips, DAY, DAY + timedelta(hours=10))

        rows = {r.cab_id: r for r in report.rows}
        # 10h window minus 3h on trips
        assert rows[1].idle_time == timedelta(hours=7)
        assert rows[1].trip_count == 2
        assert rows[1].idle_percent == 70.0
        assert rows[2].idle_time == timedelta(hours=10)
        assert rows[2].idle_percent == 100.0

    def test_rows_sorted_by_idle_time(self):
        cabs = [Cab(id=1), Cab(id=2)]
        report = cab_idle_report(cabs, [_done(1, 1, 1)], DAY, DAY + timedelta(hours=4))
        assert [r.cab_id for r in report.rows] == [2, 1]

    def test_totals_and_averages(self):
        cabs = [Cab(id=1), Cab(id=2)]
        report = cab_idle_report(
            cabs, [_done(1, 1, 0, hours=2)], DAY, DAY + timedelta(hours=4)
        )
        assert report.total_idle == timedelta(hours=6)
        assert report.average_idle == timedelta(hours=3)
        assert report.total_trips == 1
        assert report.average_trips_per_cab == 0.5
        assert report.completed_trips == 1

    def test_trips_outside_window_or_open_are_ignored(self):
        open_trip = _done(3, 1, 2)
        open_trip.trip_status = TripStatus.IN_PROGRESS
        open_trip.end_time = None
        trips = [_done(1, 1, -3), _done(2, 1, 11), open_trip]

        report = cab_idle_report([Cab(id=1)], trips, DAY, DAY + timedelta(hours=10))

        assert report.completed_trips == 0
        assert report.rows[0].idle_time == timedelta(hours=10)

    def test_empty_fleet(self):
        report = cab_idle_report([], [], DAY, DAY + timedelta(hours=1))
        assert report.rows == []
        assert report.average_idle == timedelta(0)
        assert report.average_trips_per_cab == 0.0

    def test_inverted_window_rejected(self):
        with pytest.raises(ValueError):
            cab_idle_report([], [], DAY, DAY)


class TestLocationHistory:
    def test_orders_trips_and_counts_locations(self):
        trips = [
            _done(1, 7, 9, origin=PUNE, destination=MUMBAI),
            _done(2, 7, 1),
            _done(3, 7, 4, origin=PUNE, destination=DELHI),
            _done(4, 8, 2),
        ]

        history = cab_location_history(7, trips)

        assert [t.id for t in history.trips] == [2, 3, 1]
        assert history.departures[PUNE.id] == 2
        assert history.arrivals.most_common(1)[0][1] == 1
        assert history.unique_from_locations == 2
        assert history.unique_to_locations == 3

    def test_cab_without_trips(self):
        history = cab_location_history(5, [_done(1, 7, 1)])
        assert history.trips == []
        assert history.unique_from_locations == 0


class TestDemand:
    def test_city_totals_and_time_buckets(self):
        trips = [
            _done(1, 1, 9),
            _done(2, 2, 9, origin=PUNE, destination=MUMBAI),
            _done(3, 1, 18, origin=DELHI, destination=MUMBAI),
        ]

        report = demand_analysis(trips, [MUMBAI, PUNE, DELHI])

        assert report.total_trips == 3
        top = report.top_cities[0]
        assert (top.city, top.departures, top.arrivals, top.total) == ("Mumbai", 1, 2, 3)
        assert report.peak_hour == (9, 2)
        assert report.peak_weekday == ("Monday", 3)
        assert report.peak_month == ("March", 3)
        # 2 trips at peak vs 1.5 average over active hours
        assert report.peak_hour_intensity == 1.3

    def test_missing_location_falls_back_to_snapshot(self):
        report = demand_analysis([_done(1, 1, 9)], [])
        assert {c.city for c in report.top_cities} == {"Mumbai", "Pune"}

    def test_renamed_location_uses_current_city(self):
        renamed = Location(id=1, city="Bombay", country="India")
        report = demand_analysis([_done(1, 1, 9)], [renamed, PUNE])
        assert "Bombay" in {c.city for c in report.top_cities}

    def test_top_n_limits_cities(self):
        trips = [_done(1, 1, 9), _done(2, 1, 10, origin=DELHI, destination=PUNE)]
        assert len(demand_analysis(trips, [], top_n=2).top_cities) == 2

    def test_no_trips(self):
        report = demand_analysis([], [MUMBAI])
        assert report.total_trips == 0
        assert report.peak_hour is None
        assert report.peak_hour_intensity == 0.0
