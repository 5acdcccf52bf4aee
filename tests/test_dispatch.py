"""
Dispatch engine tests: cab management, booking and trip completion
against a real (SQLite) record store.
"""

import pytest

from src.domain.enums import TripStatus, WorkState
from src.infrastructure.repositories import FleetRepository
from src.services.dispatch import DispatchEngine


async def _assert_consistent(fleet: FleetRepository) -> None:
    """Every open, assigned trip is held by an ON_TRIP cab and vice versa."""
    cabs = {c.id: c for c in await fleet.cabs.get_all()}
    trips = {t.id: t for t in await fleet.trips.get_all()}

    for cab in cabs.values():
        assert (cab.current_trip_id is not None) == (cab.work_state == WorkState.ON_TRIP)
        if cab.current_trip_id is not None:
            trip = trips[cab.current_trip_id]
            assert trip.trip_status == TripStatus.IN_PROGRESS
            assert trip.assigned_cab_id == cab.id

    for trip in trips.values():
        if trip.trip_status == TripStatus.COMPLETED:
            assert trip.assigned_cab_id is not None
            assert trip.end_time >= trip.start_time


class TestBookingScenario:
    @pytest.mark.asyncio
    async def test_register_book_complete(self, fleet, dispatch, clock, add_cab, add_trip):
        cab = await add_cab(location_id=1)
        trip = await add_trip(0, 1)

        clock.advance(minutes=5)
        booked = await dispatch.book_cab_for_trip(trip.id, 1)

        assert booked.id == cab.id
        assert booked.work_state == WorkState.ON_TRIP
        assert booked.current_trip_id == trip.id
        stored_trip = await fleet.trips.get_by_id(trip.id)
        assert stored_trip.assigned_cab_id == cab.id
        assert stored_trip.start_time == clock.now
        await _assert_consistent(fleet)

        finished_at = clock.advance(minutes=40)
        assert await dispatch.complete_trip(trip.id)

        stored_trip = await fleet.trips.get_by_id(trip.id)
        stored_cab = await fleet.cabs.get_by_id(cab.id)
        assert stored_trip.trip_status == TripStatus.COMPLETED
        assert stored_trip.end_time == finished_at
        assert stored_cab.work_state == WorkState.IDLE
        assert stored_cab.current_trip_id is None
        assert stored_cab.last_idle_time == finished_at
        assert stored_cab.completed_trips == [trip.id]
        assert stored_cab.total_trips_count == 1
        await _assert_consistent(fleet)

    @pytest.mark.asyncio
    async def test_completion_does_not_move_cab(self, fleet, dispatch, add_cab, add_trip):
        cab = await add_cab(location_id=1)
        trip = await add_trip(0, 1)
        await dispatch.book_cab_for_trip(trip.id, 1)
        await dispatch.complete_trip(trip.id)

        assert (await fleet.cabs.get_by_id(cab.id)).current_location_id == 1

    @pytest.mark.asyncio
    async def test_longest_idle_cab_wins(self, dispatch, add_cab, add_trip):
        await add_cab(location_id=1, idle_minutes=5)
        veteran = await add_cab(location_id=1, idle_minutes=50)
        await add_cab(location_id=2, idle_minutes=500)
        trip = await add_trip(0, 2)

        assert (await dispatch.book_cab_for_trip(trip.id, 1)).id == veteran.id

    @pytest.mark.asyncio
    async def test_grounded_cab_is_skipped(self, dispatch, add_cab, add_trip):
        await add_cab(location_id=1, idle_minutes=90, state=WorkState.GROUNDED)
        fresh = await add_cab(location_id=1, idle_minutes=1)
        trip = await add_trip()

        assert (await dispatch.book_cab_for_trip(trip.id, 1)).id == fresh.id

    @pytest.mark.asyncio
    async def test_equally_idle_cabs_are_both_chosen(self, fleet, dispatch, add_cab, add_trip):
        # the clock never moves, so completion leaves both cabs tied again
        first = await add_cab(location_id=1)
        second = await add_cab(location_id=1)
        await add_cab(location_id=2, idle_minutes=60)

        chosen = []
        for _ in range(40):
            trip = await add_trip(0, 1)
            cab = await dispatch.book_cab_for_trip(trip.id, 1)
            chosen.append(cab.id)
            assert await dispatch.complete_trip(trip.id)

        assert set(chosen) == {first.id, second.id}
        await _assert_consistent(fleet)


class TestBookingFailures:
    @pytest.mark.asyncio
    async def test_no_available_cab_leaves_trip_untouched(self, fleet, dispatch, add_cab, add_trip):
        await add_cab(location_id=2)
        trip = await add_trip(0, 1)
        before = await fleet.trips.get_by_id(trip.id)

        assert await dispatch.book_cab_for_trip(trip.id, 1) is None
        assert await fleet.trips.get_by_id(trip.id) == before

    @pytest.mark.asyncio
    async def test_unknown_trip(self, dispatch, add_cab):
        await add_cab(location_id=1)
        assert await dispatch.book_cab_for_trip(404, 1) is None

    @pytest.mark.asyncio
    async def test_trip_already_assigned(self, fleet, dispatch, add_cab, add_trip):
        first = await add_cab(location_id=1)
        await add_cab(location_id=1)
        trip = await add_trip()
        await dispatch.book_cab_for_trip(trip.id, 1)

        assert await dispatch.book_cab_for_trip(trip.id, 1) is None
        assert (await fleet.trips.get_by_id(trip.id)).assigned_cab_id == first.id
        await _assert_consistent(fleet)

    @pytest.mark.asyncio
    async def test_each_cab_serves_one_trip(self, fleet, dispatch, add_cab, add_trip):
        await add_cab(location_id=1)
        first, second = await add_trip(), await add_trip()

        assert await dispatch.book_cab_for_trip(first.id, 1) is not None
        assert await dispatch.book_cab_for_trip(second.id, 1) is None
        await _assert_consistent(fleet)


class TestCompletion:
    @pytest.mark.asyncio
    async def test_second_completion_fails_without_double_append(
        self, fleet, dispatch, add_cab, add_trip
    ):
        cab = await add_cab(location_id=1)
        trip = await add_trip()
        await dispatch.book_cab_for_trip(trip.id, 1)

        assert await dispatch.complete_trip(trip.id)
        assert not await dispatch.complete_trip(trip.id)
        assert (await fleet.cabs.get_by_id(cab.id)).completed_trips == [trip.id]

    @pytest.mark.asyncio
    async def test_unassigned_trip_cannot_complete(self, fleet, dispatch, add_trip):
        trip = await add_trip()
        assert not await dispatch.complete_trip(trip.id)
        assert (await fleet.trips.get_by_id(trip.id)).trip_status == TripStatus.IN_PROGRESS

    @pytest.mark.asyncio
    async def test_unknown_trip(self, dispatch):
        assert not await dispatch.complete_trip(404)

    @pytest.mark.asyncio
    async def test_cab_grounded_mid_trip_is_released(self, fleet, dispatch, add_cab, add_trip):
        cab = await add_cab(location_id=1)
        trip = await add_trip()
        await dispatch.book_cab_for_trip(trip.id, 1)
        assert await dispatch.change_cab_state(cab.id, WorkState.GROUNDED)

        assert await dispatch.complete_trip(trip.id)

        stored = await fleet.cabs.get_by_id(cab.id)
        assert stored.work_state == WorkState.IDLE
        assert stored.completed_trips == [trip.id]
        await _assert_consistent(fleet)

    @pytest.mark.asyncio
    async def test_rebooked_cab_keeps_its_new_trip(self, fleet, dispatch, add_cab, add_trip):
        cab = await add_cab(location_id=1)
        old, new = await add_trip(), await add_trip()
        await dispatch.book_cab_for_trip(old.id, 1)
        await dispatch.change_cab_state(cab.id, WorkState.GROUNDED)
        await dispatch.change_cab_state(cab.id, WorkState.IDLE)
        await dispatch.book_cab_for_trip(new.id, 1)

        assert await dispatch.complete_trip(old.id)

        stored = await fleet.cabs.get_by_id(cab.id)
        assert stored.work_state == WorkState.ON_TRIP
        assert stored.current_trip_id == new.id
        assert stored.completed_trips == [old.id]
        await _assert_consistent(fleet)


class TestCabManagement:
    @pytest.mark.asyncio
    async def test_change_location(self, fleet, dispatch, add_cab, locations):
        cab = await add_cab(location_id=1)
        assert await dispatch.change_cab_location(cab.id, 3)
        assert (await fleet.cabs.get_by_id(cab.id)).current_location_id == 3

    @pytest.mark.asyncio
    async def test_change_location_unknown_cab_or_location(self, dispatch, add_cab):
        cab = await add_cab(location_id=1)
        assert not await dispatch.change_cab_location(99, 2)
        assert not await dispatch.change_cab_location(cab.id, 99)

    @pytest.mark.asyncio
    async def test_ground_and_release_resets_idle_clock(self, fleet, dispatch, clock, add_cab):
        cab = await add_cab(location_id=1, idle_minutes=30)
        assert await dispatch.change_cab_state(cab.id, WorkState.GROUNDED)

        released_at = clock.advance(hours=2)
        assert await dispatch.change_cab_state(cab.id, WorkState.IDLE)

        stored = await fleet.cabs.get_by_id(cab.id)
        assert stored.work_state == WorkState.IDLE
        assert stored.last_idle_time == released_at

    @pytest.mark.asyncio
    async def test_same_state_is_a_no_op(self, fleet, dispatch, add_cab):
        cab = await add_cab(location_id=1, idle_minutes=30)
        before = await fleet.cabs.get_by_id(cab.id)

        assert await dispatch.change_cab_state(cab.id, WorkState.IDLE)
        assert await fleet.cabs.get_by_id(cab.id) == before

    @pytest.mark.asyncio
    async def test_on_trip_cannot_be_set_by_hand(self, fleet, dispatch, add_cab):
        cab = await add_cab(location_id=1)
        assert not await dispatch.change_cab_state(cab.id, WorkState.ON_TRIP)
        assert (await fleet.cabs.get_by_id(cab.id)).work_state == WorkState.IDLE
        await _assert_consistent(fleet)

    @pytest.mark.asyncio
    async def test_unknown_cab_state_change(self, dispatch):
        assert not await dispatch.change_cab_state(99, WorkState.GROUNDED)

    @pytest.mark.asyncio
    async def test_available_cabs_at_location(self, dispatch, add_cab):
        idle = await add_cab(location_id=1)
        await add_cab(location_id=1, state=WorkState.GROUNDED)
        await add_cab(location_id=2)

        assert [c.id for c in await dispatch.get_available_cabs_at_location(1)] == [idle.id]
        assert await dispatch.get_available_cabs_at_location(3) == []


class TestFailedPersistence:
    @pytest.mark.asyncio
    async def test_failed_joint_write_keeps_both_records(
        self, fleet, dispatch, add_cab, add_trip, monkeypatch, caplog
    ):
        cab = await add_cab(location_id=1)
        trip = await add_trip()

        async def refuse(*entities):
            return False

        monkeypatch.setattr(fleet, "save_together", refuse)
        assert await dispatch.book_cab_for_trip(trip.id, 1) is None

        assert "not persisted" in caplog.text
        assert (await fleet.cabs.get_by_id(cab.id)).work_state == WorkState.IDLE
        assert (await fleet.trips.get_by_id(trip.id)).assigned_cab_id is None

    @pytest.mark.asyncio
    async def test_engine_never_raises(self, clock):
        class Exploding(FleetRepository):
            def __init__(self):
                pass

            def __getattr__(self, name):
                raise RuntimeError("store unavailable")

        engine = DispatchEngine(Exploding(), clock=clock)
        assert await engine.book_cab_for_trip(1, 1) is None
        assert not await engine.complete_trip(1)
        assert not await engine.change_cab_state(1, WorkState.GROUNDED)
        assert not await engine.change_cab_location(1, 1)
        assert await engine.get_available_cabs_at_location(1) == []
