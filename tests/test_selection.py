"""Unit tests for longest-idle cab selection."""

import random
from datetime import timedelta

from src.domain.entities import Cab
from src.domain.enums import WorkState
from src.domain.selection import available_at, select_longest_idle
from tests.conftest import T0


def _cab(cab_id, location_id=1, idle_minutes=0, state=WorkState.IDLE) -> Cab:
    return Cab(
        id=cab_id,
        current_location_id=location_id,
        work_state=state,
        last_idle_time=T0 - timedelta(minutes=idle_minutes),
    )


class TestAvailability:
    def test_only_idle_cabs_at_location(self):
        cabs = [
            _cab(1),
            _cab(2, location_id=2),
            _cab(3, state=WorkState.GROUNDED),
            _cab(4, state=WorkState.ON_TRIP),
            _cab(5),
        ]
        assert [c.id for c in available_at(cabs, 1)] == [1, 5]

    def test_no_cabs_anywhere(self):
        assert available_at([], 1) == []


class TestLongestIdle:
    def test_empty_candidates(self):
        assert select_longest_idle([], T0, random.Random(1)) is None

    def test_picks_longest_waiting_cab(self):
        cabs = [_cab(1, idle_minutes=5), _cab(2, idle_minutes=30), _cab(3, idle_minutes=10)]
        assert select_longest_idle(cabs, T0, random.Random(1)).id == 2

    def test_grounded_cab_never_chosen(self):
        # grounded for hours, but filtered out before ranking
        cabs = [_cab(1, idle_minutes=600, state=WorkState.GROUNDED), _cab(2, idle_minutes=1)]
        assert select_longest_idle(available_at(cabs, 1), T0, random.Random(1)).id == 2

    def test_tie_break_reaches_every_tied_cab(self):
        cabs = [_cab(1, idle_minutes=20), _cab(2, idle_minutes=20), _cab(3, idle_minutes=5)]
        rng = random.Random(12345)
        chosen = {select_longest_idle(cabs, T0, rng).id for _ in range(200)}
        assert chosen == {1, 2}

    def test_seeded_tie_break_is_reproducible(self):
        cabs = [_cab(i, idle_minutes=20) for i in range(1, 6)]
        first = [select_longest_idle(cabs, T0, random.Random(99)).id for _ in range(5)]
        second = [select_longest_idle(cabs, T0, random.Random(99)).id for _ in range(5)]
        assert first == second
