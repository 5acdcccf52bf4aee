"""
Longest-Idle Cab Selection
==========================

Among the IDLE cabs at the pickup location, the one that has waited
longest since its last trip gets the next one.

1. **Filter**     -- ``current_location_id == pickup`` and ``IDLE``.
2. **Rank**       -- idle duration = ``now - last_idle_time``.
3. **Tie-break**  -- cabs sharing the maximum idle duration are chosen
   uniformly at random from the supplied ``random.Random``; seed it for
   reproducible selection.

Complexity: O(n) in the number of candidate cabs.
"""

from __future__ import annotations

import random
from datetime import datetime
from typing import Iterable, Optional

from .entities import Cab
from .enums import WorkState


def is_available_at(cab: Cab, location_id: int) -> bool:
    return cab.current_location_id == location_id and cab.work_state == WorkState.IDLE


def available_at(cabs: Iterable[Cab], location_id: int) -> list[Cab]:
    """Storage-ordered IDLE cabs parked at *location_id*."""
    return [c for c in cabs if is_available_at(c, location_id)]


def select_longest_idle(
    candidates: list[Cab], now: datetime, rng: random.Random
) -> Optional[Cab]:
    if not candidates:
        return None
    longest = max(c.idle_duration(now) for c in candidates)
    tied = [c for c in candidates if c.idle_duration(now) == longest]
    if len(tied) == 1:
        return tied[0]
    return rng.choice(tied)
