"""FastAPI dependency injection helpers.

The repository and dispatch engine are process-wide singletons: the
engine's in-process locks only serialize callers that share it.
"""

import random

from fastapi import Depends

from src.config import settings
from src.infrastructure.database import async_session_factory
from src.infrastructure.record_store import RecordStore
from src.infrastructure.redis_client import build_lock_manager
from src.infrastructure.repositories import FleetRepository
from src.services.dispatch import DispatchEngine
from src.services.fleet import FleetService

_fleet = FleetRepository(RecordStore(async_session_factory))
_dispatch = DispatchEngine(
    _fleet,
    locks=build_lock_manager(settings),
    rng=random.Random(settings.dispatch_random_seed),
)


def get_fleet() -> FleetRepository:
    return _fleet


def get_dispatch() -> DispatchEngine:
    return _dispatch


def get_fleet_service(
    fleet: FleetRepository = Depends(get_fleet),
    dispatch: DispatchEngine = Depends(get_dispatch),
) -> FleetService:
    return FleetService(fleet, dispatch)
