"""Run the interactive console: ``python -m src.cli``."""

import asyncio
import logging
import random

from src.cli.menu import Console
from src.config import settings
from src.infrastructure.database import async_session_factory, init_models
from src.infrastructure.record_store import RecordStore
from src.infrastructure.redis_client import build_lock_manager
from src.infrastructure.repositories import FleetRepository
from src.services.dispatch import DispatchEngine


async def main() -> None:
    await init_models()
    fleet = FleetRepository(RecordStore(async_session_factory))
    dispatch = DispatchEngine(
        fleet,
        locks=build_lock_manager(settings),
        rng=random.Random(settings.dispatch_random_seed),
    )
    await Console(fleet, dispatch).run()


if __name__ == "__main__":
    logging.basicConfig(level=settings.log_level)
    asyncio.run(main())
