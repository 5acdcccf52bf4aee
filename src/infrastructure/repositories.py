"""
Repository Pattern -- typed, fail-soft CRUD over the record store.

``EntityRepository`` is bound to one collection and one entity type and
(de)serializes whole collections through a pydantic ``TypeAdapter``.
``FleetRepository`` aggregates the five collections and adds
``save_together`` for writes that must land atomically (cab + trip).

Every public method catches persistence and serialization errors, logs
them with the operation and entity type, and reports ``False`` /
``None`` / ``[]`` instead of raising.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Generic, Optional, TypeVar, Union

from pydantic import TypeAdapter

from .record_store import Record, RecordStore
from src.domain.entities import Cab, Car, Driver, Location, Trip
from src.domain.enums import Collection

logger = logging.getLogger(__name__)

E = TypeVar("E", Cab, Trip, Car, Driver, Location)
AnyEntity = Union[Cab, Trip, Car, Driver, Location]


def next_id(entities: list) -> int:
    """max(existing ids) + 1, or 1 for an empty collection."""
    return max((e.id for e in entities), default=0) + 1


class EntityRepository(Generic[E]):
    def __init__(self, store: RecordStore, collection: Collection, entity_type: type[E]):
        self.store = store
        self.collection = collection
        self.entity_type = entity_type
        self._adapter = TypeAdapter(list[entity_type])

    @property
    def entity_name(self) -> str:
        return self.entity_type.__name__

    def load(self, records: list[Record]) -> list[E]:
        return self._adapter.validate_python(records)

    def dump(self, entities: list[E]) -> list[Record]:
        return self._adapter.dump_python(entities, mode="json")

    async def get_all(self) -> list[E]:
        try:
            return self.load(await self.store.read(self.collection.value))
        except Exception:
            logger.exception("get_all failed for %s", self.entity_name)
            return []

    async def get_by_id(self, entity_id: int) -> Optional[E]:
        for entity in await self.get_all():
            if entity.id == entity_id:
                return entity
        return None

    async def add(self, entity: E) -> bool:
        """Append *entity*; an id of 0 is replaced by the next free id."""
        try:
            async with self.store.transaction() as tx:
                entities = self.load(await tx.read(self.collection.value))
                if entity.id == 0:
                    entity.id = next_id(entities)
                elif any(e.id == entity.id for e in entities):
                    logger.warning(
                        "add rejected: %s %d already exists",
                        self.entity_name,
                        entity.id,
                    )
                    return False
                entities.append(entity)
                await tx.write(self.collection.value, self.dump(entities))
            return True
        except Exception:
            logger.exception("add failed for %s", self.entity_name)
            return False

    async def update(self, entity: E) -> bool:
        try:
            async with self.store.transaction() as tx:
                entities = self.load(await tx.read(self.collection.value))
                index = _index_of(entities, entity.id)
                if index is None:
                    return False
                entities[index] = entity
                await tx.write(self.collection.value, self.dump(entities))
            return True
        except Exception:
            logger.exception("update failed for %s %s", self.entity_name, entity.id)
            return False

    async def remove(self, entity_id: int) -> bool:
        try:
            async with self.store.transaction() as tx:
                entities = self.load(await tx.read(self.collection.value))
                index = _index_of(entities, entity_id)
                if index is None:
                    return False
                del entities[index]
                await tx.write(self.collection.value, self.dump(entities))
            return True
        except Exception:
            logger.exception("remove failed for %s %s", self.entity_name, entity_id)
            return False


def _index_of(entities: list, entity_id: int) -> Optional[int]:
    for i, e in enumerate(entities):
        if e.id == entity_id:
            return i
    return None


class FleetRepository:
    """Typed access to every fleet collection behind one record store."""

    def __init__(self, store: RecordStore):
        self.store = store
        self.cabs = EntityRepository(store, Collection.CABS, Cab)
        self.trips = EntityRepository(store, Collection.TRIPS, Trip)
        self.cars = EntityRepository(store, Collection.CARS, Car)
        self.drivers = EntityRepository(store, Collection.DRIVERS, Driver)
        self.locations = EntityRepository(store, Collection.LOCATIONS, Location)
        self._by_type: dict[type, EntityRepository] = {
            repo.entity_type: repo
            for repo in (self.cabs, self.trips, self.cars, self.drivers, self.locations)
        }

    def repository_for(self, entity: AnyEntity) -> EntityRepository:
        return self._by_type[type(entity)]

    async def save_together(self, *entities: AnyEntity) -> bool:
        """Replace every entity in one transaction: all land or none do.

        Returns False without writing anything if any entity no longer
        exists in its collection.
        """
        grouped: dict[EntityRepository, list[AnyEntity]] = defaultdict(list)
        for entity in entities:
            grouped[self.repository_for(entity)].append(entity)

        try:
            async with self.store.transaction() as tx:
                batches: dict[str, list[Record]] = {}
                for repo, changed in grouped.items():
                    current = repo.load(await tx.read(repo.collection.value))
                    for entity in changed:
                        index = _index_of(current, entity.id)
                        if index is None:
                            logger.warning(
                                "save_together aborted: %s %d not found",
                                repo.entity_name,
                                entity.id,
                            )
                            return False
                        current[index] = entity
                    batches[repo.collection.value] = repo.dump(current)
                for name, records in batches.items():
                    await tx.write(name, records)
            return True
        except Exception:
            logger.exception(
                "save_together failed for %s",
                ", ".join(f"{type(e).__name__} {e.id}" for e in entities),
            )
            return False
