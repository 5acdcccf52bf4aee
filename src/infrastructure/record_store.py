"""
Record store -- durable, collection-addressed storage.

Each logical collection (``cabs``, ``trips`` ...) is one serialized unit:
a JSON array in a single ``record_collections`` row.  Writes always
replace the whole collection.

Concurrency
-----------
* ``transaction()`` opens one database transaction, selects the touched
  rows ``FOR UPDATE`` (PostgreSQL) and holds a process-wide
  ``asyncio.Lock`` so read-modify-write cycles never interleave.
* ``write_many`` replaces several collections atomically: all of them
  commit or none do.

Errors (``SQLAlchemyError``, serialization failures) propagate; callers
decide how to report them.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from .models import RecordCollectionModel

Record = dict[str, Any]


class StoreTransaction:
    """Read / write handle bound to one open transaction."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self._rows: dict[str, RecordCollectionModel] = {}

    async def _row(self, name: str) -> RecordCollectionModel | None:
        if name not in self._rows:
            result = await self.session.execute(
                select(RecordCollectionModel)
                .where(RecordCollectionModel.name == name)
                .with_for_update()
            )
            row = result.scalar_one_or_none()
            if row is None:
                return None
            self._rows[name] = row
        return self._rows[name]

    async def read(self, name: str) -> list[Record]:
        row = await self._row(name)
        return list(row.payload) if row is not None else []

    async def write(self, name: str, records: list[Record]) -> None:
        row = await self._row(name)
        if row is None:
            row = RecordCollectionModel(name=name, payload=list(records))
            self.session.add(row)
            self._rows[name] = row
        else:
            row.payload = list(records)


class RecordStore:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory
        self._write_lock = asyncio.Lock()

    async def read(self, name: str) -> list[Record]:
        async with self._session_factory() as session:
            row = await session.get(RecordCollectionModel, name)
            return list(row.payload) if row is not None else []

    async def write(self, name: str, records: list[Record]) -> None:
        await self.write_many({name: records})

    async def write_many(self, batches: dict[str, list[Record]]) -> None:
        """Replace every collection in *batches* inside one transaction."""
        async with self.transaction() as tx:
            for name, records in batches.items():
                await tx.write(name, records)

    async def clear(self, name: str) -> None:
        async with self._write_lock:
            async with self._session_factory() as session:
                async with session.begin():
                    await session.execute(
                        delete(RecordCollectionModel).where(
                            RecordCollectionModel.name == name
                        )
                    )

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[StoreTransaction]:
        async with self._write_lock:
            async with self._session_factory() as session:
                async with session.begin():
                    yield StoreTransaction(session)
