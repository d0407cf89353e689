"""SQL queue store — one row per queued command."""

from __future__ import annotations

import asyncio
import json

from relay_server.dao.command_dao import CommandDAO
from relay_server.stores.contracts.queue import QueueStore
from relay_server.utils.db import Database


class SqlQueueStore(QueueStore):
    """Queue backed by the ``queued_commands`` table.

    A drain deletes only the rows it selected, so a command inserted
    while a drain is in flight stays queued for the next poll.
    """

    def __init__(self, database: Database) -> None:
        self._database = database
        self._dao = CommandDAO(database.pool)
        # SQLite allows one writer; keep drains and appends from interleaving.
        self._lock = asyncio.Lock()

    async def prepare(self) -> None:
        await self._database.create_tables()

    async def append(self, identity: str, command: dict[str, object]) -> None:
        async with self._lock, self._dao.transaction():
            await self._dao.create_command(
                identity=identity, payload=json.dumps(command),
            )
            await self._dao.commit()

    async def take_all(self, identity: str) -> list[dict[str, object]]:
        async with self._lock, self._dao.transaction():
            rows = await self._dao.list_for_identity(identity)
            if rows:
                await self._dao.delete_by_ids([row.id for row in rows])
                await self._dao.commit()
        return [json.loads(row.payload) for row in rows]

    async def close(self) -> None:
        await self._database.close()
