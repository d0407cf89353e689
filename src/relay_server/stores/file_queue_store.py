"""JSON-file queue store — whole-file rewrite with atomic replace."""

from __future__ import annotations

import asyncio
from pathlib import Path

from relay_server.stores.contracts.queue import QueueStore
from relay_server.utils.files import JsonFile

QueueMap = dict[str, list[dict[str, object]]]


class FileQueueStore(QueueStore):
    """Keeps every device's queue in one JSON object on disk.

    One lock per store serializes read-modify-write-persist; the file
    itself is only ever replaced whole.
    """

    def __init__(self, path: Path) -> None:
        self._path = path
        self._lock = asyncio.Lock()

    async def append(self, identity: str, command: dict[str, object]) -> None:
        async with self._lock:
            await asyncio.to_thread(self._append, identity, command)

    async def take_all(self, identity: str) -> list[dict[str, object]]:
        async with self._lock:
            return await asyncio.to_thread(self._take_all, identity)

    def _read(self) -> QueueMap:
        data: QueueMap = JsonFile.read(self._path, {})
        return {
            identity: commands
            for identity, commands in data.items()
            if isinstance(commands, list)
        }

    def _append(self, identity: str, command: dict[str, object]) -> None:
        queues = self._read()
        queues.setdefault(identity, []).append(command)
        JsonFile.write_atomic(self._path, queues)

    def _take_all(self, identity: str) -> list[dict[str, object]]:
        queues = self._read()
        commands = queues.pop(identity, [])
        if commands:
            JsonFile.write_atomic(self._path, queues)
        return commands
