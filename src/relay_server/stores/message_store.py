"""Per-device inbound message log, newest first, capped."""

from __future__ import annotations

import asyncio
from pathlib import Path

from relay_server.models.message import MessagePage, MessageRecord
from relay_server.utils.files import JsonFile


class MessageStore:
    """One JSON list per device at ``<root>/<identity>_messages.json``.

    Appends insert at the head and drop anything past ``cap``, so the
    oldest-inserted record is evicted first regardless of its timestamp.
    """

    def __init__(self, root: Path, *, cap: int = 500) -> None:
        self._root = root
        self._cap = cap
        self._lock = asyncio.Lock()

    async def append(self, identity: str, record: MessageRecord) -> None:
        """Insert ``record`` as the most recent entry for ``identity``."""
        async with self._lock:
            await asyncio.to_thread(self._append, identity, record)

    async def slice(self, identity: str, offset: int, limit: int) -> MessagePage:
        """Return ``limit`` records starting at ``offset`` plus the full count."""
        async with self._lock:
            entries = await asyncio.to_thread(self._read, identity)
        start = max(0, offset)
        window = entries[start:start + max(0, limit)]
        return MessagePage(
            items=[MessageRecord.from_dict(entry) for entry in window],
            total=len(entries),
        )

    def _path(self, identity: str) -> Path:
        return self._root / f"{JsonFile.safe_name(identity)}_messages.json"

    def _read(self, identity: str) -> list[dict[str, object]]:
        entries: list[dict[str, object]] = JsonFile.read(self._path(identity), [])
        return [entry for entry in entries if isinstance(entry, dict)]

    def _append(self, identity: str, record: MessageRecord) -> None:
        entries = self._read(identity)
        entries.insert(0, record.to_dict())
        JsonFile.write_atomic(self._path(identity), entries[:self._cap])
