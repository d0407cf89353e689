"""Business logic for per-device command queues."""

from __future__ import annotations

from loguru import logger
from pydantic import ValidationError

from relay_server.models.command import (
    CommandCodec,
    SendMessageCommand,
    SetForwardingCommand,
)
from relay_server.stores.contracts.queue import QueueStore

Command = SendMessageCommand | SetForwardingCommand


class CommandService:
    """Built once at startup with its queue store pre-wired.

    Delivery is at-most-once: a drain hands the whole batch to the device
    and forgets it. FIFO order per device is kept end to end.
    """

    def __init__(self, store: QueueStore) -> None:
        self._store = store

    async def enqueue(self, identity: str, command: Command) -> None:
        """Append ``command`` to the device's queue."""
        await self._store.append(identity, CommandCodec.encode(command))
        logger.info(f"Queued {command.kind} for device {identity}")

    async def drain(self, identity: str) -> list[Command]:
        """Remove and return every pending command for the device, oldest first.

        Entries that no longer validate are dropped with a warning rather
        than failing the poll.
        """
        commands: list[Command] = []
        for raw in await self._store.take_all(identity):
            try:
                commands.append(CommandCodec.decode(raw))
            except ValidationError as error:
                logger.warning(f"Dropping malformed queued command for {identity}: {error}")
        return commands

    async def drain_encoded(self, identity: str) -> list[dict[str, object]]:
        """Drain and serialize for a poll response."""
        return [CommandCodec.encode(command) for command in await self.drain(identity)]
