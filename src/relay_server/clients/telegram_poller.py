"""Long-polling loop feeding Telegram updates to the operator console."""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import Awaitable, Callable
from typing import Any

from loguru import logger

from relay_server.clients.control_channel import ControlChannelError
from relay_server.clients.telegram_client import TelegramClient

UpdateHandler = Callable[[dict[str, Any]], Awaitable[None]]


class TelegramPoller:
    """Background task calling getUpdates and dispatching each update."""

    def __init__(
        self,
        client: TelegramClient,
        handler: UpdateHandler,
        *,
        retry_delay: float = 5.0,
    ) -> None:
        self._client = client
        self._handler = handler
        self._retry_delay = retry_delay
        self._offset = 0
        self._task: asyncio.Task[None] | None = None

    async def poll_once(self) -> int:
        """Fetch one batch and dispatch it. Returns the number of updates."""
        updates = await self._client.get_updates(self._offset)
        for update in updates:
            self._offset = max(self._offset, int(update.get("update_id", 0)) + 1)
            try:
                await self._handler(update)
            except Exception as error:
                # One bad update must not stall the loop.
                logger.exception(f"Failed to handle Telegram update: {error}")
        return len(updates)

    async def _loop(self) -> None:
        while True:
            try:
                await self.poll_once()
            except ControlChannelError as error:
                logger.warning(f"Telegram polling error, retrying: {error}")
                await asyncio.sleep(self._retry_delay)

    def start(self) -> None:
        if self._task is None:
            logger.info("Starting Telegram long polling")
            self._task = asyncio.create_task(self._loop(), name="telegram-poller")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
