"""Best-effort operator notifications for device-channel events."""

from __future__ import annotations

import asyncio

from loguru import logger

from relay_server.clients.control_channel import ControlChannel, ControlChannelError


class NotificationService:
    """Broadcasts text to every allow-listed operator.

    Delivery runs in background tasks so a slow or failing control
    channel never delays the device request that triggered it.
    """

    def __init__(self, channel: ControlChannel, operator_ids: list[int]) -> None:
        self._channel = channel
        self._operator_ids = list(operator_ids)
        self._pending: set[asyncio.Task[None]] = set()

    def broadcast(self, text: str) -> None:
        """Schedule delivery of ``text`` to all operators and return at once."""
        if not self._operator_ids:
            logger.debug("No operators configured, dropping notification")
            return
        task = asyncio.create_task(self._deliver(text))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _deliver(self, text: str) -> None:
        for operator_id in self._operator_ids:
            try:
                await self._channel.send_message(operator_id, text)
            except ControlChannelError as error:
                logger.warning(f"Notification to operator {operator_id} failed: {error}")

    async def flush(self) -> None:
        """Wait for every scheduled delivery to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
