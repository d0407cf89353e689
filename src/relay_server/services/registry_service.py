"""In-memory device presence registry and its staleness sweeper."""

from __future__ import annotations

import asyncio
import contextlib

from loguru import logger

from relay_server.models.device import Device
from relay_server.utils.time import Clock, Time


class InvalidInputError(Exception):
    """Raised when a request is missing a required field or is malformed."""


class DeviceRegistry:
    """Process-lifetime map of device identity to last-known status.

    Not persisted: presence is re-established by the next check-in.
    Every mutation is a single dict operation with no await in between,
    so concurrent request handlers on the event loop never interleave
    inside one.
    """

    def __init__(
        self,
        *,
        online_window_seconds: float = 60,
        clock: Clock = Time.now,
    ) -> None:
        self._devices: dict[str, Device] = {}
        self._notified: set[str] = set()
        self._online_window = online_window_seconds
        self._clock = clock

    def upsert(
        self,
        identity: str,
        *,
        display_name: str | None = None,
        battery: str | None = None,
        slot_a: str | None = None,
        slot_b: str | None = None,
    ) -> Device:
        """Replace the record for ``identity`` and stamp it as seen now.

        Raises:
            InvalidInputError: If ``identity`` is empty.
        """
        if not identity:
            raise InvalidInputError("identity is required")
        device = Device(
            identity=identity,
            display_name=display_name,
            battery=battery,
            slot_a=slot_a,
            slot_b=slot_b,
            last_seen=self._clock(),
        )
        self._devices[identity] = device
        return device

    def touch(self, identity: str) -> bool:
        """Refresh last-seen for a known device. Returns whether it existed."""
        device = self._devices.get(identity)
        if device is None:
            return False
        device.last_seen = self._clock()
        return True

    def get(self, identity: str) -> Device | None:
        return self._devices.get(identity)

    def __contains__(self, identity: object) -> bool:
        return identity in self._devices

    def __len__(self) -> int:
        return len(self._devices)

    def list(self) -> list[tuple[str, Device]]:
        """Snapshot of all devices in insertion order."""
        return list(self._devices.items())

    def is_online(self, device: Device) -> bool:
        return self._clock() - device.last_seen < self._online_window

    def mark_notified(self, identity: str) -> bool:
        """Record that operators were told about ``identity``.

        Returns True only the first time since the device was last evicted.
        """
        if identity in self._notified:
            return False
        self._notified.add(identity)
        return True

    def sweep(self, stale_after: float) -> list[str]:
        """Evict devices not seen for more than ``stale_after`` seconds."""
        now = self._clock()
        evicted = [
            identity
            for identity, device in self.list()
            if now - device.last_seen > stale_after
        ]
        for identity in evicted:
            self._devices.pop(identity, None)
            self._notified.discard(identity)
        return evicted


class RegistrySweeper:
    """Runs ``DeviceRegistry.sweep`` on a fixed interval in the background."""

    def __init__(
        self,
        registry: DeviceRegistry,
        *,
        interval_seconds: float = 60,
        stale_after_seconds: float = 300,
    ) -> None:
        self._registry = registry
        self._interval = interval_seconds
        self._stale_after = stale_after_seconds
        self._task: asyncio.Task[None] | None = None

    def run_once(self) -> list[str]:
        """Sweep now and log each eviction."""
        evicted = self._registry.sweep(self._stale_after)
        for identity in evicted:
            logger.info(f"Removed inactive device: {identity}")
        return evicted

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            self.run_once()

    def start(self) -> None:
        if self._task is None:
            self._task = asyncio.create_task(self._loop(), name="registry-sweeper")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
