"""Queue store contract — pluggable persistence for per-device command lists."""

from __future__ import annotations

from abc import ABC, abstractmethod


class QueueStore(ABC):
    """Maps device identity to an ordered list of pending command dicts.

    Implementations must serialize their read-modify-write sequences so
    that concurrent appends and drains never lose an entry, and must
    preserve append order per identity.
    """

    async def prepare(self) -> None:
        """Create whatever backing storage is missing. Called once at startup."""

    @abstractmethod
    async def append(self, identity: str, command: dict[str, object]) -> None:
        """Add a command at the tail of the device's list."""

    @abstractmethod
    async def take_all(self, identity: str) -> list[dict[str, object]]:
        """Remove and return every queued command for the device, oldest first."""

    async def close(self) -> None:
        """Release any resources held by the store."""
