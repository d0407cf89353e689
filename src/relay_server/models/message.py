"""Inbound message records."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any


@dataclass
class MessageRecord:
    """One SMS received by a device. ``timestamp`` is epoch milliseconds."""

    sender: str
    body: str
    slot: str | None
    battery: str | None
    timestamp: int

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MessageRecord:
        return cls(
            sender=str(data.get("sender", "")),
            body=str(data.get("body", "")),
            slot=data.get("slot"),
            battery=data.get("battery"),
            timestamp=int(data.get("timestamp") or 0),
        )


@dataclass
class MessagePage:
    """A pagination window over a device's message log."""

    items: list[MessageRecord] = field(default_factory=list)
    total: int = 0
