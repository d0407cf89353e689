"""Device presence record."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class Device:
    """Last-known status of one checked-in device.

    Replaced wholesale on every check-in; only ``last_seen`` is mutated
    in place (by polls).
    """

    identity: str
    display_name: str | None = None
    battery: str | None = None
    slot_a: str | None = None
    slot_b: str | None = None
    last_seen: float = 0.0

    @property
    def label(self) -> str:
        """Human-facing name, falling back to the identity."""
        return self.display_name or self.identity

    def to_dict(self, *, online: bool) -> dict[str, object]:
        """Serialize for the registry listing endpoint."""
        return {
            "identity": self.identity,
            "display_name": self.display_name,
            "battery": self.battery,
            "slot_a": self.slot_a,
            "slot_b": self.slot_b,
            "last_seen": self.last_seen,
            "online": online,
        }
