"""Selector events — inline-button payloads decoded once at the channel boundary.

Buttons carry their full context (``tag:arg:arg``) so a press is
self-describing even if the operator's session has expired meanwhile.
"""

from __future__ import annotations

from dataclasses import dataclass

from relay_server.models.session import CommandKind

# Telegram rejects callback_data longer than this.
MAX_SELECTOR_BYTES = 64

_KIND_CODES = {CommandKind.SEND_MESSAGE: "s", CommandKind.SET_FORWARDING: "f"}
_CODE_KINDS = {code: kind for kind, code in _KIND_CODES.items()}


class SelectorDecodeError(Exception):
    """Raised when a selector payload is malformed or has an unknown tag."""


@dataclass(frozen=True)
class PickDevice:
    """Operator picked the target device for a command flow."""

    kind: CommandKind
    identity: str


@dataclass(frozen=True)
class PickSlot:
    """Operator picked SIM slot 1 or 2."""

    kind: CommandKind
    identity: str
    slot: int


@dataclass(frozen=True)
class PickToggle:
    """Operator chose to enable or disable forwarding."""

    identity: str
    slot: int
    enabled: bool


@dataclass(frozen=True)
class ShowDevices:
    """Back to the device picker."""

    kind: CommandKind


@dataclass(frozen=True)
class PageMessages:
    """Show a page of stored messages for a device."""

    identity: str
    offset: int


Selector = PickDevice | PickSlot | PickToggle | ShowDevices | PageMessages


class SelectorCodec:
    """Encode selectors to compact strings and decode them back."""

    @staticmethod
    def encode(selector: Selector) -> str:
        """Render a selector as ``tag:arg:...``."""
        match selector:
            case PickDevice(kind=kind, identity=identity):
                parts = ["dev", _KIND_CODES[kind], identity]
            case PickSlot(kind=kind, identity=identity, slot=slot):
                parts = ["slot", _KIND_CODES[kind], identity, str(slot)]
            case PickToggle(identity=identity, slot=slot, enabled=enabled):
                parts = ["fwd", identity, str(slot), "on" if enabled else "off"]
            case ShowDevices(kind=kind):
                parts = ["back", _KIND_CODES[kind]]
            case PageMessages(identity=identity, offset=offset):
                parts = ["page", identity, str(offset)]
            case _:
                raise SelectorDecodeError(f"Not a selector: {selector!r}")
        encoded = ":".join(parts)
        if len(encoded.encode()) > MAX_SELECTOR_BYTES:
            raise SelectorDecodeError(f"Selector too long: {encoded!r}")
        return encoded

    @staticmethod
    def decode(raw: str) -> Selector:
        """Parse a ``tag:arg:...`` string.

        Identities may not contain ``:``; the identity is always the field
        after the fixed-position prefix.

        Raises:
            SelectorDecodeError: On unknown tags or malformed arguments.
        """
        tag, _, rest = (raw or "").partition(":")
        args = rest.split(":") if rest else []
        try:
            if tag == "dev" and len(args) == 2:
                return PickDevice(_CODE_KINDS[args[0]], SelectorCodec._identity(args[1]))
            if tag == "slot" and len(args) == 3:
                return PickSlot(
                    _CODE_KINDS[args[0]],
                    SelectorCodec._identity(args[1]),
                    SelectorCodec._slot(args[2]),
                )
            if tag == "fwd" and len(args) == 3 and args[2] in ("on", "off"):
                return PickToggle(
                    SelectorCodec._identity(args[0]),
                    SelectorCodec._slot(args[1]),
                    args[2] == "on",
                )
            if tag == "back" and len(args) == 1:
                return ShowDevices(_CODE_KINDS[args[0]])
            if tag == "page" and len(args) == 2:
                return PageMessages(SelectorCodec._identity(args[0]), max(0, int(args[1])))
        except (KeyError, ValueError) as error:
            raise SelectorDecodeError(f"Malformed selector: {raw!r}") from error
        raise SelectorDecodeError(f"Unknown selector: {raw!r}")

    @staticmethod
    def _slot(raw: str) -> int:
        slot = int(raw)
        if slot not in (1, 2):
            raise ValueError(f"slot must be 1 or 2, got {slot}")
        return slot

    @staticmethod
    def _identity(raw: str) -> str:
        if not raw:
            raise ValueError("empty identity")
        return raw
