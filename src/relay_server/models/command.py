"""Pending command schemas — the wire format devices receive on poll."""

from __future__ import annotations

from typing import Annotated, Literal

from pydantic import BaseModel, Field, TypeAdapter, model_validator

SEND_MESSAGE = "send_message"
SET_FORWARDING = "set_forwarding"


class SendMessageCommand(BaseModel):
    """Send one SMS from the given SIM slot."""

    kind: Literal["send_message"] = SEND_MESSAGE
    slot: Literal[1, 2]
    destination: str
    text: str


class SetForwardingCommand(BaseModel):
    """Switch inbound-SMS forwarding on or off for a SIM slot."""

    kind: Literal["set_forwarding"] = SET_FORWARDING
    slot: Literal[1, 2]
    enabled: bool
    destination: str | None = None

    @model_validator(mode="after")
    def _destination_when_enabled(self) -> SetForwardingCommand:
        if self.enabled and not self.destination:
            raise ValueError("destination is required when enabling forwarding")
        return self


PendingCommand = Annotated[
    SendMessageCommand | SetForwardingCommand,
    Field(discriminator="kind"),
]

_ADAPTER: TypeAdapter[SendMessageCommand | SetForwardingCommand] = TypeAdapter(
    PendingCommand,
)


class CommandCodec:
    """Encode/decode pending commands to plain JSON-safe dicts."""

    @staticmethod
    def encode(command: SendMessageCommand | SetForwardingCommand) -> dict[str, object]:
        """Dump a command, omitting an unset forwarding destination."""
        return command.model_dump(exclude_none=True)

    @staticmethod
    def decode(raw: object) -> SendMessageCommand | SetForwardingCommand:
        """Validate a stored dict back into a command.

        Raises:
            pydantic.ValidationError: If the dict is not a known command.
        """
        return _ADAPTER.validate_python(raw)
