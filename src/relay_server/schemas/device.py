"""Device-channel request schemas."""

from __future__ import annotations

from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field


def _to_text(value: Any) -> Any:
    """Devices send numbers and strings interchangeably; keep them as text."""
    if value is None or isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return value


Text = Annotated[str | None, BeforeValidator(_to_text)]
RequiredText = Annotated[str, BeforeValidator(_to_text), Field(min_length=1)]


class CheckIn(BaseModel):
    """Periodic device check-in carrying its full status."""

    identity: RequiredText
    display_name: Text = None
    battery: Text = None
    slot_a: Text = None
    slot_b: Text = None


class InboundMessage(BaseModel):
    """An SMS the device received."""

    identity: RequiredText
    sender: RequiredText
    body: RequiredText
    slot: Text = None
    timestamp: Text = None
    battery: Text = None


class SendStatus(BaseModel):
    """Outcome of a previously queued send command."""

    identity: RequiredText
    destination: Text = None
    body: Text = None
    outcome: RequiredText
    error: Text = None

    @property
    def sent(self) -> bool:
        return self.outcome.lower() == "sent"


class FormSubmission(BaseModel):
    """Arbitrary key/value fields tagged with the submitting device."""

    model_config = ConfigDict(extra="allow")

    identity: RequiredText

    @property
    def fields(self) -> dict[str, Any]:
        return dict(self.model_extra or {})
