"""Control channel contract — how the server talks to operators."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

# Rows of (label, encoded selector) pairs.
EncodedButtons = list[list[tuple[str, str]]]


class ControlChannelError(Exception):
    """Raised when the control channel rejects or fails a request."""


@dataclass(frozen=True)
class TextInput:
    """Free text typed by an operator."""

    operator_id: int
    text: str


@dataclass(frozen=True)
class SelectorInput:
    """An inline button press, still carrying its raw payload."""

    operator_id: int
    callback_id: str
    message_id: int | None
    data: str


OperatorInput = TextInput | SelectorInput


class ControlChannel(ABC):
    """Outbound primitives consumed by the operator console and notifications.

    ``operator_id`` doubles as the chat to deliver to.
    """

    @abstractmethod
    async def send_message(
        self,
        operator_id: int,
        text: str,
        *,
        buttons: EncodedButtons | None = None,
        keyboard: list[list[str]] | None = None,
    ) -> int | None:
        """Send a message. Returns the channel's message id when known."""

    @abstractmethod
    async def edit_message(
        self,
        operator_id: int,
        message_id: int,
        text: str,
        *,
        buttons: EncodedButtons | None = None,
    ) -> None:
        """Replace the text and buttons of an earlier message."""

    @abstractmethod
    async def answer_selector(self, callback_id: str, text: str | None = None) -> None:
        """Acknowledge a button press, optionally with a short notice."""
