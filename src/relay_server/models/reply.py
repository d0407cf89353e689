"""Presentation-neutral operator replies produced by the session engine."""

from __future__ import annotations

from dataclasses import dataclass

from relay_server.models.selector import Selector

ButtonRows = list[list[tuple[str, Selector]]]


@dataclass
class Reply:
    """One thing to show the operator.

    ``text`` is sent as a new message, or replaces the message a selector
    came from when ``edit`` is set. ``notice`` is a short toast answering
    the selector press; a reply may carry only a notice.
    """

    text: str | None = None
    buttons: ButtonRows | None = None
    keyboard: list[list[str]] | None = None
    edit: bool = False
    notice: str | None = None
