"""Operator interaction session state."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


class CommandKind(StrEnum):
    """Which command a session is building."""

    SEND_MESSAGE = "send_message"
    SET_FORWARDING = "set_forwarding"


class Stage(StrEnum):
    """What input the session is waiting for next."""

    AWAITING_TARGET = "awaiting_target"
    AWAITING_SLOT = "awaiting_slot"
    AWAITING_TOGGLE = "awaiting_toggle"
    AWAITING_NUMBER = "awaiting_number"
    AWAITING_TEXT = "awaiting_text"


# Stages advanced by selector buttons rather than free text.
SELECTOR_STAGES = frozenset({
    Stage.AWAITING_TARGET, Stage.AWAITING_SLOT, Stage.AWAITING_TOGGLE,
})


@dataclass
class OperatorSession:
    """Partially collected command for one operator."""

    operator_id: int
    kind: CommandKind
    stage: Stage
    expires_at: float
    target: str | None = None
    slot: int | None = None
    destination: str | None = None

    def is_expired(self, now: float) -> bool:
        return now > self.expires_at
