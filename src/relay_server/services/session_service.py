"""Operator interaction sessions — multi-step input folded into one command.

Flows:

* send message: device -> SIM slot -> destination number -> text
* forwarding:   device -> SIM slot -> enable/disable [-> destination number]

Device and slot choices arrive as selector events; numbers and text arrive
as free text. The last step enqueues exactly one command and drops the
session.
"""

from __future__ import annotations

from loguru import logger

from relay_server.models.command import SendMessageCommand, SetForwardingCommand
from relay_server.models.reply import ButtonRows, Reply
from relay_server.models.selector import (
    PickDevice,
    PickSlot,
    PickToggle,
    Selector,
    ShowDevices,
)
from relay_server.models.session import (
    SELECTOR_STAGES,
    CommandKind,
    OperatorSession,
    Stage,
)
from relay_server.services.command_service import CommandService
from relay_server.services.registry_service import DeviceRegistry
from relay_server.utils.phone import PhoneNumber
from relay_server.utils.time import Clock, Time

CANCEL_WORDS = frozenset({"cancel", "/cancel"})
TARGET_UNAVAILABLE = "Device offline/unavailable"

_PICKER_TITLES = {
    CommandKind.SEND_MESSAGE: "Select device to send SMS:",
    CommandKind.SET_FORWARDING: "Select device for SMS forwarding:",
}


class SessionService:
    """Per-operator finite-state machine. One live session per operator.

    Sessions expire ``ttl_seconds`` after their last advance; expiry is
    checked lazily when the operator next sends input.
    """

    def __init__(
        self,
        registry: DeviceRegistry,
        command_service: CommandService,
        *,
        ttl_seconds: float = 90,
        max_text_length: int = 1000,
        clock: Clock = Time.now,
    ) -> None:
        self._registry = registry
        self._commands = command_service
        self._ttl = ttl_seconds
        self._max_text_length = max_text_length
        self._clock = clock
        self._sessions: dict[int, OperatorSession] = {}

    def get(self, operator_id: int) -> OperatorSession | None:
        """Return the live session for an operator, discarding it if expired."""
        session = self._sessions.get(operator_id)
        if session is None:
            return None
        if session.is_expired(self._clock()):
            self._sessions.pop(operator_id, None)
            return None
        return session

    def cancel(self, operator_id: int) -> bool:
        """Drop the operator's session. Returns whether one was live."""
        return self._sessions.pop(operator_id, None) is not None

    def start(self, operator_id: int, kind: CommandKind) -> list[Reply]:
        """Open a new flow, replacing any previous session for the operator."""
        return [self._device_picker(operator_id, kind, edit=False)]

    async def select(self, operator_id: int, selector: Selector) -> list[Reply]:
        """Apply a selector event to the operator's flow."""
        match selector:
            case ShowDevices(kind=kind):
                return [self._device_picker(operator_id, kind, edit=True)]
            case PickDevice(kind=kind, identity=identity):
                if identity not in self._registry:
                    return self._target_unavailable(operator_id, kind)
                self._open(operator_id, kind, Stage.AWAITING_SLOT, target=identity)
                return [self._slot_picker(kind, identity)]
            case PickSlot(kind=kind, identity=identity, slot=slot):
                if identity not in self._registry:
                    return self._target_unavailable(operator_id, kind)
                if kind is CommandKind.SET_FORWARDING:
                    self._open(
                        operator_id, kind, Stage.AWAITING_TOGGLE,
                        target=identity, slot=slot,
                    )
                    return [self._toggle_picker(identity, slot)]
                self._open(
                    operator_id, kind, Stage.AWAITING_NUMBER,
                    target=identity, slot=slot,
                )
                return [Reply(text=f"Enter number to send SMS (SIM{slot}). Type cancel to abort.")]
            case PickToggle(identity=identity, slot=slot, enabled=enabled):
                kind = CommandKind.SET_FORWARDING
                if identity not in self._registry:
                    return self._target_unavailable(operator_id, kind)
                if enabled:
                    self._open(
                        operator_id, kind, Stage.AWAITING_NUMBER,
                        target=identity, slot=slot,
                    )
                    return [Reply(text=f"Enter number to forward SMS to (SIM{slot}). Type cancel to abort.")]
                self._sessions.pop(operator_id, None)
                await self._commands.enqueue(
                    identity, SetForwardingCommand(slot=slot, enabled=False),
                )
                return [Reply(text=f"SMS forwarding OFF for SIM{slot} on {self._label(identity)}")]
            case _:
                # Paging selectors are served by the console, not the session.
                raise ValueError(f"Not a session selector: {selector!r}")

    async def handle_text(self, operator_id: int, text: str) -> list[Reply] | None:
        """Feed free text to the operator's session.

        Returns None when there is no live session or the session is
        waiting on a selector, so the caller can treat the text as a
        top-level command instead.
        """
        session = self.get(operator_id)
        if session is None:
            return None
        if text.strip().lower() in CANCEL_WORDS:
            self.cancel(operator_id)
            return [Reply(text="Cancelled.")]
        if session.stage in SELECTOR_STAGES:
            return None
        if session.stage is Stage.AWAITING_NUMBER:
            return await self._accept_number(session, text)
        return await self._accept_text(session, text)

    async def _accept_number(self, session: OperatorSession, text: str) -> list[Reply]:
        number = PhoneNumber.sanitize(text)
        if not number:
            self._extend(session)
            return [Reply(text="Invalid number. Send 8-15 digits, optionally with a leading +. Or type cancel.")]
        if session.kind is CommandKind.SEND_MESSAGE:
            session.destination = number
            session.stage = Stage.AWAITING_TEXT
            self._extend(session)
            return [Reply(text=f"Enter message text (max {self._max_text_length} chars). Or type cancel.")]
        assert session.target is not None and session.slot is not None
        target, slot = session.target, session.slot
        if not self._claim(session):
            return [Reply(text=f"{TARGET_UNAVAILABLE}. Nothing was queued.")]
        await self._commands.enqueue(
            target, SetForwardingCommand(slot=slot, enabled=True, destination=number),
        )
        return [Reply(text=f"SMS forwarding ON for SIM{slot} on {self._label(target)} -> {number}")]

    async def _accept_text(self, session: OperatorSession, text: str) -> list[Reply]:
        assert session.target is not None and session.slot is not None
        assert session.destination is not None
        body = text[:self._max_text_length]
        target, slot, destination = session.target, session.slot, session.destination
        if not self._claim(session):
            return [Reply(text=f"{TARGET_UNAVAILABLE}. Nothing was queued.")]
        await self._commands.enqueue(
            target, SendMessageCommand(slot=slot, destination=destination, text=body),
        )
        return [Reply(text=(
            f"SMS queued\nDevice: {self._label(target)}\nSIM: {slot}\n"
            f"To: {destination}\nMessage: {body}"
        ))]

    def _claim(self, session: OperatorSession) -> bool:
        """Remove the session before committing; False if its target vanished."""
        self._sessions.pop(session.operator_id, None)
        if session.target not in self._registry:
            logger.info(f"Operator {session.operator_id} lost target {session.target} mid-flow")
            return False
        return True

    def _open(
        self,
        operator_id: int,
        kind: CommandKind,
        stage: Stage,
        *,
        target: str | None = None,
        slot: int | None = None,
    ) -> OperatorSession:
        session = OperatorSession(
            operator_id=operator_id,
            kind=kind,
            stage=stage,
            expires_at=self._clock() + self._ttl,
            target=target,
            slot=slot,
        )
        self._sessions[operator_id] = session
        return session

    def _extend(self, session: OperatorSession) -> None:
        session.expires_at = self._clock() + self._ttl

    def _target_unavailable(self, operator_id: int, kind: CommandKind) -> list[Reply]:
        """Abort this flow only; a session for the other command kind survives."""
        current = self._sessions.get(operator_id)
        if current is not None and current.kind is kind:
            self._sessions.pop(operator_id, None)
        return [Reply(notice=TARGET_UNAVAILABLE)]

    def _label(self, identity: str) -> str:
        device = self._registry.get(identity)
        return device.label if device is not None else identity

    def _device_picker(self, operator_id: int, kind: CommandKind, *, edit: bool) -> Reply:
        rows: ButtonRows = [
            [(device.label, PickDevice(kind, identity))]
            for identity, device in self._registry.list()
        ]
        if not rows:
            self._sessions.pop(operator_id, None)
            return Reply(text="No devices connected.", edit=edit)
        self._open(operator_id, kind, Stage.AWAITING_TARGET)
        return Reply(text=_PICKER_TITLES[kind], buttons=rows, edit=edit)

    def _slot_picker(self, kind: CommandKind, identity: str) -> Reply:
        rows: ButtonRows = [
            [("SIM1", PickSlot(kind, identity, 1)), ("SIM2", PickSlot(kind, identity, 2))],
            [("Back", ShowDevices(kind))],
        ]
        return Reply(text=f"Choose SIM for {self._label(identity)}:", buttons=rows, edit=True)

    def _toggle_picker(self, identity: str, slot: int) -> Reply:
        kind = CommandKind.SET_FORWARDING
        rows: ButtonRows = [
            [("Enable", PickToggle(identity, slot, True)), ("Disable", PickToggle(identity, slot, False))],
            [("Back", PickDevice(kind, identity))],
        ]
        return Reply(text=f"SMS forwarding SIM{slot} on {self._label(identity)}:", buttons=rows, edit=True)
