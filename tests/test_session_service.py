"""Tests for the operator interaction state machine."""

from __future__ import annotations

import pytest

from relay_server.models.command import SendMessageCommand, SetForwardingCommand
from relay_server.models.selector import PickDevice, PickSlot, PickToggle, ShowDevices
from relay_server.models.session import CommandKind, Stage
from relay_server.services.command_service import CommandService
from relay_server.services.registry_service import DeviceRegistry
from relay_server.services.session_service import TARGET_UNAVAILABLE, SessionService
from tests.conftest import FakeClock

OP = 7
SEND = CommandKind.SEND_MESSAGE
FORWARD = CommandKind.SET_FORWARDING


async def _to_number_stage(sessions: SessionService, kind: CommandKind = SEND) -> None:
    sessions.start(OP, kind)
    await sessions.select(OP, PickDevice(kind, "dev-1"))
    await sessions.select(OP, PickSlot(kind, "dev-1", 1))
    if kind is FORWARD:
        await sessions.select(OP, PickToggle("dev-1", 1, True))


@pytest.fixture(autouse=True)
def _device(registry: DeviceRegistry) -> None:
    registry.upsert("dev-1", display_name="Pixel 7")


@pytest.mark.asyncio
async def test_send_message_end_to_end(
    sessions: SessionService, command_service: CommandService,
) -> None:
    """dev-1, slot 1, +919876543210, hello queues exactly one command."""
    replies = sessions.start(OP, SEND)
    assert replies[0].buttons == [[("Pixel 7", PickDevice(SEND, "dev-1"))]]
    await sessions.select(OP, PickDevice(SEND, "dev-1"))
    await sessions.select(OP, PickSlot(SEND, "dev-1", 1))
    await sessions.handle_text(OP, "+919876543210")
    replies = await sessions.handle_text(OP, "hello")

    assert replies is not None
    assert "SMS queued" in (replies[0].text or "")
    assert await command_service.drain("dev-1") == [
        SendMessageCommand(slot=1, destination="+919876543210", text="hello"),
    ]
    assert sessions.get(OP) is None


@pytest.mark.asyncio
async def test_stages_advance(sessions: SessionService) -> None:
    sessions.start(OP, SEND)
    assert sessions.get(OP).stage is Stage.AWAITING_TARGET  # type: ignore[union-attr]
    await sessions.select(OP, PickDevice(SEND, "dev-1"))
    assert sessions.get(OP).stage is Stage.AWAITING_SLOT  # type: ignore[union-attr]
    await sessions.select(OP, PickSlot(SEND, "dev-1", 2))
    session = sessions.get(OP)
    assert session is not None
    assert session.stage is Stage.AWAITING_NUMBER
    assert session.slot == 2
    await sessions.handle_text(OP, "(555) 123-4567 89")
    session = sessions.get(OP)
    assert session is not None
    assert session.stage is Stage.AWAITING_TEXT
    assert session.destination == "5551234567" + "89"


@pytest.mark.asyncio
@pytest.mark.parametrize("stage_steps", [0, 1, 2, 3])
async def test_cancel_at_any_stage(
    sessions: SessionService, command_service: CommandService, stage_steps: int,
) -> None:
    """cancel destroys the session and queues nothing."""
    sessions.start(OP, SEND)
    if stage_steps >= 1:
        await sessions.select(OP, PickDevice(SEND, "dev-1"))
    if stage_steps >= 2:
        await sessions.select(OP, PickSlot(SEND, "dev-1", 1))
    if stage_steps >= 3:
        await sessions.handle_text(OP, "+15551234567")
    replies = await sessions.handle_text(OP, "  CANCEL ")
    assert replies is not None
    assert replies[0].text == "Cancelled."
    assert sessions.get(OP) is None
    assert await command_service.drain("dev-1") == []


@pytest.mark.asyncio
async def test_invalid_number_reprompts_and_extends(
    sessions: SessionService, clock: FakeClock,
) -> None:
    """"abc" keeps the stage and pushes the expiry forward."""
    await _to_number_stage(sessions)
    clock.advance(80)
    replies = await sessions.handle_text(OP, "abc")
    assert replies is not None
    assert "Invalid number" in (replies[0].text or "")
    session = sessions.get(OP)
    assert session is not None
    assert session.stage is Stage.AWAITING_NUMBER
    clock.advance(80)
    assert sessions.get(OP) is not None


@pytest.mark.asyncio
@pytest.mark.parametrize("raw", ["1234567", "+1234567890123456", "", "++12345678"])
async def test_phone_length_bounds(sessions: SessionService, raw: str) -> None:
    await _to_number_stage(sessions)
    await sessions.handle_text(OP, raw)
    session = sessions.get(OP)
    assert session is not None
    assert session.stage is Stage.AWAITING_NUMBER


@pytest.mark.asyncio
async def test_message_text_truncated(
    sessions: SessionService, command_service: CommandService,
) -> None:
    await _to_number_stage(sessions)
    await sessions.handle_text(OP, "+15551234567")
    await sessions.handle_text(OP, "x" * 1500)
    [command] = await command_service.drain("dev-1")
    assert isinstance(command, SendMessageCommand)
    assert len(command.text) == 1000


@pytest.mark.asyncio
async def test_message_text_kept_verbatim(
    sessions: SessionService, command_service: CommandService,
) -> None:
    await _to_number_stage(sessions)
    await sessions.handle_text(OP, "+15551234567")
    await sessions.handle_text(OP, "  spaced out  ")
    [command] = await command_service.drain("dev-1")
    assert isinstance(command, SendMessageCommand)
    assert command.text == "  spaced out  "


@pytest.mark.asyncio
async def test_expired_session_is_absent(sessions: SessionService, clock: FakeClock) -> None:
    """Input after expiry is not consumed by the old session."""
    await _to_number_stage(sessions)
    clock.advance(91)
    assert await sessions.handle_text(OP, "+15551234567") is None
    assert sessions.get(OP) is None


@pytest.mark.asyncio
async def test_selector_stage_passes_text_through(sessions: SessionService) -> None:
    """While waiting on a button, free text falls through to top-level handling."""
    sessions.start(OP, SEND)
    assert await sessions.handle_text(OP, "connected devices") is None
    assert sessions.get(OP) is not None


@pytest.mark.asyncio
async def test_no_session_returns_none(sessions: SessionService) -> None:
    assert await sessions.handle_text(OP, "hello") is None


@pytest.mark.asyncio
async def test_new_session_overwrites_old(sessions: SessionService) -> None:
    await _to_number_stage(sessions)
    sessions.start(OP, FORWARD)
    session = sessions.get(OP)
    assert session is not None
    assert session.kind is FORWARD
    assert session.stage is Stage.AWAITING_TARGET


@pytest.mark.asyncio
async def test_unknown_target_aborts_flow(
    sessions: SessionService, registry: DeviceRegistry,
) -> None:
    """A vanished device surfaces a notice and drops this flow's session."""
    sessions.start(OP, SEND)
    replies = await sessions.select(OP, PickDevice(SEND, "gone"))
    assert replies[0].notice == TARGET_UNAVAILABLE
    assert sessions.get(OP) is None


@pytest.mark.asyncio
async def test_unknown_target_leaves_unrelated_session(sessions: SessionService) -> None:
    """A stale button from another flow does not destroy the current session."""
    await _to_number_stage(sessions, FORWARD)
    replies = await sessions.select(OP, PickSlot(SEND, "gone", 1))
    assert replies[0].notice == TARGET_UNAVAILABLE
    session = sessions.get(OP)
    assert session is not None
    assert session.kind is FORWARD


@pytest.mark.asyncio
async def test_target_evicted_before_commit(
    sessions: SessionService,
    registry: DeviceRegistry,
    command_service: CommandService,
    clock: FakeClock,
) -> None:
    """If the device is swept mid-flow the commit is refused."""
    await _to_number_stage(sessions)
    await sessions.handle_text(OP, "+15551234567")
    clock.advance(301)
    registry.sweep(300)
    clock.now -= 301
    replies = await sessions.handle_text(OP, "hello")
    assert replies is not None
    assert "Nothing was queued" in (replies[0].text or "")
    assert sessions.get(OP) is None
    assert await command_service.drain("dev-1") == []


@pytest.mark.asyncio
async def test_forwarding_enable_flow(
    sessions: SessionService, command_service: CommandService,
) -> None:
    """slot -> enable -> number queues forwarding with destination."""
    sessions.start(OP, FORWARD)
    await sessions.select(OP, PickDevice(FORWARD, "dev-1"))
    replies = await sessions.select(OP, PickSlot(FORWARD, "dev-1", 2))
    assert sessions.get(OP).stage is Stage.AWAITING_TOGGLE  # type: ignore[union-attr]
    assert replies[0].buttons is not None
    await sessions.select(OP, PickToggle("dev-1", 2, True))
    await sessions.handle_text(OP, "+447700900123")
    assert await command_service.drain("dev-1") == [
        SetForwardingCommand(slot=2, enabled=True, destination="+447700900123"),
    ]
    assert sessions.get(OP) is None


@pytest.mark.asyncio
async def test_forwarding_disable_commits_immediately(
    sessions: SessionService, command_service: CommandService,
) -> None:
    sessions.start(OP, FORWARD)
    await sessions.select(OP, PickDevice(FORWARD, "dev-1"))
    await sessions.select(OP, PickSlot(FORWARD, "dev-1", 1))
    replies = await sessions.select(OP, PickToggle("dev-1", 1, False))
    assert "OFF" in (replies[0].text or "")
    assert await command_service.drain("dev-1") == [
        SetForwardingCommand(slot=1, enabled=False),
    ]
    assert sessions.get(OP) is None


@pytest.mark.asyncio
async def test_show_devices_with_empty_registry(
    registry: DeviceRegistry, sessions: SessionService, clock: FakeClock,
) -> None:
    clock.advance(301)
    registry.sweep(300)
    replies = await sessions.select(OP, ShowDevices(SEND))
    assert replies[0].text == "No devices connected."
    assert sessions.get(OP) is None


@pytest.mark.asyncio
async def test_sessions_are_per_operator(
    sessions: SessionService, command_service: CommandService,
) -> None:
    """Cancelling one operator's flow leaves another's intact."""
    await _to_number_stage(sessions)
    sessions.start(OP + 1, SEND)
    await sessions.handle_text(OP + 1, "cancel")
    assert sessions.get(OP) is not None
