"""Tests for the command queue service."""

from __future__ import annotations

import asyncio

import pytest

from relay_server.models.command import SendMessageCommand, SetForwardingCommand
from relay_server.services.command_service import CommandService
from relay_server.stores.file_queue_store import FileQueueStore


@pytest.mark.asyncio
async def test_enqueue_then_drain_in_order(command_service: CommandService) -> None:
    """drain returns [c1, c2] and a second drain returns nothing."""
    c1 = SendMessageCommand(slot=1, destination="+919876543210", text="one")
    c2 = SetForwardingCommand(slot=2, enabled=False)
    await command_service.enqueue("dev-1", c1)
    await command_service.enqueue("dev-1", c2)
    assert await command_service.drain("dev-1") == [c1, c2]
    assert await command_service.drain("dev-1") == []


@pytest.mark.asyncio
async def test_concurrent_enqueue_keeps_both(command_service: CommandService) -> None:
    """Neither of two concurrent enqueues is lost."""
    c1 = SendMessageCommand(slot=1, destination="+15550000001", text="a")
    c2 = SendMessageCommand(slot=1, destination="+15550000002", text="b")
    await asyncio.gather(
        command_service.enqueue("dev-1", c1),
        command_service.enqueue("dev-1", c2),
    )
    drained = await command_service.drain("dev-1")
    assert len(drained) == 2
    assert c1 in drained
    assert c2 in drained


@pytest.mark.asyncio
async def test_drain_encoded_wire_format(command_service: CommandService) -> None:
    """Poll responses are flat dicts tagged with kind; unset destination is omitted."""
    await command_service.enqueue(
        "dev-1", SendMessageCommand(slot=1, destination="+919876543210", text="hello"),
    )
    await command_service.enqueue("dev-1", SetForwardingCommand(slot=2, enabled=False))
    assert await command_service.drain_encoded("dev-1") == [
        {"kind": "send_message", "slot": 1, "destination": "+919876543210", "text": "hello"},
        {"kind": "set_forwarding", "slot": 2, "enabled": False},
    ]


@pytest.mark.asyncio
async def test_malformed_entries_are_dropped(
    queue_store: FileQueueStore, command_service: CommandService,
) -> None:
    """A stored entry that no longer validates does not fail the poll."""
    await queue_store.append("dev-1", {"kind": "reboot"})
    good = SetForwardingCommand(slot=1, enabled=True, destination="+15551234567")
    await command_service.enqueue("dev-1", good)
    assert await command_service.drain("dev-1") == [good]


def test_forwarding_requires_destination_when_enabled() -> None:
    with pytest.raises(ValueError):
        SetForwardingCommand(slot=1, enabled=True)
