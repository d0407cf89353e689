"""Shared fixtures for relay_server tests."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path

import pytest
from litestar.testing import TestClient

from relay_server.app import create_app
from relay_server.clients.control_channel import (
    ControlChannel,
    ControlChannelError,
    EncodedButtons,
)
from relay_server.config import Settings
from relay_server.resources.operator import OperatorResource
from relay_server.services.command_service import CommandService
from relay_server.services.registry_service import DeviceRegistry
from relay_server.services.session_service import SessionService
from relay_server.stores.file_queue_store import FileQueueStore
from relay_server.stores.message_store import MessageStore

OPERATOR_ID = 4242


class FakeClock:
    """Manually advanced clock in epoch seconds."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@dataclass
class SentMessage:
    operator_id: int
    text: str
    buttons: EncodedButtons | None = None
    keyboard: list[list[str]] | None = None


@dataclass
class EditedMessage:
    operator_id: int
    message_id: int
    text: str
    buttons: EncodedButtons | None = None


class FakeChannel(ControlChannel):
    """Records outbound traffic; can be told to fail."""

    def __init__(self, *, fail_sends: bool = False, fail_edits: bool = False) -> None:
        self.sent: list[SentMessage] = []
        self.edits: list[EditedMessage] = []
        self.answers: list[tuple[str, str | None]] = []
        self.fail_sends = fail_sends
        self.fail_edits = fail_edits
        self._next_id = 100

    async def send_message(
        self,
        operator_id: int,
        text: str,
        *,
        buttons: EncodedButtons | None = None,
        keyboard: list[list[str]] | None = None,
    ) -> int | None:
        if self.fail_sends:
            raise ControlChannelError("send failed")
        self.sent.append(SentMessage(operator_id, text, buttons, keyboard))
        self._next_id += 1
        return self._next_id

    async def edit_message(
        self,
        operator_id: int,
        message_id: int,
        text: str,
        *,
        buttons: EncodedButtons | None = None,
    ) -> None:
        if self.fail_edits:
            raise ControlChannelError("edit failed")
        self.edits.append(EditedMessage(operator_id, message_id, text, buttons))

    async def answer_selector(self, callback_id: str, text: str | None = None) -> None:
        self.answers.append((callback_id, text))


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def registry(clock: FakeClock) -> DeviceRegistry:
    return DeviceRegistry(online_window_seconds=60, clock=clock)


@pytest.fixture()
def queue_store(tmp_path: Path) -> FileQueueStore:
    return FileQueueStore(tmp_path / "command_queue.json")


@pytest.fixture()
def command_service(queue_store: FileQueueStore) -> CommandService:
    return CommandService(queue_store)


@pytest.fixture()
def message_store(tmp_path: Path) -> MessageStore:
    return MessageStore(tmp_path, cap=500)


@pytest.fixture()
def sessions(
    registry: DeviceRegistry, command_service: CommandService, clock: FakeClock,
) -> SessionService:
    return SessionService(registry, command_service, ttl_seconds=90, clock=clock)


@pytest.fixture()
def channel() -> FakeChannel:
    return FakeChannel()


@pytest.fixture()
def operator_resource(
    channel: FakeChannel,
    sessions: SessionService,
    registry: DeviceRegistry,
    message_store: MessageStore,
    clock: FakeClock,
) -> OperatorResource:
    return OperatorResource(
        channel=channel,
        sessions=sessions,
        registry=registry,
        message_store=message_store,
        operator_ids=[OPERATOR_ID],
        rate_limit_ms=500,
        page_size=20,
        clock=clock,
    )


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    """Test settings with file storage under tmp_path and no Telegram token."""
    return Settings(
        storage_dir=str(tmp_path),
        operator_ids=[OPERATOR_ID],
        rate_limit_ms=0,
        telegram_polling=False,
    )


@pytest.fixture()
def client(settings: Settings) -> Iterator[TestClient]:  # type: ignore[type-arg]
    """Sync test client with the app lifespan running."""
    with TestClient(app=create_app(settings)) as test_client:
        yield test_client
