"""Device resource — protocol-agnostic handlers for the device channel."""

from __future__ import annotations

from typing import Any, TypeVar

from loguru import logger
from pydantic import BaseModel, ValidationError

from relay_server.models.message import MessageRecord
from relay_server.schemas.device import CheckIn, FormSubmission, InboundMessage, SendStatus
from relay_server.services.command_service import CommandService
from relay_server.services.notification_service import NotificationService
from relay_server.services.presenter import Presenter
from relay_server.services.registry_service import DeviceRegistry, InvalidInputError
from relay_server.stores.form_store import FormStore
from relay_server.stores.message_store import MessageStore
from relay_server.utils.time import Time

__all__ = ["DeviceResource", "InvalidInputError"]

_Schema = TypeVar("_Schema", bound=BaseModel)

_OK = {"status": "ok"}


class DeviceResource:
    """Check-ins, polls and event reports from devices.

    Built once at startup with all dependencies pre-wired. Each handler
    validates its input first and mutates nothing on invalid input.
    """

    def __init__(
        self,
        *,
        registry: DeviceRegistry,
        command_service: CommandService,
        message_store: MessageStore,
        form_store: FormStore,
        notifications: NotificationService,
    ) -> None:
        self._registry = registry
        self._commands = command_service
        self._messages = message_store
        self._forms = form_store
        self._notifications = notifications

    async def check_in(self, data: dict[str, Any]) -> dict[str, str]:
        """Replace the device's status; announce it the first time it is seen.

        Raises:
            InvalidInputError: If identity is missing.
        """
        request = DeviceResource._parse(CheckIn, data)
        device = self._registry.upsert(
            request.identity,
            display_name=request.display_name,
            battery=request.battery,
            slot_a=request.slot_a,
            slot_b=request.slot_b,
        )
        if self._registry.mark_notified(device.identity):
            logger.info(f"Device connected: {device.identity}")
            self._notifications.broadcast(
                Presenter.device_connected(device, online=self._registry.is_online(device)),
            )
        return dict(_OK)

    async def poll(self, identity: str | None) -> list[dict[str, object]]:
        """Keep the device online and hand over every queued command.

        Raises:
            InvalidInputError: If identity is missing.
        """
        if not identity:
            raise InvalidInputError("identity is required")
        self._registry.touch(identity)
        return await self._commands.drain_encoded(identity)

    async def record_message(self, data: dict[str, Any]) -> dict[str, str]:
        """Store an inbound SMS and notify operators.

        Raises:
            InvalidInputError: If identity, sender or body is missing.
        """
        request = DeviceResource._parse(InboundMessage, data)
        timestamp = Time.to_ms(request.timestamp, Time.now_ms())
        await self._messages.append(request.identity, MessageRecord(
            sender=request.sender,
            body=request.body,
            slot=request.slot,
            battery=request.battery,
            timestamp=timestamp,
        ))
        self._notifications.broadcast(Presenter.message_received(
            self._registry.get(request.identity),
            request.identity,
            sender=request.sender,
            body=request.body,
            slot=request.slot,
            battery=request.battery,
            timestamp_ms=timestamp,
        ))
        return dict(_OK)

    async def record_form(self, data: dict[str, Any]) -> dict[str, str]:
        """Persist a form submission verbatim and notify operators.

        Raises:
            InvalidInputError: If identity is missing.
        """
        request = DeviceResource._parse(FormSubmission, data)
        fields = request.fields
        await self._forms.save(request.identity, fields)
        self._notifications.broadcast(Presenter.form_submitted(
            self._registry.get(request.identity), request.identity, fields,
        ))
        return dict(_OK)

    async def record_send_status(self, data: dict[str, Any]) -> dict[str, str]:
        """Relay the outcome of a send command to operators.

        Raises:
            InvalidInputError: If identity or outcome is missing.
        """
        request = DeviceResource._parse(SendStatus, data)
        if not request.sent:
            logger.info(f"Device {request.identity} failed to send SMS: {request.error}")
        self._notifications.broadcast(Presenter.send_outcome(
            self._registry.get(request.identity),
            request.identity,
            destination=request.destination or "",
            body=request.body or "",
            sent=request.sent,
            error=request.error,
        ))
        return dict(_OK)

    def list_devices(self) -> list[dict[str, object]]:
        """Registry snapshot with the derived online flag."""
        return [
            device.to_dict(online=self._registry.is_online(device))
            for _, device in self._registry.list()
        ]

    @staticmethod
    def _parse(schema: type[_Schema], data: dict[str, Any]) -> _Schema:
        try:
            return schema.model_validate(data)
        except ValidationError as error:
            fields = ", ".join(
                ".".join(str(part) for part in issue["loc"]) or "body"
                for issue in error.errors()
            )
            raise InvalidInputError(f"Invalid or missing fields: {fields}") from error
