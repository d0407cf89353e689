"""Device controller — thin HTTP adapter for DeviceResource."""

from __future__ import annotations

from typing import Any

from litestar import Controller, get, post
from litestar.exceptions import HTTPException

from relay_server.resources.device import DeviceResource, InvalidInputError


class DeviceController(Controller):
    """Endpoints called by devices in the field."""

    path = "/api/devices"

    @post("/connect", status_code=200)
    async def check_in(
        self,
        data: dict[str, Any],
        device_resource: DeviceResource,
    ) -> dict[str, str]:
        """Device check-in.

        Body: {"identity", "display_name", "battery", "slot_a", "slot_b"}
        """
        try:
            return await device_resource.check_in(data)
        except InvalidInputError as error:
            raise HTTPException(status_code=400, detail=str(error)) from error

    @get("/commands", status_code=200)
    async def poll_commands(
        self,
        device_resource: DeviceResource,
        identity: str = "",
    ) -> list[dict[str, object]]:
        """Device polls for, and receives, every queued command."""
        try:
            return await device_resource.poll(identity.strip())
        except InvalidInputError as error:
            raise HTTPException(status_code=400, detail=str(error)) from error

    @post("/messages", status_code=201)
    async def record_message(
        self,
        data: dict[str, Any],
        device_resource: DeviceResource,
    ) -> dict[str, str]:
        """Device reports an inbound SMS.

        Body: {"identity", "sender", "body", "slot", "timestamp"?, "battery"?}
        """
        try:
            return await device_resource.record_message(data)
        except InvalidInputError as error:
            raise HTTPException(status_code=400, detail=str(error)) from error

    @post("/forms", status_code=201)
    async def record_form(
        self,
        data: dict[str, Any],
        device_resource: DeviceResource,
    ) -> dict[str, str]:
        """Device submits arbitrary form fields, stored verbatim."""
        try:
            return await device_resource.record_form(data)
        except InvalidInputError as error:
            raise HTTPException(status_code=400, detail=str(error)) from error

    @post("/send-status", status_code=200)
    async def record_send_status(
        self,
        data: dict[str, Any],
        device_resource: DeviceResource,
    ) -> dict[str, str]:
        """Device reports whether a queued SMS went out.

        Body: {"identity", "destination", "body", "outcome", "error"?}
        """
        try:
            return await device_resource.record_send_status(data)
        except InvalidInputError as error:
            raise HTTPException(status_code=400, detail=str(error)) from error

    @get("/")
    async def list_devices(
        self,
        device_resource: DeviceResource,
    ) -> list[dict[str, object]]:
        """Registry snapshot with online flags."""
        return device_resource.list_devices()
