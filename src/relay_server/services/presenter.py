"""Render operator-facing text from domain records."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from relay_server.models.device import Device
from relay_server.models.message import MessagePage
from relay_server.templates import load_template

_DEVICE_SUMMARY = load_template("device_summary.txt")
_DEVICE_CONNECTED = load_template("device_connected.txt")
_MESSAGE_RECEIVED = load_template("message_received.txt")
_FORM_SUBMITTED = load_template("form_submitted.txt")
_SEND_SENT = load_template("send_sent.txt")
_SEND_FAILED = load_template("send_failed.txt")
_MESSAGE_PAGE = load_template("message_page.txt")

_MISSING = "N/A"


class Presenter:
    """Static renderers. Unknown values render as N/A."""

    @staticmethod
    def format_time(timestamp_ms: int) -> str:
        try:
            moment = datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return _MISSING
        return moment.strftime("%d/%m/%Y %I:%M %p UTC")

    @staticmethod
    def device_summary(device: Device, *, online: bool) -> str:
        return _DEVICE_SUMMARY.safe_substitute(
            name=device.label,
            slot_a=device.slot_a or _MISSING,
            slot_b=device.slot_b or _MISSING,
            battery=device.battery or _MISSING,
            status="Online" if online else "Offline",
        ).rstrip()

    @staticmethod
    def device_list(devices: list[tuple[Device, bool]]) -> str:
        """Connected-devices listing, one block per device."""
        blocks = [
            f"{Presenter.device_summary(device, online=online)}\nID: {device.identity}"
            for device, online in devices
        ]
        return "\n\n".join(blocks)

    @staticmethod
    def device_connected(device: Device, *, online: bool) -> str:
        return _DEVICE_CONNECTED.safe_substitute(
            summary=Presenter.device_summary(device, online=online),
        ).rstrip()

    @staticmethod
    def message_received(
        device: Device | None,
        identity: str,
        *,
        sender: str,
        body: str,
        slot: str | None,
        battery: str | None,
        timestamp_ms: int,
    ) -> str:
        return _MESSAGE_RECEIVED.safe_substitute(
            name=device.label if device else identity,
            slot_a=(device.slot_a if device else None) or _MISSING,
            slot_b=(device.slot_b if device else None) or _MISSING,
            battery=battery or (device.battery if device else None) or _MISSING,
            sender=sender,
            slot=slot or _MISSING,
            time=Presenter.format_time(timestamp_ms),
            body=body,
        ).rstrip()

    @staticmethod
    def form_submitted(device: Device | None, identity: str, fields: dict[str, Any]) -> str:
        lines = [
            f"{key.replace('_', ' ').title()}: {value}" for key, value in fields.items()
        ]
        return _FORM_SUBMITTED.safe_substitute(
            name=device.label if device else identity,
            battery=(device.battery if device else None) or _MISSING,
            fields="\n".join(lines),
        ).rstrip()

    @staticmethod
    def send_outcome(
        device: Device | None,
        identity: str,
        *,
        destination: str,
        body: str,
        sent: bool,
        error: str | None,
    ) -> str:
        template = _SEND_SENT if sent else _SEND_FAILED
        return template.safe_substitute(
            name=device.label if device else identity,
            destination=destination or _MISSING,
            body=body,
            error=error or "Unknown",
        ).rstrip()

    @staticmethod
    def message_page(label: str, page: MessagePage, offset: int) -> str:
        """One page of stored messages, numbered from ``offset + 1``."""
        last = min(offset + len(page.items), page.total)
        title = f"Messages {offset + 1}-{last} of {page.total} - {label}"
        entries = "\n\n".join(
            f"#{offset + index + 1}\nFrom: {record.sender}\n{record.body}\n"
            f"Time: {Presenter.format_time(record.timestamp)}"
            for index, record in enumerate(page.items)
        )
        return _MESSAGE_PAGE.safe_substitute(title=title, entries=entries).rstrip()
