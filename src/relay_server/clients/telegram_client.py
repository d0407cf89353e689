"""Telegram Bot API client — constructed once at startup with all config."""

from __future__ import annotations

from typing import Any

import httpx
from loguru import logger

from relay_server.clients.control_channel import (
    ControlChannel,
    ControlChannelError,
    EncodedButtons,
    OperatorInput,
    SelectorInput,
    TextInput,
)


class TelegramClient(ControlChannel):
    """Bot API client. Built once at startup, reused for every request.

    Without a bot token every call is a logged no-op so the device-facing
    API keeps working when the console is not set up.
    """

    def __init__(
        self,
        *,
        bot_token: str,
        api_url: str = "https://api.telegram.org",
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._bot_token = bot_token
        self._api_url = api_url.rstrip("/")
        self._transport = transport

    @property
    def is_configured(self) -> bool:
        """True if a bot token is set."""
        return bool(self._bot_token)

    def method_url(self, method: str) -> str:
        """Build the Bot API URL for ``method``."""
        return f"{self._api_url}/bot{self._bot_token}/{method}"

    async def call(
        self,
        method: str,
        payload: dict[str, Any],
        *,
        timeout: float = 10.0,
    ) -> Any:
        """POST a Bot API method and return its ``result``.

        Raises:
            ControlChannelError: On transport errors or a non-ok response.
        """
        if not self.is_configured:
            logger.debug(f"Telegram not configured, skipping {method}")
            return None
        try:
            async with httpx.AsyncClient(
                transport=self._transport, timeout=timeout,
            ) as http_client:
                response = await http_client.post(self.method_url(method), json=payload)
        except httpx.HTTPError as error:
            raise ControlChannelError(f"Telegram {method} failed: {error}") from error
        try:
            body = response.json()
        except ValueError as error:
            raise ControlChannelError(
                f"Telegram {method} returned non-JSON: {response.text}",
            ) from error
        if response.status_code != 200 or not body.get("ok"):
            raise ControlChannelError(
                f"Telegram {method} failed: {body.get('description', response.text)}",
            )
        return body.get("result")

    async def send_message(
        self,
        operator_id: int,
        text: str,
        *,
        buttons: EncodedButtons | None = None,
        keyboard: list[list[str]] | None = None,
    ) -> int | None:
        payload: dict[str, Any] = {"chat_id": operator_id, "text": text}
        if buttons is not None:
            payload["reply_markup"] = TelegramClient._inline_markup(buttons)
        elif keyboard is not None:
            payload["reply_markup"] = {
                "keyboard": [[{"text": label} for label in row] for row in keyboard],
                "resize_keyboard": True,
            }
        result = await self.call("sendMessage", payload)
        if isinstance(result, dict):
            return result.get("message_id")
        return None

    async def edit_message(
        self,
        operator_id: int,
        message_id: int,
        text: str,
        *,
        buttons: EncodedButtons | None = None,
    ) -> None:
        await self.call("editMessageText", {
            "chat_id": operator_id,
            "message_id": message_id,
            "text": text,
            "reply_markup": TelegramClient._inline_markup(buttons or []),
        })

    async def answer_selector(self, callback_id: str, text: str | None = None) -> None:
        payload: dict[str, Any] = {"callback_query_id": callback_id}
        if text:
            payload["text"] = text
        await self.call("answerCallbackQuery", payload)

    async def get_updates(self, offset: int, poll_timeout: int = 30) -> list[dict[str, Any]]:
        """Long-poll for updates after ``offset``."""
        result = await self.call(
            "getUpdates",
            {"offset": offset, "timeout": poll_timeout, "allowed_updates": ["message", "callback_query"]},
            timeout=poll_timeout + 10,
        )
        return result if isinstance(result, list) else []

    @staticmethod
    def _inline_markup(buttons: EncodedButtons) -> dict[str, Any]:
        return {
            "inline_keyboard": [
                [{"text": label, "callback_data": data} for label, data in row]
                for row in buttons
            ],
        }

    @staticmethod
    def parse_update(update: dict[str, Any]) -> OperatorInput | None:
        """Turn a raw Bot API update into an operator input.

        Returns None for update types the console does not handle.
        """
        message = update.get("message")
        if isinstance(message, dict):
            chat = message.get("chat") or {}
            if "id" not in chat:
                return None
            return TextInput(operator_id=int(chat["id"]), text=str(message.get("text") or ""))
        callback = update.get("callback_query")
        if isinstance(callback, dict):
            origin = callback.get("message") or {}
            chat = origin.get("chat") or {}
            if "id" not in chat:
                return None
            return SelectorInput(
                operator_id=int(chat["id"]),
                callback_id=str(callback.get("id", "")),
                message_id=origin.get("message_id"),
                data=str(callback.get("data") or ""),
            )
        return None
